"""Allow ``python -m Alchemy``."""
import sys

from .run_resolver import main

sys.exit(main())
