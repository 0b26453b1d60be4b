"""Exception types raised by the resolver core and its loaders."""
from __future__ import annotations

from typing import Optional


class AlchemyError(Exception):
    """Base class for every error the package raises on purpose."""


class MalformedData(AlchemyError):
    """Raised when element or recipe data cannot form a valid catalog."""


class ConfigError(AlchemyError):
    """Raised when the configuration file is missing or invalid."""


class ElementNotFound(AlchemyError, LookupError):
    """Raised when a query names no element of the catalog."""


class Unreachable(AlchemyError):
    """
    Raised when no cycle-free recipe chain leads to an element.

    This is an expected outcome, not a crash: callers report it to the
    user, and the closure builder records it per element.
    """

    def __init__(self, element_id: str, name: Optional[str] = None):
        self.element_id = element_id
        self.name = name
        label = f"{name} (#{element_id})" if name else f"#{element_id}"
        super().__init__(f"no recipe chain leads to {label}")
