"""
Resource path utilities for frozen (PyInstaller) and development modes.

Bundled files (the default configuration, sample data) are looked up
relative to the project root in development and relative to the
extraction directory when the resolver ships as a standalone executable.
"""
from __future__ import annotations

import sys
from pathlib import Path


def get_resource_path(relative_path: str) -> Path:
    """
    Get absolute path to a bundled resource.

    Parameters
    ----------
    relative_path : str
        Path relative to project root (e.g., "Alchemy/DefaultConfig.yaml")

    Returns
    -------
    Path
        Absolute path to the resource

    Examples
    --------
    >>> config_path = get_resource_path("Alchemy/DefaultConfig.yaml")
    """
    if is_frozen():
        base_path = Path(sys._MEIPASS)  # type: ignore[attr-defined]
    else:
        # This file is in Alchemy/, so parent.parent is the project root
        base_path = Path(__file__).resolve().parent.parent
    return base_path / relative_path


def resolve_relative(path: Path, anchor: Path) -> Path:
    """Resolve ``path`` against the directory holding ``anchor`` unless absolute."""
    if path.is_absolute():
        return path
    return (anchor.parent / path).resolve()


def is_frozen() -> bool:
    """Check if running as a packaged executable."""
    return getattr(sys, 'frozen', False)
