"""
Leveled logging for the crafting-path resolver.

Provides insight into resolution at multiple verbosity levels:
    - MINIMAL: Only final results and errors
    - SUMMARY: Catalog overview and closure totals
    - DETAILED: Plan tables
    - DEBUG: Every element resolved or found unreachable
    - TRACE: Everything including each rejected recipe candidate

Usage:
    from Alchemy.resolver_logging import ResolverLogger, LogLevel

    logger = ResolverLogger(level=LogLevel.DETAILED)
    logger.log_catalog_loaded(catalog)
    resolver = PathResolver(graph, logger=logger)
"""
from __future__ import annotations

import sys
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from io import StringIO
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, TextIO, Tuple, Union

if TYPE_CHECKING:
    from .catalog import ElementCatalog
    from .closure import CatalogEntry
    from .resolver import BuildPlan


class LogLevel(IntEnum):
    """Verbosity levels for resolver logging."""
    SILENT = 0      # No output at all
    MINIMAL = 10    # Only final results and errors
    SUMMARY = 20    # Catalog overview and key totals
    DETAILED = 30   # Plan tables
    DEBUG = 40      # Per-element outcomes
    TRACE = 50      # Per-recipe search decisions


@dataclass
class LogEntry:
    """A single log entry with metadata."""
    timestamp: datetime
    level: LogLevel
    category: str
    message: str
    data: Optional[Dict[str, Any]] = None

    def format(self, include_timestamp: bool = True, include_level: bool = True) -> str:
        """Format the log entry as a string."""
        parts = []
        if include_timestamp:
            parts.append(f"[{self.timestamp.strftime('%H:%M:%S.%f')[:-3]}]")
        if include_level:
            parts.append(f"[{self.level.name:8}]")
        parts.append(f"[{self.category}]")
        parts.append(self.message)
        return " ".join(parts)


@dataclass
class ResolverLogger:
    """
    Structured logger for catalog loading, path resolution and closure runs.

    Attributes
    ----------
    level : LogLevel
        Minimum level to log (entries above this level are ignored)
    output : TextIO | None
        Output stream (defaults to sys.stderr so plans on stdout stay clean)
    log_to_file : Path | None
        Optional path to also write logs to a file
    entries : list[LogEntry]
        All logged entries (for programmatic access)
    """
    level: LogLevel = LogLevel.SUMMARY
    output: Optional[TextIO] = None
    log_to_file: Optional[Path] = None
    include_timestamp: bool = True
    include_level: bool = True
    entries: List[LogEntry] = field(default_factory=list)
    _file_handle: Optional[TextIO] = field(default=None, repr=False)

    def __post_init__(self):
        if self.output is None:
            self.output = sys.stderr
        if self.log_to_file:
            self._file_handle = open(self.log_to_file, "w", encoding="utf-8")

    def close(self):
        """Close the file handle if opened."""
        if self._file_handle:
            self._file_handle.close()
            self._file_handle = None

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    def enabled_for(self, level: LogLevel) -> bool:
        return level <= self.level

    def _log(self, level: LogLevel, category: str, message: str,
             data: Optional[Dict[str, Any]] = None) -> None:
        """Internal method to record and output a log entry."""
        if level > self.level:
            return

        entry = LogEntry(
            timestamp=datetime.now(),
            level=level,
            category=category,
            message=message,
            data=data,
        )
        self.entries.append(entry)

        formatted = entry.format(self.include_timestamp, self.include_level)
        if self.output:
            self.output.write(formatted + "\n")
            self.output.flush()
        if self._file_handle:
            self._file_handle.write(formatted + "\n")
            self._file_handle.flush()

    def _log_table(self, level: LogLevel, category: str,
                   headers: List[str], rows: List[List[Any]],
                   title: Optional[str] = None) -> None:
        """Log a formatted table."""
        if level > self.level:
            return

        all_rows = [headers] + rows
        widths = [max(len(str(row[i])) for row in all_rows) for i in range(len(headers))]

        lines = []
        if title:
            lines.append(title)
            lines.append("=" * len(title))

        header_line = " | ".join(str(h).ljust(w) for h, w in zip(headers, widths))
        lines.append(header_line)
        lines.append("-" * len(header_line))

        for row in rows:
            lines.append(" | ".join(str(v).ljust(w) for v, w in zip(row, widths)))

        for line in lines:
            self._log(level, category, line)

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    def log_warning(self, category: str, message: str) -> None:
        """Log a non-fatal problem; shown from MINIMAL upwards."""
        self._log(LogLevel.MINIMAL, category, f"WARNING: {message}")

    def log_catalog_loaded(self, catalog: ElementCatalog, source: Optional[Path] = None) -> None:
        """Log the size of a freshly loaded catalog."""
        base = catalog.base_elements()
        origin = f" from {source}" if source else ""
        self._log(LogLevel.SUMMARY, "CATALOG",
                  f"Loaded {len(catalog)} elements and {catalog.recipe_count} recipes{origin}",
                  data={"elements": len(catalog), "recipes": catalog.recipe_count})
        if base:
            self._log(LogLevel.DETAILED, "CATALOG",
                      f"Base elements: {', '.join(sorted(e.name for e in base))}")

    def log_history_loaded(self, combinations: int, acquired: int) -> None:
        self._log(LogLevel.SUMMARY, "HISTORY",
                  f"History: {combinations} combinations, {acquired} elements owned")

    def log_unknown_combination(self, ingredient_a: str, ingredient_b: str) -> None:
        """Warn about a history entry that matches no recipe."""
        self.log_warning("HISTORY", f"combination between {ingredient_a} and {ingredient_b} doesn't exist")

    # -------------------------------------------------------------------------
    # Resolution
    # -------------------------------------------------------------------------

    def log_resolve_start(self, name: str) -> None:
        self._log(LogLevel.DEBUG, "RESOLVE", f"Resolving {name}")

    def log_recipe_rejected(self, name: str, combination: str, reason: str) -> None:
        """Log a recipe candidate discarded during the search."""
        if self.level < LogLevel.TRACE:
            return
        self._log(LogLevel.TRACE, "RESOLVE", f"  {name}: rejected {combination} ({reason})")

    def log_element_resolved(self, name: str, steps: int) -> None:
        self._log(LogLevel.DEBUG, "RESOLVE", f"{name}: {steps} steps")

    def log_element_unreachable(self, name: str, permanent: bool) -> None:
        suffix = "" if permanent else " (blocked by an ancestor, settled when it closes)"
        self._log(LogLevel.DEBUG, "RESOLVE", f"{name}: unreachable{suffix}")

    def log_plan(self, plan: BuildPlan, catalog: ElementCatalog,
                 title: Optional[str] = None) -> None:
        """Log a plan as a table of numbered steps."""
        if self.level < LogLevel.DETAILED:
            return
        rows = [
            [i, catalog.name_of(step.ingredient_a), catalog.name_of(step.ingredient_b),
             catalog.name_of(step.produced)]
            for i, step in enumerate(plan, start=1)
        ]
        if rows:
            self._log_table(LogLevel.DETAILED, "PLAN",
                            ["#", "Ingredient", "Ingredient", "Gives"],
                            rows, title=title)

    # -------------------------------------------------------------------------
    # Closure
    # -------------------------------------------------------------------------

    def log_closure_summary(self, entries: Mapping[Any, CatalogEntry]) -> None:
        """Log totals for a whole-catalog run."""
        reachable = sum(1 for e in entries.values() if e.is_reachable)
        unreachable = len(entries) - reachable
        self._log(LogLevel.SUMMARY, "CLOSURE",
                  f"Closure: {len(entries)} elements, {reachable} reachable, "
                  f"{unreachable} unreachable",
                  data={"reachable": reachable, "unreachable": unreachable})

        if self.level >= LogLevel.DETAILED and unreachable:
            names = sorted(e.element.name for e in entries.values() if not e.is_reachable)
            if len(names) <= 10:
                self._log(LogLevel.DETAILED, "CLOSURE", f"Unreachable: {', '.join(names)}")
            else:
                self._log(LogLevel.DETAILED, "CLOSURE",
                          f"Unreachable: {', '.join(names[:10])} and {len(names) - 10} more")

        if self.level >= LogLevel.TRACE:
            rows = [
                [e.element.name, len(e.plan) if e.plan is not None else "-", len(e.used_by)]
                for e in entries.values()
            ]
            self._log_table(LogLevel.TRACE, "CLOSURE",
                            ["Element", "Steps", "Unlocks"], rows, title="Closure")

    # -------------------------------------------------------------------------
    # Utility Methods
    # -------------------------------------------------------------------------

    def get_all_entries(self) -> List[LogEntry]:
        """Return all logged entries."""
        return self.entries.copy()

    def get_entries_by_level(self, level: LogLevel) -> List[LogEntry]:
        """Return entries at or below a specific level."""
        return [e for e in self.entries if e.level <= level]

    def get_entries_by_category(self, category: str) -> List[LogEntry]:
        """Return entries matching a category."""
        return [e for e in self.entries if e.category == category]

    def to_string(self, level: Optional[LogLevel] = None) -> str:
        """Format all entries to a string."""
        entries = self.entries if level is None else self.get_entries_by_level(level)
        return "\n".join(e.format(self.include_timestamp, self.include_level)
                         for e in entries)

    def clear(self) -> None:
        """Clear all logged entries."""
        self.entries.clear()


def parse_level(level: Union[LogLevel, str, int]) -> LogLevel:
    """Convert a level name or number into a LogLevel."""
    if isinstance(level, LogLevel):
        return level
    if isinstance(level, str):
        return LogLevel[level.upper()]
    return LogLevel(level)


def create_logger(
    level: Union[LogLevel, str, int] = LogLevel.SUMMARY,
    output: Optional[TextIO] = None,
    log_file: Optional[Path] = None,
) -> ResolverLogger:
    """
    Factory function to create a ResolverLogger.

    Parameters
    ----------
    level : LogLevel | str | int
        Verbosity level. Can be LogLevel enum, string name, or integer.
    output : TextIO | None
        Output stream. Defaults to sys.stderr.
    log_file : Path | None
        Optional path to write logs to file.

    Returns
    -------
    ResolverLogger
        Configured logger instance
    """
    return ResolverLogger(
        level=parse_level(level),
        output=output,
        log_to_file=log_file,
    )


def create_string_logger(level: LogLevel = LogLevel.DETAILED) -> Tuple[ResolverLogger, StringIO]:
    """
    Create a logger that writes to a string buffer.

    Useful for testing or capturing logs programmatically.
    """
    buffer = StringIO()
    logger = ResolverLogger(level=level, output=buffer)
    return logger, buffer
