"""Combination history exported from the game.

The history file is a JSON list of ``[a, b, time]`` triples, where ``a`` and
``b`` are element ids and ``time`` is an epoch timestamp in milliseconds.
Every element produced by a recorded pair is owned by the player, as is
every element whose unlock condition those discoveries satisfy. The
resolver treats owned elements like base elements.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import FrozenSet, Iterable, Iterator, List, Optional, Set, Tuple

from pydantic import ConfigDict, TypeAdapter, ValidationError

from .catalog import ElementCatalog
from .errors import MalformedData
from .resolver_logging import LogLevel, ResolverLogger, create_logger

HISTORY_ADAPTER: TypeAdapter = TypeAdapter(
    List[Tuple[str, str, int]],
    config=ConfigDict(coerce_numbers_to_str=True),
)


def unlocked_elements(catalog: ElementCatalog, discovered: Iterable[str]) -> FrozenSet[str]:
    """
    Ids of the elements whose unlock condition the discoveries satisfy.

    Base elements count as discovered. An element unlocked this way counts
    too, so one unlock can trigger another.
    """
    found: Set[str] = set(discovered) | {e.id for e in catalog.base_elements()}
    unlocked: Set[str] = set()
    changed = True
    while changed:
        changed = False
        for element in catalog:
            if element.condition is None or element.id in found:
                continue
            if element.condition.is_met(found):
                found.add(element.id)
                unlocked.add(element.id)
                changed = True
    return frozenset(unlocked)


@dataclass(frozen=True)
class HistoryItem:
    """One combination the player performed."""
    ingredient_a: str
    ingredient_b: str
    performed_at: datetime

    @property
    def pair(self) -> FrozenSet[str]:
        return frozenset((self.ingredient_a, self.ingredient_b))

    @classmethod
    def from_row(cls, a: str, b: str, time_ms: int) -> "HistoryItem":
        try:
            performed_at = datetime.fromtimestamp(time_ms / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as exc:
            raise MalformedData(f"value is not a legal timestamp: {time_ms}") from exc
        return cls(a, b, performed_at)


@dataclass
class History:
    """Ordered list of performed combinations; empty when history is disabled."""
    items: List[HistoryItem] = field(default_factory=list)

    def __iter__(self) -> Iterator[HistoryItem]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def has_combination(self, ingredient_a: str, ingredient_b: str) -> bool:
        """True if the pair was combined before, in either order."""
        pair = frozenset((ingredient_a, ingredient_b))
        return any(item.pair == pair for item in self.items)

    def acquired_elements(
        self,
        catalog: ElementCatalog,
        logger: Optional[ResolverLogger] = None,
    ) -> FrozenSet[str]:
        """
        Ids of every element the player owns.

        These are the outputs of recorded combinations plus the elements
        whose unlock condition they satisfy. A pair that matches no recipe
        of the catalog is reported through the logger and otherwise ignored.
        """
        logger = logger or create_logger(LogLevel.SILENT)
        acquired: Set[str] = set()
        for item in self.items:
            produced = catalog.produced_by(item.ingredient_a, item.ingredient_b)
            if not produced:
                logger.log_unknown_combination(
                    catalog.name_of(item.ingredient_a), catalog.name_of(item.ingredient_b)
                )
            acquired.update(e.id for e in produced)
        acquired.update(unlocked_elements(catalog, acquired))
        logger.log_history_loaded(len(self.items), len(acquired))
        return frozenset(acquired)

    @classmethod
    def from_rows(cls, rows: Iterable[Tuple[str, str, int]]) -> "History":
        return cls([HistoryItem.from_row(a, b, t) for a, b, t in rows])


def load_history(path: Path) -> History:
    """
    Read a history file.

    Raises
    ------
    MalformedData
        If the file cannot be read, is not JSON, or holds anything other than
        ``[a, b, time]`` rows.
    """
    try:
        with path.open("r", encoding="utf-8") as fh:
            raw = json.load(fh)
    except OSError as exc:
        raise MalformedData(f"Unable to read {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise MalformedData(f"Invalid JSON in {path}: {exc}") from exc

    try:
        rows = HISTORY_ADAPTER.validate_python(raw)
    except ValidationError as exc:
        raise MalformedData(f"invalid history in {path}: {exc}") from exc
    return History.from_rows(rows)
