"""
Book export: the whole-catalog closure written out as YAML or JSON.

Each element becomes one record listing how it is crafted and which
elements it unlocks, so a reader can browse the game without running
the resolver.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml

from .catalog import Element, ElementCatalog
from .closure import CatalogEntry
from .errors import ConfigError, MalformedData


@dataclass
class BookEntry:
    """A single element page of the book."""
    id: str
    name: str
    base: bool
    reachable: bool
    steps: List[Tuple[str, str, str]] = field(default_factory=list)  # (a, b, produced) ids
    recipe: Optional[Tuple[str, str]] = None  # Selected recipe of the element itself
    used_by: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "base": self.base,
            "reachable": self.reachable,
            "steps": [list(step) for step in self.steps],
            "recipe": list(self.recipe) if self.recipe else None,
            "used_by": self.used_by,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BookEntry":
        recipe = data.get("recipe")
        return cls(
            id=str(data["id"]),
            name=data.get("name", str(data["id"])),
            base=bool(data.get("base", False)),
            reachable=bool(data.get("reachable", True)),
            steps=[tuple(step) for step in data.get("steps", [])],
            recipe=tuple(recipe) if recipe else None,
            used_by=list(data.get("used_by", [])),
        )


def build_book(
    entries: Mapping[Element, CatalogEntry],
    catalog: ElementCatalog,
    include_unreachable: bool = True,
) -> List[BookEntry]:
    """Turn closure entries into book records, keeping catalog order."""
    order = {e.id: i for i, e in enumerate(catalog)}
    book: List[BookEntry] = []
    for element, entry in entries.items():
        if not entry.is_reachable and not include_unreachable:
            continue
        step = entry.selected_step
        book.append(BookEntry(
            id=element.id,
            name=element.name,
            base=element.is_base,
            reachable=entry.is_reachable,
            steps=[tuple(s) for s in entry.plan] if entry.plan is not None else [],
            recipe=(step.ingredient_a, step.ingredient_b) if step else None,
            used_by=sorted((e.id for e in entry.used_by), key=order.__getitem__),
        ))
    return book


def save_book(book: List[BookEntry], path: Path, fmt: str = "yaml") -> None:
    """
    Write book records to ``path``.

    Parameters
    ----------
    book : list of BookEntry
        Records from build_book.
    path : Path
        Output file. Parent directories are created.
    fmt : str
        "yaml" or "json".
    """
    if fmt not in ("yaml", "json"):
        raise ConfigError(f"invalid book format {fmt!r} (expected yaml or json)")
    data = [entry.to_dict() for entry in book]
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as fh:
        if fmt == "yaml":
            yaml.dump(data, fh, default_flow_style=False, allow_unicode=True, sort_keys=False)
        else:
            json.dump(data, fh, indent=2, ensure_ascii=False)
            fh.write("\n")


def load_book(path: Path) -> List[BookEntry]:
    """
    Read a book previously written by save_book.

    Raises
    ------
    MalformedData
        If the file cannot be read or decoded, or its records are not
        book entries.
    """
    try:
        with path.open("r", encoding="utf-8") as fh:
            if path.suffix.lower() == ".json":
                data = json.load(fh)
            else:
                data = yaml.safe_load(fh) or []
    except (OSError, UnicodeDecodeError) as exc:
        raise MalformedData(f"Unable to read {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise MalformedData(f"Invalid JSON in {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise MalformedData(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(data, list):
        raise MalformedData(f"expected a list of book entries in {path}, got {type(data).__name__}")
    try:
        return [BookEntry.from_dict(item) for item in data]
    except (AttributeError, KeyError, TypeError) as exc:
        raise MalformedData(f"invalid book entry in {path}: {exc!r}") from exc
