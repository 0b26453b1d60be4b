"""Load element catalogs from JSON or YAML data files.

Two layouts are understood:

* the game's own data file, a mapping of element id to a compact record::

      {"1": {"n": "air", "prime": true},
       "5": {"n": "dust", "p": [["1", "2"]], "c": ["12"]},
       "9": {"n": "time", "base": true, "condition": {"type": "progress", "total": 100}}}

* a table layout with explicit element and recipe lists::

      elements:
        - {id: earth, name: Earth, base: true}
      recipes:
        - {a: earth, b: water, produces: mud}

Records are validated with pydantic; every schema problem, unreadable file
or dangling reference surfaces as MalformedData before any resolution.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Tuple

import yaml
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    model_validator,
)

from .catalog import Element, ElementCatalog, Recipe, UnlockCondition
from .errors import MalformedData
from .resolver_logging import LogLevel, ResolverLogger, create_logger

YAML_SUFFIXES = frozenset({".yaml", ".yml"})


class ConditionRecord(BaseModel):
    """Unlock condition as stored by the game, e.g. ``{"type": "progress", "total": 100}``."""
    model_config = ConfigDict(coerce_numbers_to_str=True, extra="forbid")

    type: Literal["none", "progress", "elements"]
    total: Optional[int] = Field(default=None, ge=0)
    elements: List[str] = Field(default_factory=list)
    min: int = Field(default=1, ge=0)

    @model_validator(mode="after")
    def _check_kind(self) -> ConditionRecord:
        if self.type == "progress" and self.total is None:
            raise ValueError("a progress condition needs a total")
        if self.type == "elements" and not self.elements:
            raise ValueError("an elements condition needs at least one element")
        return self

    def to_condition(self) -> Optional[UnlockCondition]:
        if self.type == "progress":
            return UnlockCondition(UnlockCondition.PROGRESS, total=self.total)
        if self.type == "elements":
            return UnlockCondition(UnlockCondition.ELEMENTS, elements=tuple(self.elements), minimum=self.min)
        return None


def _condition(record: Optional[ConditionRecord]) -> Optional[UnlockCondition]:
    return record.to_condition() if record is not None else None


class GameElementRecord(BaseModel):
    """One entry of the game's data file."""
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True, extra="ignore")

    name: str = Field(alias="n", min_length=1)
    combinations: List[Tuple[str, str]] = Field(default_factory=list, alias="p")
    prime: bool = False
    base: bool = False  # Unlocked by a condition, never by a combination
    hidden: bool = False
    final: bool = Field(default=False, validation_alias=AliasChoices("final", "final_"))
    can_create: List[str] = Field(default_factory=list, alias="c")
    condition: Optional[ConditionRecord] = None


class ElementRecord(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True, extra="forbid")

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    base: bool = False
    final: bool = False
    hidden: bool = False
    condition: Optional[ConditionRecord] = None


class RecipeRecord(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True, extra="forbid")

    a: str
    b: str
    produces: str


class TableDocument(BaseModel):
    elements: List[ElementRecord]
    recipes: List[RecipeRecord] = Field(default_factory=list)


GAME_DOCUMENT_ADAPTER: TypeAdapter = TypeAdapter(
    Dict[str, Optional[GameElementRecord]],
    config=ConfigDict(coerce_numbers_to_str=True),
)


def _read_document(path: Path) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise MalformedData(f"Unable to read {path}: {exc}") from exc
    try:
        if path.suffix.lower() in YAML_SUFFIXES:
            return yaml.safe_load(text)
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedData(f"Invalid JSON in {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise MalformedData(f"Invalid YAML in {path}: {exc}") from exc


def _is_table_document(raw: Dict[str, Any]) -> bool:
    return isinstance(raw.get("elements"), list)


def _catalog_from_table(raw: Dict[str, Any]) -> ElementCatalog:
    doc = TableDocument.model_validate(raw)
    elements = [
        Element(id=r.id, name=r.name, is_base=r.base, final=r.final, hidden=r.hidden,
                condition=_condition(r.condition))
        for r in doc.elements
    ]
    recipes = [Recipe(r.a, r.b, r.produces) for r in doc.recipes]
    return ElementCatalog(elements, recipes)


def _catalog_from_game(raw: Dict[str, Any]) -> Tuple[ElementCatalog, Dict[str, GameElementRecord]]:
    records = {
        key: record
        for key, record in GAME_DOCUMENT_ADAPTER.validate_python(raw).items()
        if record is not None
    }
    elements = [
        Element(id=key, name=r.name, is_base=r.prime, final=r.final, hidden=r.hidden,
                condition=_condition(r.condition))
        for key, r in records.items()
    ]
    recipes = [
        Recipe(a, b, key)
        for key, r in records.items()
        for a, b in r.combinations
    ]
    return ElementCatalog(elements, recipes), records


def catalog_from_data(raw: Any) -> ElementCatalog:
    """
    Build a catalog from an already parsed document.

    Raises
    ------
    MalformedData
        If the document matches neither layout, fails validation, or
        references unknown elements.
    """
    catalog, _ = _build(raw)
    return catalog


def _build(raw: Any) -> Tuple[ElementCatalog, Dict[str, GameElementRecord]]:
    if not isinstance(raw, dict):
        raise MalformedData(
            f"expected a mapping of elements, got {type(raw).__name__}"
        )
    try:
        if _is_table_document(raw):
            return _catalog_from_table(raw), {}
        return _catalog_from_game(raw)
    except ValidationError as exc:
        raise MalformedData(f"invalid element data: {exc}") from exc


def _creations(catalog: ElementCatalog) -> Dict[str, set]:
    """Element id -> ids of every element a recipe makes from it."""
    creations: Dict[str, set] = {}
    for recipe in catalog.recipes():
        for ing_id in recipe.ingredients:
            creations.setdefault(ing_id, set()).add(recipe.produces)
    return creations


def find_can_create_mismatches(
    catalog: ElementCatalog,
    records: Dict[str, GameElementRecord],
) -> Dict[str, Tuple[List[str], List[str]]]:
    """
    Compare each record's declared "can create" list with the recipes.

    Returns
    -------
    dict
        element id -> (expected ids, declared ids) for every element whose
        declared list is present and disagrees with the recipe data.
    """
    expected = _creations(catalog)
    mismatches: Dict[str, Tuple[List[str], List[str]]] = {}
    for key, record in records.items():
        if key not in expected:
            continue
        want = sorted(expected[key], key=_id_sort_key)
        have = sorted(set(record.can_create), key=_id_sort_key)
        if want != have:
            mismatches[key] = (want, have)
    return mismatches


def find_final_violations(
    catalog: ElementCatalog,
    records: Dict[str, GameElementRecord],
) -> Dict[str, List[str]]:
    """
    Final elements that nonetheless create something.

    Both the declared "can create" list and the recipes count, so the check
    also covers the table layout, which declares no such lists.
    """
    creations = _creations(catalog)
    violations: Dict[str, List[str]] = {}
    for element in catalog:
        if not element.final:
            continue
        made = set(creations.get(element.id, ()))
        record = records.get(element.id)
        if record is not None:
            made.update(record.can_create)
        if made:
            violations[element.id] = sorted(made, key=_id_sort_key)
    return violations


def _id_sort_key(value: str) -> Tuple[int, Any]:
    return (0, int(value)) if value.isdigit() else (1, value)


def load_catalog(path: Path, logger: Optional[ResolverLogger] = None) -> ElementCatalog:
    """
    Load and validate a catalog from a JSON or YAML file.

    Parameters
    ----------
    path : Path
        The data file. ``.yaml``/``.yml`` files are read as YAML, anything
        else as JSON.
    logger : ResolverLogger, optional
        Receives the catalog summary and data consistency warnings.

    Raises
    ------
    MalformedData
        If the file cannot be read or its contents do not form a catalog.
    """
    logger = logger or create_logger(LogLevel.SILENT)
    catalog, records = _build(_read_document(path))

    for key, (want, have) in find_can_create_mismatches(catalog, records).items():
        logger.log_warning("CATALOG",
                           f"can-create mismatch for {catalog.name_of(key)}: "
                           f"expected {want}, found {have}")
    for key, made in find_final_violations(catalog, records).items():
        logger.log_warning("CATALOG",
                           f"final element {catalog.name_of(key)} can create {made}")

    logger.log_catalog_loaded(catalog, source=path)
    return catalog
