"""Recipe graph: forward and reverse edges over an element catalog.

The graph performs no search of its own. It decouples the resolver from the
catalog's storage layout, which also lets tests drive the resolver with a
small synthetic graph.
"""
from __future__ import annotations

from typing import Dict, FrozenSet, List, Tuple

from .catalog import Element, ElementCatalog, ElementRef, Recipe, element_id


class RecipeGraph:
    """
    Read-only query surface over an ElementCatalog.

    Forward edges map an element to the recipes that produce it; reverse
    edges map an element to the recipes that consume it.
    """

    def __init__(self, catalog: ElementCatalog):
        self._catalog = catalog
        self._base = catalog.base_elements()
        self._base_ids = frozenset(e.id for e in self._base)

        used_in: Dict[str, List[Recipe]] = {}
        for recipe in catalog.recipes():
            for ing_id in recipe.ingredients:
                used_in.setdefault(ing_id, []).append(recipe)
        self._used_in: Dict[str, Tuple[Recipe, ...]] = {
            k: tuple(v) for k, v in used_in.items()
        }

    @property
    def catalog(self) -> ElementCatalog:
        return self._catalog

    def __len__(self) -> int:
        return len(self._catalog)

    def recipes_for(self, element: ElementRef) -> Tuple[Recipe, ...]:
        """Alternative ways to produce ``element``; empty for base elements."""
        key = element_id(element)
        if key in self._base_ids:
            return ()
        return self._catalog.recipes_producing(key)

    def used_in(self, element: ElementRef) -> Tuple[Recipe, ...]:
        """Every recipe that consumes ``element`` as an ingredient."""
        return self._used_in.get(element_id(element), ())

    def base_elements(self) -> FrozenSet[Element]:
        return self._base

    def is_base(self, element: ElementRef) -> bool:
        return element_id(element) in self._base_ids
