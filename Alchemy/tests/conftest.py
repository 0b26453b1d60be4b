"""Shared fixtures: small synthetic catalogs built from id triples."""
from __future__ import annotations

from typing import Callable, Iterable, List, Tuple

import pytest

from Alchemy.catalog import Element, ElementCatalog, Recipe
from Alchemy.graph import RecipeGraph

Triple = Tuple[str, str, str]


def _build(base: Iterable[str], recipes: Iterable[Triple]) -> ElementCatalog:
    base = list(base)
    recipes = list(recipes)
    order: List[str] = list(base)
    for a, b, out in recipes:
        for key in (a, b, out):
            if key not in order:
                order.append(key)
    elements = [Element(id=key, name=key.capitalize(), is_base=key in base) for key in order]
    return ElementCatalog(elements, [Recipe(a, b, out) for a, b, out in recipes])


@pytest.fixture
def make_catalog() -> Callable[..., ElementCatalog]:
    """Factory: ``make_catalog(base_ids, [(a, b, produces), ...])``."""
    return _build


@pytest.fixture
def brick_catalog() -> ElementCatalog:
    """Earth + Water -> Mud, Mud + Fire -> Brick."""
    return _build(
        ["earth", "water", "fire"],
        [("earth", "water", "mud"), ("mud", "fire", "brick")],
    )


@pytest.fixture
def brick_graph(brick_catalog) -> RecipeGraph:
    return RecipeGraph(brick_catalog)
