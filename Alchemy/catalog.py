"""Element catalog: the immutable table of elements and the recipes producing them.

The catalog owns identity and lookup. It is built once from raw element and
recipe records, validates every reference, and is never mutated afterwards,
so any number of resolvers may share it.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Collection, Dict, FrozenSet, Iterable, Iterator, List, Optional, Tuple, Union

from .errors import ElementNotFound, MalformedData


@dataclass(frozen=True)
class UnlockCondition:
    """
    How an element without a recipe becomes available during the game.

    ``progress`` unlocks once more than ``total`` elements are discovered;
    ``elements`` unlocks once at least ``minimum`` of ``elements`` are.
    """
    kind: str
    total: int = 0
    elements: Tuple[str, ...] = ()
    minimum: int = 1

    PROGRESS = "progress"
    ELEMENTS = "elements"

    def is_met(self, discovered: Collection[str]) -> bool:
        if self.kind == self.PROGRESS:
            return len(discovered) > self.total
        return sum(1 for key in self.elements if key in discovered) >= self.minimum

    def describe(self, catalog: ElementCatalog) -> str:
        if self.kind == self.PROGRESS:
            return f"Will be unlocked after discovering {self.total} elements"
        names = ", ".join(catalog.name_of(key) for key in self.elements)
        return f"Will be unlocked after discovering {self.minimum} elements from those: {names}"


@dataclass(frozen=True)
class Element:
    """A single element of the game."""
    id: str
    name: str
    is_base: bool = False  # Available from the start, has no recipe
    final: bool = False  # Cannot be combined into anything else
    hidden: bool = False
    condition: Optional[UnlockCondition] = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Element):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Recipe:
    """Two ingredients (possibly the same element twice) that produce an element."""
    ingredient_a: str
    ingredient_b: str
    produces: str

    @property
    def pair(self) -> FrozenSet[str]:
        return frozenset((self.ingredient_a, self.ingredient_b))

    @property
    def ingredients(self) -> Tuple[str, ...]:
        """Distinct ingredient ids in recipe order; a self-combination has one."""
        if self.is_self_combination:
            return (self.ingredient_a,)
        return (self.ingredient_a, self.ingredient_b)

    @property
    def is_self_combination(self) -> bool:
        return self.ingredient_a == self.ingredient_b

    def has(self, element_id: str) -> bool:
        return element_id in (self.ingredient_a, self.ingredient_b)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Recipe):
            return NotImplemented
        return self.produces == other.produces and self.pair == other.pair

    def __hash__(self) -> int:
        return hash((self.produces, self.pair))


ElementRef = Union[Element, str]


def element_id(ref: ElementRef) -> str:
    """Return the id of an element given either the element or its id."""
    return ref.id if isinstance(ref, Element) else str(ref)


class ElementCatalog:
    """
    Immutable lookup table of elements and recipes.

    Parameters
    ----------
    elements : iterable of Element
        Every element of the game. Ids must be unique.
    recipes : iterable of Recipe
        Every recipe. Ingredient and output ids must name known elements.
        Order is kept per produced element because the resolver uses it to
        break ties; a repeat of an earlier equal recipe is dropped.

    Raises
    ------
    MalformedData
        On a duplicate element id, or a recipe or unlock condition referencing
        an unknown id.
    """
    def __init__(self, elements: Iterable[Element], recipes: Iterable[Recipe]):
        self._elements: Dict[str, Element] = {}
        for element in elements:
            if element.id in self._elements:
                raise MalformedData(f"duplicate element id {element.id!r}")
            self._elements[element.id] = element

        for element in self._elements.values():
            if element.condition is None:
                continue
            for ref in element.condition.elements:
                if ref not in self._elements:
                    raise MalformedData(
                        f"unlock condition of {element.id!r} references unknown element {ref!r}"
                    )

        by_output: Dict[str, List[Recipe]] = {}
        for recipe in recipes:
            for ref in (recipe.ingredient_a, recipe.ingredient_b, recipe.produces):
                if ref not in self._elements:
                    raise MalformedData(
                        f"recipe {recipe.ingredient_a} + {recipe.ingredient_b} -> "
                        f"{recipe.produces} references unknown element {ref!r}"
                    )
            known = by_output.setdefault(recipe.produces, [])
            if recipe not in known:
                known.append(recipe)

        self._recipes_by_output: Dict[str, Tuple[Recipe, ...]] = {k: tuple(v) for k, v in by_output.items()}
        self._recipe_count = sum(len(v) for v in self._recipes_by_output.values())

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._elements)

    def __iter__(self) -> Iterator[Element]:
        return iter(self._elements.values())

    def __contains__(self, ref: object) -> bool:
        if isinstance(ref, (Element, str)):
            return element_id(ref) in self._elements
        return False

    def __getitem__(self, ref: ElementRef) -> Element:
        key = element_id(ref)
        try:
            return self._elements[key]
        except KeyError:
            raise ElementNotFound(f"can't find element #{key}") from None

    def get(self, ref: ElementRef) -> Optional[Element]:
        return self._elements.get(element_id(ref))

    @property
    def recipe_count(self) -> int:
        return self._recipe_count

    def recipes_producing(self, ref: ElementRef) -> Tuple[Recipe, ...]:
        """All recipes that produce the element, in registration order."""
        return self._recipes_by_output.get(element_id(ref), ())

    def recipes(self) -> Iterator[Recipe]:
        """Iterate over every recipe, grouped by produced element in catalog order."""
        for key in self._elements:
            yield from self._recipes_by_output.get(key, ())

    def base_elements(self) -> FrozenSet[Element]:
        return frozenset(e for e in self._elements.values() if e.is_base)

    def produced_by(self, ingredient_a: str, ingredient_b: str) -> List[Element]:
        """Return the elements produced by combining the two ingredients (in either order)."""
        pair = frozenset((ingredient_a, ingredient_b))
        return [
            self._elements[recipe.produces]
            for recipe in self.recipes()
            if recipe.pair == pair
        ]

    def find(self, query: str) -> Element:
        """
        Look up an element by id or by (case-insensitive) display name.

        Raises
        ------
        ElementNotFound
            If the query is empty or matches nothing.
        """
        query = query.strip()
        if not query:
            raise ElementNotFound("empty element name")
        if query in self._elements:
            return self._elements[query]
        lowered = query.lower()
        for element in self._elements.values():
            if element.name.lower() == lowered:
                return element
        raise ElementNotFound(f"element not found: {query}")

    def name_of(self, ref: ElementRef) -> str:
        element = self.get(ref)
        return element.name if element else element_id(ref)
