"""Tests for the element catalog and recipe graph.

Validates that:
1. Duplicate ids and dangling recipe references are rejected
2. Recipes keep registration order and repeats are dropped
3. Lookup works by id, by element and by case-insensitive name
4. The graph exposes forward and reverse edges, with none for base elements
"""
from __future__ import annotations

import pytest

from Alchemy.catalog import Element, ElementCatalog, Recipe, element_id
from Alchemy.errors import ElementNotFound, MalformedData
from Alchemy.graph import RecipeGraph


# ---------------------------------------------------------------------------
# Tests: Construction
# ---------------------------------------------------------------------------

class TestCatalogConstruction:

    def test_duplicate_id_rejected(self):
        with pytest.raises(MalformedData, match="duplicate"):
            ElementCatalog([Element("a", "A"), Element("a", "Other")], [])

    def test_dangling_ingredient_rejected(self):
        elements = [Element("a", "A", is_base=True), Element("c", "C")]
        with pytest.raises(MalformedData, match="'b'"):
            ElementCatalog(elements, [Recipe("a", "b", "c")])

    def test_dangling_output_rejected(self):
        elements = [Element("a", "A", is_base=True)]
        with pytest.raises(MalformedData):
            ElementCatalog(elements, [Recipe("a", "a", "zzz")])

    def test_repeated_recipe_dropped(self, make_catalog):
        """b + a is the same recipe as a + b for the same output."""
        catalog = make_catalog(["a", "b"], [("a", "b", "c"), ("b", "a", "c")])
        assert len(catalog.recipes_producing("c")) == 1
        assert catalog.recipe_count == 1

    def test_recipe_order_kept(self, make_catalog):
        catalog = make_catalog(
            ["a", "b", "x"],
            [("a", "b", "c"), ("x", "x", "c"), ("a", "x", "c")],
        )
        pairs = [r.pair for r in catalog.recipes_producing("c")]
        assert pairs == [frozenset("ab"), frozenset("x"), frozenset("ax")]


# ---------------------------------------------------------------------------
# Tests: Lookup
# ---------------------------------------------------------------------------

class TestCatalogLookup:

    def test_len_and_iteration_order(self, brick_catalog):
        assert len(brick_catalog) == 5
        assert [e.id for e in brick_catalog] == ["earth", "water", "fire", "mud", "brick"]

    def test_getitem_by_id_and_element(self, brick_catalog):
        mud = brick_catalog["mud"]
        assert mud.name == "Mud"
        assert brick_catalog[mud] is mud
        assert "mud" in brick_catalog
        assert mud in brick_catalog
        assert 42 not in brick_catalog

    def test_unknown_id_raises(self, brick_catalog):
        with pytest.raises(ElementNotFound, match="#nope"):
            brick_catalog["nope"]
        # Also a LookupError for generic callers
        with pytest.raises(LookupError):
            brick_catalog["nope"]

    def test_find_by_name_is_case_insensitive(self, brick_catalog):
        assert brick_catalog.find("BRICK").id == "brick"
        assert brick_catalog.find("  mud ").id == "mud"

    def test_find_errors(self, brick_catalog):
        with pytest.raises(ElementNotFound, match="empty"):
            brick_catalog.find("   ")
        with pytest.raises(ElementNotFound, match="element not found: Lava"):
            brick_catalog.find("Lava")

    def test_base_elements(self, brick_catalog):
        assert {e.id for e in brick_catalog.base_elements()} == {"earth", "water", "fire"}

    def test_produced_by_either_order(self, brick_catalog):
        assert [e.id for e in brick_catalog.produced_by("water", "earth")] == ["mud"]
        assert brick_catalog.produced_by("fire", "water") == []

    def test_name_of_unknown_falls_back_to_id(self, brick_catalog):
        assert brick_catalog.name_of("mud") == "Mud"
        assert brick_catalog.name_of("ghost") == "ghost"

    def test_element_identity_is_by_id(self):
        assert Element("a", "A") == Element("a", "Renamed")
        assert len({Element("a", "A"), Element("a", "B")}) == 1
        assert str(Element("a", "Air")) == "Air"
        assert element_id(Element("a", "A")) == "a"


# ---------------------------------------------------------------------------
# Tests: Recipe
# ---------------------------------------------------------------------------

class TestRecipe:

    def test_self_combination_has_one_ingredient(self):
        recipe = Recipe("z", "z", "w")
        assert recipe.is_self_combination
        assert recipe.ingredients == ("z",)
        assert recipe.has("z")

    def test_equality_ignores_ingredient_order(self):
        assert Recipe("a", "b", "c") == Recipe("b", "a", "c")
        assert Recipe("a", "b", "c") != Recipe("a", "b", "d")
        assert hash(Recipe("a", "b", "c")) == hash(Recipe("b", "a", "c"))


# ---------------------------------------------------------------------------
# Tests: Graph
# ---------------------------------------------------------------------------

class TestRecipeGraph:

    def test_base_elements_have_no_recipes(self, make_catalog):
        # A base element that also appears as a recipe output is still base
        catalog = make_catalog(["a", "b"], [("a", "a", "b")])
        graph = RecipeGraph(catalog)
        assert graph.recipes_for("b") == ()
        assert graph.is_base("b")

    def test_forward_edges(self, brick_graph):
        recipes = brick_graph.recipes_for("brick")
        assert len(recipes) == 1
        assert recipes[0].pair == frozenset({"mud", "fire"})

    def test_reverse_edges(self, brick_graph):
        assert [r.produces for r in brick_graph.used_in("mud")] == ["brick"]
        assert [r.produces for r in brick_graph.used_in("earth")] == ["mud"]
        assert brick_graph.used_in("brick") == ()

    def test_self_combination_listed_once_in_reverse_edges(self, make_catalog):
        graph = RecipeGraph(make_catalog(["z"], [("z", "z", "w")]))
        assert len(graph.used_in("z")) == 1

    def test_len_matches_catalog(self, brick_graph):
        assert len(brick_graph) == 5
        assert {e.id for e in brick_graph.base_elements()} == {"earth", "water", "fire"}
