"""Tests for the game history file and owned elements."""
from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from Alchemy.catalog import Element, ElementCatalog, UnlockCondition
from Alchemy.errors import MalformedData
from Alchemy.graph import RecipeGraph
from Alchemy.history import History, HistoryItem, load_history, unlocked_elements
from Alchemy.resolver import PathResolver
from Alchemy.resolver_logging import LogLevel, create_string_logger


def write_history(path: Path, rows) -> Path:
    path.write_text(json.dumps(rows), encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Tests: Loading
# ---------------------------------------------------------------------------

class TestLoadHistory:

    def test_rows(self, tmp_path: Path):
        path = write_history(tmp_path / "history.json", [["1", "2", 1700000000000]])
        history = load_history(path)
        assert len(history) == 1
        item = history.items[0]
        assert (item.ingredient_a, item.ingredient_b) == ("1", "2")
        assert item.performed_at == datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)

    def test_numeric_ids(self, tmp_path: Path):
        path = write_history(tmp_path / "history.json", [[1, 2, 0]])
        assert load_history(path).has_combination("1", "2")

    def test_empty_file_list(self, tmp_path: Path):
        path = write_history(tmp_path / "history.json", [])
        assert len(load_history(path)) == 0

    def test_wrong_shape(self, tmp_path: Path):
        path = write_history(tmp_path / "history.json", [["1", "2"]])
        with pytest.raises(MalformedData, match="invalid history"):
            load_history(path)

    def test_illegal_timestamp(self, tmp_path: Path):
        path = write_history(tmp_path / "history.json", [["1", "2", 10 ** 20]])
        with pytest.raises(MalformedData, match="legal timestamp"):
            load_history(path)

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(MalformedData, match="Unable to read"):
            load_history(tmp_path / "nope.json")

    def test_not_json(self, tmp_path: Path):
        path = tmp_path / "history.json"
        path.write_text("[[", encoding="utf-8")
        with pytest.raises(MalformedData, match="Invalid JSON"):
            load_history(path)


# ---------------------------------------------------------------------------
# Tests: Queries
# ---------------------------------------------------------------------------

class TestHistory:

    def test_has_combination_ignores_order(self):
        history = History.from_rows([("earth", "water", 0)])
        assert history.has_combination("earth", "water")
        assert history.has_combination("water", "earth")
        assert not history.has_combination("earth", "fire")

    def test_empty_history(self):
        history = History()
        assert len(history) == 0
        assert list(history) == []
        assert not history.has_combination("a", "b")

    def test_item_pair(self):
        item = HistoryItem.from_row("z", "z", 0)
        assert item.pair == frozenset({"z"})

    def test_acquired_elements(self, brick_catalog):
        history = History.from_rows([("water", "earth", 0)])
        assert history.acquired_elements(brick_catalog) == frozenset({"mud"})

    def test_unknown_combination_is_logged(self, brick_catalog):
        logger, buffer = create_string_logger(LogLevel.MINIMAL)
        history = History.from_rows([("fire", "water", 0), ("earth", "water", 0)])
        acquired = history.acquired_elements(brick_catalog, logger)
        assert acquired == frozenset({"mud"})
        assert "combination between Fire and Water doesn't exist" in buffer.getvalue()

    def test_resolver_skips_owned_elements(self, brick_catalog):
        history = History.from_rows([("earth", "water", 0)])
        resolver = PathResolver(
            RecipeGraph(brick_catalog),
            available=history.acquired_elements(brick_catalog),
        )
        assert list(resolver.resolve("brick")) == [("mud", "fire", "brick")]


# ---------------------------------------------------------------------------
# Tests: Unlock conditions
# ---------------------------------------------------------------------------

@pytest.fixture
def conditional_catalog(brick_catalog) -> ElementCatalog:
    """Brick catalog plus Time (after 4 discoveries) and Spirit (Mud and Time)."""
    elements = list(brick_catalog) + [
        Element("time", "Time", condition=UnlockCondition(UnlockCondition.PROGRESS, total=4)),
        Element("spirit", "Spirit", condition=UnlockCondition(
            UnlockCondition.ELEMENTS, elements=("mud", "time"), minimum=2)),
    ]
    return ElementCatalog(elements, brick_catalog.recipes())


class TestUnlockConditions:

    def test_nothing_unlocked_from_base_only(self, conditional_catalog):
        assert unlocked_elements(conditional_catalog, []) == frozenset()

    def test_progress_counts_base_elements(self, conditional_catalog):
        # three base elements plus two discoveries is more than four
        assert "time" in unlocked_elements(conditional_catalog, ["mud", "brick"])
        assert "time" not in unlocked_elements(conditional_catalog, ["mud"])

    def test_unlock_can_trigger_another(self, conditional_catalog):
        assert unlocked_elements(conditional_catalog, ["mud", "brick"]) == frozenset({"time", "spirit"})

    def test_elements_minimum(self, brick_catalog):
        ghost = Element("ghost", "Ghost", condition=UnlockCondition(
            UnlockCondition.ELEMENTS, elements=("mud", "brick")))
        catalog = ElementCatalog(list(brick_catalog) + [ghost], brick_catalog.recipes())
        assert unlocked_elements(catalog, ["brick"]) == frozenset({"ghost"})

    def test_acquired_includes_unlocked(self, conditional_catalog):
        history = History.from_rows([("earth", "water", 0), ("mud", "fire", 0)])
        assert history.acquired_elements(conditional_catalog) == frozenset(
            {"mud", "brick", "time", "spirit"}
        )
