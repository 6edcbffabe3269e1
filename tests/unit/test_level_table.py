"""Unit tests for level thresholds and progress computation."""

from __future__ import annotations

import pytest

from perks.errors import ConfigurationError, InvalidLevelTable
from perks.gamification.level_table import DEFAULT_LEVELS, LevelTable


class TestDeriveLevel:
    """Test XP → level mapping on the default table."""

    def test_zero_xp_is_level_1(self):
        assert LevelTable.default().derive_level(0) == 1

    def test_just_below_threshold(self):
        assert LevelTable.default().derive_level(99) == 1

    def test_exact_threshold(self):
        assert LevelTable.default().derive_level(100) == 2

    def test_max_level(self):
        table = LevelTable.default()
        assert table.derive_level(2700) == 10
        assert table.derive_level(1_000_000) == 10

    def test_monotonic(self):
        """Level never decreases as XP grows."""
        table = LevelTable.default()
        levels = [table.derive_level(xp) for xp in range(0, 3500, 7)]
        assert levels == sorted(levels)

    def test_default_table_titles(self):
        table = LevelTable.default()
        assert len(table.levels) == len(DEFAULT_LEVELS) == 10
        assert table.get(1).title == "Neuling"
        assert table.max_level.title == "Sensei"
        assert table.get(11) is None


class TestLevelProgress:
    def test_mid_level(self):
        info = LevelTable.default().level_progress(150)
        assert info["level"] == 2
        assert info["title"] == "Anfänger"
        assert info["current_level_xp"] == 50
        assert info["next_level_xp"] == 150
        assert info["percent"] == 33.33
        assert info["next_level"] == 3
        assert info["next_title"] == "Lernender"

    def test_level_start(self):
        info = LevelTable.default().level_progress(0)
        assert info["current_level_xp"] == 0
        assert info["next_level_xp"] == 100
        assert info["percent"] == 0.0

    def test_max_level_saturates(self):
        """Past the last threshold, progress is pinned at 100%."""
        info = LevelTable.default().level_progress(3000)
        assert info["level"] == 10
        assert info["current_level_xp"] == 300
        assert info["next_level_xp"] == 300
        assert info["percent"] == 100.0
        assert info["next_level"] == 10

    def test_exactly_max_threshold(self):
        info = LevelTable.default().level_progress(2700)
        assert info["current_level_xp"] == 0
        assert info["percent"] == 100.0


class TestLevelsBetween:
    def test_multi_level_jump(self, small_table):
        assert small_table.levels_between(1, 3) == [2, 3]

    def test_no_change(self, small_table):
        assert small_table.levels_between(2, 2) == []


class TestValidation:
    """Malformed tables are rejected at load time."""

    def test_empty_table(self):
        with pytest.raises(InvalidLevelTable, match="empty"):
            LevelTable([])

    def test_must_start_at_zero(self):
        with pytest.raises(InvalidLevelTable, match="level 1 at 0 XP"):
            LevelTable([{"level_number": 1, "title": "A", "required_xp": 10}])

    def test_must_start_at_level_one(self):
        with pytest.raises(InvalidLevelTable):
            LevelTable([{"level_number": 2, "title": "A", "required_xp": 0}])

    def test_thresholds_strictly_increase(self):
        with pytest.raises(InvalidLevelTable, match="strictly increase"):
            LevelTable(
                [
                    {"level_number": 1, "title": "A", "required_xp": 0},
                    {"level_number": 2, "title": "B", "required_xp": 100},
                    {"level_number": 3, "title": "C", "required_xp": 100},
                ]
            )

    def test_level_numbers_strictly_increase(self):
        with pytest.raises(InvalidLevelTable, match="Level numbers"):
            LevelTable(
                [
                    {"level_number": 1, "title": "A", "required_xp": 0},
                    {"level_number": 1, "title": "B", "required_xp": 100},
                ]
            )

    def test_negative_threshold(self):
        with pytest.raises(InvalidLevelTable, match="Malformed"):
            LevelTable(
                [
                    {"level_number": 1, "title": "A", "required_xp": 0},
                    {"level_number": 2, "title": "B", "required_xp": -5},
                ]
            )

    def test_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            LevelTable([])
