"""Coin milestone progress."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from perks.coins.milestones import MilestoneBoard
from perks.coins.seed import COIN_MILESTONE_SEED_DATA
from perks.errors import InvalidAmount


@pytest.fixture
def board() -> MilestoneBoard:
    return MilestoneBoard(COIN_MILESTONE_SEED_DATA)


class TestMilestoneProgress:
    def test_zero_balance(self, board):
        progress = board.progress(0)
        assert progress["unlocked"] == []
        assert progress["next_milestone"].id == "bronze_saver"
        assert progress["percent"] == 0.0
        assert progress["all_unlocked"] is False

    def test_between_milestones(self, board):
        progress = board.progress(250)
        assert [m.id for m in progress["unlocked"]] == ["bronze_saver"]
        assert progress["next_milestone"].id == "silver_saver"
        assert progress["percent"] == 50.0

    def test_exact_threshold_unlocks(self, board):
        progress = board.progress(500)
        assert [m.id for m in progress["unlocked"]] == ["bronze_saver", "silver_saver"]
        assert progress["next_milestone"].id == "gold_saver"

    def test_all_unlocked(self, board):
        progress = board.progress(5000)
        assert progress["next_milestone"] is None
        assert progress["percent"] == 100.0
        assert progress["all_unlocked"] is True

    def test_negative_balance(self, board):
        with pytest.raises(InvalidAmount):
            board.progress(-1)

    def test_inactive_milestones_ignored(self):
        board = MilestoneBoard(
            [
                {"id": "a", "title": "A", "required_coins": 50, "is_active": False},
                {"id": "b", "title": "B", "required_coins": 200},
            ]
        )
        progress = board.progress(60)
        assert progress["unlocked"] == []
        assert progress["next_milestone"].id == "b"
        assert progress["percent"] == 30.0

    def test_empty_board(self):
        progress = MilestoneBoard().progress(100)
        assert progress["next_milestone"] is None
        assert progress["all_unlocked"] is False

    def test_sorted_by_required_coins(self):
        board = MilestoneBoard(
            [
                {"id": "big", "title": "Big", "required_coins": 900},
                {"id": "small", "title": "Small", "required_coins": 10},
            ]
        )
        assert [m.id for m in board.active()] == ["small", "big"]

    def test_required_coins_must_be_positive(self):
        with pytest.raises(ValidationError):
            MilestoneBoard([{"id": "x", "title": "X", "required_coins": 0}])
