"""Rebuilding derived state from the logs."""

from __future__ import annotations

import pytest
import pytest_asyncio

from perks.replay import rebuild_coin_account, rebuild_progression_totals, repair, verify
from tests.conftest import NOW


@pytest_asyncio.fixture
async def populated(store, progression, coins, redemptions):
    await progression.award_xp("u1", "knowledge", 120, "test", "a", NOW)
    await progression.award_xp("u1", None, 40, "test", "b", NOW)
    await coins.grant("u1", 500, "Start", actor_id=None, now=NOW)
    redemptions.create_benefit("Massage", 150, "WELLNESS", NOW, stock_limit=2, benefit_id="massage")
    first = await redemptions.request_redemption("u1", "massage", NOW)
    await redemptions.request_redemption("u1", "massage", NOW)
    await redemptions.reject(first.id, "admin-1", NOW)
    return store


class TestRebuild:
    @pytest.mark.asyncio
    async def test_coin_account_from_log(self, store, populated):
        account = rebuild_coin_account("u1", store.coins.transactions)
        assert account.total_earned == 500
        assert account.spent == 150
        assert account.available == 350

    @pytest.mark.asyncio
    async def test_progression_from_log(self, store, small_table, populated):
        totals = rebuild_progression_totals(store.progression.xp_events_for("u1"), small_table)
        assert totals["total_xp"] == 160
        assert totals["level"] == 2
        assert totals["skills"]["knowledge"] == {"total_xp": 120, "level": 2}


class TestVerifyAndRepair:
    @pytest.mark.asyncio
    async def test_consistent_after_normal_operations(self, store, small_table, populated):
        assert verify(store, small_table) == []

    @pytest.mark.asyncio
    async def test_detects_and_repairs_divergence(self, store, progression, small_table, populated):
        store.coins.get("u1").spent = 0
        prog = progression.get_progression("u1")
        prog.total_xp = 9999
        prog.skills["knowledge"].total_xp = 1
        store.benefits.get("massage").current_stock = 2

        problems = verify(store, small_table)
        assert any(p.startswith("coins:u1") for p in problems)
        assert any(p.startswith("progression:u1") for p in problems)
        assert any(p.startswith("skill:u1:knowledge") for p in problems)
        assert any(p.startswith("benefit:massage") for p in problems)

        assert repair(store, progression) == len(problems)
        assert verify(store, small_table) == []
        assert store.coins.get("u1").available == 350
        assert prog.total_xp == 160
        assert prog.level == 2
        assert store.benefits.get("massage").current_stock == 1
