"""Per-key locks of the in-memory store."""

from __future__ import annotations

import asyncio

import pytest

from perks.store import KeyedLocks
from tests.conftest import NOW


class TestKeyedLocks:
    def test_same_key_same_lock_while_referenced(self):
        locks = KeyedLocks()
        lock = locks.user("u1")
        assert locks.user("u1") is lock
        assert locks.benefit("u1") is not lock

    @pytest.mark.asyncio
    async def test_released_locks_are_dropped(self):
        locks = KeyedLocks()
        for i in range(50):
            async with locks.user(f"u{i}"):
                pass
        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_lock_kept_while_waiters_exist(self):
        locks = KeyedLocks()
        order: list[str] = []

        async def worker(name: str) -> None:
            async with locks.user("u1"):
                order.append(f"{name}-in")
                await asyncio.sleep(0)
                order.append(f"{name}-out")

        await asyncio.gather(worker("a"), worker("b"))
        assert order == ["a-in", "a-out", "b-in", "b-out"]
        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_ledger_leaves_no_locks_behind(self, coins, store):
        for i in range(20):
            await coins.grant(f"u{i}", 10, "Start", actor_id=None, now=NOW)
        assert len(store.locks) == 0
