"""Coin milestones: balance thresholds users work towards."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel, Field

from perks.errors import InvalidAmount


class CoinMilestone(BaseModel):
    id: str
    title: str
    description: str = ""
    required_coins: int = Field(gt=0)
    reward: str = ""
    is_active: bool = True


class MilestoneBoard:
    """Active milestones sorted by required coins."""

    def __init__(self, milestones: Iterable[CoinMilestone | dict[str, Any]] = ()) -> None:
        self._items: list[CoinMilestone] = []
        for data in milestones:
            self.add(data)

    def add(self, data: CoinMilestone | dict[str, Any]) -> CoinMilestone:
        milestone = data if isinstance(data, CoinMilestone) else CoinMilestone.model_validate(data)
        self._items.append(milestone)
        self._items.sort(key=lambda m: (m.required_coins, m.id))
        return milestone

    def active(self) -> list[CoinMilestone]:
        return [m for m in self._items if m.is_active]

    def unlocked(self, balance: int) -> list[CoinMilestone]:
        return [m for m in self.active() if balance >= m.required_coins]

    def next_milestone(self, balance: int) -> CoinMilestone | None:
        return next((m for m in self.active() if balance < m.required_coins), None)

    def progress(self, balance: int) -> dict[str, Any]:
        """Unlocked milestones, the next one and percent towards it (capped at 100)."""
        if balance < 0:
            raise InvalidAmount(balance, "balance")

        upcoming = self.next_milestone(balance)
        percent = 100.0
        if upcoming is not None:
            percent = round(min(balance / upcoming.required_coins * 100, 100.0), 2)

        unlocked = self.unlocked(balance)
        return {
            "balance": balance,
            "unlocked": unlocked,
            "next_milestone": upcoming,
            "percent": percent,
            "all_unlocked": upcoming is None and bool(unlocked),
        }
