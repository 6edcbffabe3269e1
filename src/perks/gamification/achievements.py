"""Achievement catalog and engine — evaluates conditions against progression state.

The engine only records unlocks and describes their rewards as
``RewardEffect`` values; the facade applies them to the XP and coin ledgers.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

import structlog
from pydantic import BaseModel, Field, ValidationError, field_validator

from perks.errors import InvalidAchievement, NotFound
from perks.gamification.periods import calendar_day, effective_streak
from perks.gamification.progression import ProgressionLedger
from perks.models import COUNTER_METRICS, UnlockedAchievement, UserProgression

logger = structlog.get_logger()

ALL_TIME_ONLY_METRICS = frozenset({"totalXP", "level", "consecutiveDays", "longestStreak", "achievementsUnlocked"})
KNOWN_METRICS = ALL_TIME_ONLY_METRICS | frozenset(COUNTER_METRICS)

Operator = Literal["eq", "gte", "gt", "lte", "lt"]


class Condition(BaseModel):
    metric: str
    operator: Operator = "gte"
    target: float
    timeframe: Literal["allTime", "quarterly"] = "allTime"

    @field_validator("operator", mode="before")
    @classmethod
    def _normalize_operator(cls, v: Any) -> Any:
        # Older rule exports spell equality out
        return "eq" if v == "equals" else v


class Reward(BaseModel):
    kind: Literal["xp", "skillXp", "coins"]
    amount: int
    skill_id: str | None = None


class Achievement(BaseModel):
    id: str
    name: str
    description: str = ""
    icon: str = ""
    category: str = "general"
    rarity: str = "common"
    conditions: list[Condition] = Field(default_factory=list)
    rewards: list[Reward] = Field(default_factory=list)
    is_active: bool = True
    is_hidden: bool = False


@dataclass(frozen=True)
class RewardEffect:
    """A reward to apply for an unlock: XP (optionally to a skill) or coins."""

    user_id: str
    achievement_id: str
    kind: str
    amount: int
    description: str
    skill_id: str | None = None


@dataclass
class AchievementUnlock:
    achievement: Achievement
    unlocked_at: datetime
    effects: list[RewardEffect] = field(default_factory=list)


def compare(value: float, operator: str, target: float) -> bool:
    if operator == "eq":
        return value == target
    if operator == "gte":
        return value >= target
    if operator == "gt":
        return value > target
    if operator == "lte":
        return value <= target
    if operator == "lt":
        return value < target
    return False


def validate_achievement(achievement: Achievement, skills: Iterable[str] | None = None) -> Achievement:
    """Reject rules that could never be evaluated safely."""
    if not achievement.conditions:
        raise InvalidAchievement(achievement.id, "at least one condition is required")

    for condition in achievement.conditions:
        if condition.metric not in KNOWN_METRICS:
            raise InvalidAchievement(achievement.id, f"unknown metric {condition.metric!r}")
        if condition.timeframe == "quarterly" and condition.metric in ALL_TIME_ONLY_METRICS:
            raise InvalidAchievement(achievement.id, f"metric {condition.metric!r} has no quarterly bucket")

    skill_ids = set(skills) if skills is not None else None
    for reward in achievement.rewards:
        if reward.amount <= 0:
            raise InvalidAchievement(achievement.id, f"reward amount must be positive, got {reward.amount}")
        if reward.kind == "skillXp":
            if not reward.skill_id:
                raise InvalidAchievement(achievement.id, "skillXp reward needs a skill_id")
            if skill_ids is not None and reward.skill_id not in skill_ids:
                raise InvalidAchievement(achievement.id, f"unknown skill {reward.skill_id!r}")

    return achievement


def parse_achievement(data: Achievement | dict[str, Any], skills: Iterable[str] | None = None) -> Achievement:
    if isinstance(data, Achievement):
        return validate_achievement(data, skills)
    try:
        achievement = Achievement.model_validate(data)
    except ValidationError as exc:
        raise InvalidAchievement(str(data.get("id", "?")), exc.errors()[0]["msg"]) from exc
    return validate_achievement(achievement, skills)


class AchievementCatalog:
    """Validated achievement definitions, keyed by id."""

    def __init__(self, achievements: Iterable[Achievement | dict[str, Any]] = (), skills: Iterable[str] | None = None) -> None:
        self._skills = list(skills) if skills is not None else None
        self._items: dict[str, Achievement] = {}
        for data in achievements:
            self.add(data)

    def __len__(self) -> int:
        return len(self._items)

    def get(self, achievement_id: str) -> Achievement:
        achievement = self._items.get(achievement_id)
        if achievement is None:
            raise NotFound("achievement", achievement_id)
        return achievement

    def ordered(self) -> list[Achievement]:
        """All definitions in ascending id order."""
        return [self._items[k] for k in sorted(self._items)]

    def add(self, data: Achievement | dict[str, Any]) -> Achievement:
        achievement = parse_achievement(data, self._skills)
        if achievement.id in self._items:
            raise InvalidAchievement(achievement.id, "duplicate id")
        self._items[achievement.id] = achievement
        return achievement

    def update(self, achievement_id: str, changes: dict[str, Any]) -> Achievement:
        current = self.get(achievement_id)
        merged = current.model_dump()
        merged.update(changes)
        merged["id"] = achievement_id
        achievement = parse_achievement(merged, self._skills)
        self._items[achievement_id] = achievement
        return achievement

    def toggle_active(self, achievement_id: str) -> Achievement:
        current = self.get(achievement_id)
        achievement = current.model_copy(update={"is_active": not current.is_active})
        self._items[achievement_id] = achievement
        return achievement


class AchievementEngine:
    """Evaluates achievement conditions and records unlocks at most once per user."""

    def __init__(self, progression: ProgressionLedger, catalog: AchievementCatalog) -> None:
        self.progression = progression
        self.catalog = catalog
        self.store = progression.store

    def snapshot(self, prog: UserProgression, now: datetime) -> dict[str, dict[str, float]]:
        """Metric values for both timeframes, frozen before evaluation."""
        quarterly = self.progression.current_quarterly_stats(prog, now)
        lifetime = prog.lifetime_stats
        today = calendar_day(now, self.progression.tz)

        all_time: dict[str, float] = {m: lifetime.get(m) for m in COUNTER_METRICS}
        all_time.update(
            {
                "totalXP": prog.total_xp,
                "level": prog.level,
                "consecutiveDays": effective_streak(prog.daily_streak, today),
                "longestStreak": prog.daily_streak.longest,
                "achievementsUnlocked": len(prog.unlocked_achievements),
            }
        )
        return {
            "allTime": all_time,
            "quarterly": {m: quarterly.get(m) for m in COUNTER_METRICS},
        }

    def condition_holds(self, condition: Condition, snapshot: dict[str, dict[str, float]]) -> bool:
        value = snapshot[condition.timeframe].get(condition.metric, 0)
        return compare(value, condition.operator, condition.target)

    async def evaluate(self, user_id: str, now: datetime) -> list[AchievementUnlock]:
        """Unlock every active achievement whose conditions all hold.

        Conditions read one snapshot taken before the pass, so an unlock in
        this pass never enables another one in the same pass. Achievements
        are visited in ascending id order.
        """
        unlocks: list[AchievementUnlock] = []

        async with self.store.locks.user(user_id):
            prog = self.store.progression.get(user_id)
            if prog is None:
                return unlocks

            snapshot = self.snapshot(prog, now)

            for achievement in self.catalog.ordered():
                if not achievement.is_active or achievement.id in prog.unlocked_achievements:
                    continue
                if not all(self.condition_holds(c, snapshot) for c in achievement.conditions):
                    continue

                prog.unlocked_achievements[achievement.id] = UnlockedAchievement(
                    achievement_id=achievement.id,
                    unlocked_at=now,
                )
                unlocks.append(
                    AchievementUnlock(
                        achievement=achievement,
                        unlocked_at=now,
                        effects=self._effects_for(user_id, achievement),
                    )
                )

        for unlock in unlocks:
            logger.info(
                "achievement_unlocked",
                user_id=user_id,
                achievement_id=unlock.achievement.id,
                rewards=len(unlock.effects),
            )
        return unlocks

    def _effects_for(self, user_id: str, achievement: Achievement) -> list[RewardEffect]:
        return [
            RewardEffect(
                user_id=user_id,
                achievement_id=achievement.id,
                kind=reward.kind,
                amount=reward.amount,
                skill_id=reward.skill_id if reward.kind == "skillXp" else None,
                description=f"Achievement: {achievement.name}",
            )
            for reward in achievement.rewards
        ]

    # ── Queries ──

    def unlocked_for(self, user_id: str) -> list[tuple[Achievement, UnlockedAchievement]]:
        prog = self.store.progression.get(user_id)
        if prog is None:
            return []
        result = []
        for record in prog.unlocked_achievements.values():
            try:
                result.append((self.catalog.get(record.achievement_id), record))
            except NotFound:
                continue  # definition removed after unlock
        return result

    def locked_for(self, user_id: str) -> list[Achievement]:
        """Active, visible achievements the user has not unlocked yet."""
        prog = self.store.progression.get(user_id)
        unlocked = prog.unlocked_achievements if prog else {}
        return [a for a in self.catalog.ordered() if a.id not in unlocked and a.is_active and not a.is_hidden]

    def progress_stats(self, user_id: str) -> dict[str, Any]:
        visible = [a for a in self.catalog.ordered() if a.is_active and not a.is_hidden]
        unlocked = self.unlocked_for(user_id)
        rate = (len(unlocked) / len(visible) * 100) if visible else 0.0
        recent = sorted(unlocked, key=lambda pair: pair[1].unlocked_at, reverse=True)[:3]
        return {
            "total_achievements": len(visible),
            "unlocked_achievements": len(unlocked),
            "completion_rate": round(rate, 2),
            "recent_unlocks": [record.achievement_id for _, record in recent],
        }

    def unlock_count(self, achievement_id: str) -> int:
        self.catalog.get(achievement_id)
        return sum(1 for prog in self.store.progression.all() if achievement_id in prog.unlocked_achievements)

    async def mark_seen(self, user_id: str, achievement_ids: list[str] | None = None) -> int:
        """Mark unlocked achievements as seen; all of them when no ids are given."""
        async with self.store.locks.user(user_id):
            prog = self.progression.get_progression(user_id)
            count = 0
            for record in prog.unlocked_achievements.values():
                if achievement_ids is not None and record.achievement_id not in achievement_ids:
                    continue
                if not record.seen:
                    record.seen = True
                    count += 1
            return count
