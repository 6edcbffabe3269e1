"""In-memory records for progression, coins and redemptions.

Append-only records (XPEvent, LevelUpEvent, CoinTransaction) are frozen.
Derived fields (levels, available coins) are recomputed by the services that
own them and are never written from outside.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any


def new_id() -> str:
    return str(uuid.uuid4())


# Counter metrics tracked both all-time and per quarter (metric name -> attribute).
COUNTER_METRICS: dict[str, str] = {
    "coinsEarned": "coins_earned",
    "trainingsCompleted": "trainings_completed",
    "punctualDays": "punctual_days",
    "feedbackGiven": "feedback_given",
}


# ---------------------------------------------------------------------------
# Progression
# ---------------------------------------------------------------------------


@dataclass
class SkillProgress:
    skill_id: str
    name: str
    total_xp: int = 0
    current_xp_in_level: int = 0
    level: int = 1
    # Highest level already reported by check_level_up
    announced_level: int = 1


@dataclass
class DailyStreak:
    current: int = 0
    longest: int = 0
    last_event_date: date | None = None


@dataclass
class MetricCounters:
    """Counters for the four tracked metrics."""

    coins_earned: int = 0
    trainings_completed: int = 0
    punctual_days: int = 0
    feedback_given: int = 0

    def get(self, metric: str) -> int:
        return getattr(self, COUNTER_METRICS[metric])

    def add(self, metric: str, delta: int) -> None:
        attr = COUNTER_METRICS[metric]
        setattr(self, attr, getattr(self, attr) + delta)


@dataclass
class QuarterlyStats(MetricCounters):
    quarter: str = ""


@dataclass
class UnlockedAchievement:
    achievement_id: str
    unlocked_at: datetime
    seen: bool = False


@dataclass
class UserProgression:
    user_id: str
    created_at: datetime
    total_xp: int = 0
    level: int = 1
    announced_level: int = 1
    current_level_xp: int = 0
    next_level_xp: int = 0
    skills: dict[str, SkillProgress] = field(default_factory=dict)
    unlocked_achievements: dict[str, UnlockedAchievement] = field(default_factory=dict)
    daily_streak: DailyStreak = field(default_factory=DailyStreak)
    quarterly_stats: QuarterlyStats = field(default_factory=QuarterlyStats)
    lifetime_stats: MetricCounters = field(default_factory=MetricCounters)
    last_active_at: datetime | None = None
    last_login_day: date | None = None


@dataclass(frozen=True)
class XPEvent:
    id: str
    user_id: str
    skill_id: str | None
    amount: int
    source_type: str
    description: str
    created_at: datetime


@dataclass(frozen=True)
class LevelUpEvent:
    id: str
    user_id: str
    old_level: int
    new_level: int
    skill_id: str | None
    created_at: datetime


# ---------------------------------------------------------------------------
# Coins
# ---------------------------------------------------------------------------


class TransactionType(str, Enum):
    EARNED = "EARNED"
    ADMIN_GRANT = "ADMIN_GRANT"
    RULE_EARNED = "RULE_EARNED"
    SPENT = "SPENT"
    REFUND = "REFUND"


EARNING_TYPES = frozenset({TransactionType.EARNED, TransactionType.ADMIN_GRANT, TransactionType.RULE_EARNED})


@dataclass
class CoinAccount:
    user_id: str
    total_earned: int = 0
    spent: int = 0
    updated_at: datetime | None = None

    @property
    def available(self) -> int:
        return self.total_earned - self.spent


@dataclass(frozen=True)
class CoinTransaction:
    id: str
    user_id: str
    amount: int
    type: TransactionType
    reason: str
    created_at: datetime
    related_benefit_id: str | None = None
    related_admin_id: str | None = None
    related_redemption_id: str | None = None
    related_transaction_id: str | None = None


# ---------------------------------------------------------------------------
# Benefits & redemptions
# ---------------------------------------------------------------------------


class RedemptionStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    FULFILLED = "FULFILLED"


@dataclass
class Benefit:
    id: str
    title: str
    coin_cost: int
    category: str
    created_at: datetime
    description: str = ""
    icon: str = ""
    is_active: bool = True
    stock_limit: int | None = None
    current_stock: int | None = None
    redeem_count: int = 0

    @property
    def is_bounded(self) -> bool:
        return self.stock_limit is not None


@dataclass
class Redemption:
    id: str
    user_id: str
    benefit_id: str
    coins_cost: int
    status: RedemptionStatus
    requested_at: datetime
    spend_transaction_id: str
    decided_at: datetime | None = None
    decided_by: str | None = None
    fulfilled_at: datetime | None = None
    notes: str | None = None


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


class NotificationKind(str, Enum):
    ACHIEVEMENT_UNLOCKED = "achievementUnlocked"
    LEVEL_UP = "levelUp"
    XP_AWARDED = "xpAwarded"


@dataclass
class NotificationEvent:
    id: str
    user_id: str
    kind: NotificationKind
    title: str
    created_at: datetime
    payload: dict[str, Any] = field(default_factory=dict)
    is_read: bool = False
