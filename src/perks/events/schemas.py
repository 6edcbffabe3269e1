"""Pydantic models for inbound domain events and notifications."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from perks.facade import EventOutcome


# --- Inbound events ---


class UserEvent(BaseModel):
    user_id: str


class TrainingCompletedEvent(UserEvent):
    training_id: str
    passed: bool = True


class CoinsEarnedEvent(UserEvent):
    amount: int
    reason: str


class FeedbackGivenEvent(UserEvent):
    feedback_id: str


class LevelUpSummary(BaseModel):
    old_level: int
    new_level: int
    skill_id: str | None = None


class EventOutcomeResponse(BaseModel):
    skipped: bool = False
    xp_awarded: int = 0
    coins_awarded: int = 0
    level_ups: list[LevelUpSummary] = []
    unlocked_achievements: list[str] = []
    notifications: int = 0

    @classmethod
    def from_outcome(cls, outcome: EventOutcome) -> EventOutcomeResponse:
        return cls(
            skipped=outcome.skipped,
            xp_awarded=sum(e.amount for e in outcome.xp_events),
            coins_awarded=sum(t.amount for t in outcome.coin_transactions),
            level_ups=[
                LevelUpSummary(old_level=e.old_level, new_level=e.new_level, skill_id=e.skill_id)
                for e in outcome.level_ups
            ],
            unlocked_achievements=[u.achievement.id for u in outcome.unlocks],
            notifications=len(outcome.notifications),
        )


# --- Notifications ---


class NotificationResponse(BaseModel):
    id: str
    kind: str
    title: str
    payload: dict = {}
    is_read: bool
    created_at: datetime


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    total: int
    unread: int
    page: int
    per_page: int


class ClearNotificationsResponse(BaseModel):
    removed: int
