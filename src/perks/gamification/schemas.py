"""Pydantic request/response models for progression and achievement endpoints."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel

from perks.gamification.level_table import LevelDefinition


# --- Levels ---


class AllLevelsResponse(BaseModel):
    levels: list[LevelDefinition]


class LevelTableUpdate(BaseModel):
    levels: list[LevelDefinition]


# --- Progression ---


class SkillResponse(BaseModel):
    skill_id: str
    name: str
    total_xp: int
    level: int
    current_xp_in_level: int


class StreakResponse(BaseModel):
    current: int
    longest: int
    last_event_date: date | None = None


class QuarterlyStatsResponse(BaseModel):
    quarter: str
    coins_earned: int
    trainings_completed: int
    punctual_days: int
    feedback_given: int


class ProgressionResponse(BaseModel):
    user_id: str
    total_xp: int
    level: int
    level_title: str
    level_icon: str
    level_color: str
    current_level_xp: int
    next_level_xp: int
    progress_percent: float
    next_level: int
    next_title: str
    skills: list[SkillResponse]
    streak: StreakResponse
    quarterly_stats: QuarterlyStatsResponse
    achievements_unlocked: int
    last_active_at: datetime | None = None


class XPHistoryEntry(BaseModel):
    id: str
    amount: int
    skill_id: str | None = None
    source: str
    description: str
    created_at: datetime


class XPHistoryResponse(BaseModel):
    entries: list[XPHistoryEntry]
    total: int
    page: int
    per_page: int


class SummaryResponse(BaseModel):
    user_id: str
    level: int
    total_xp: int
    achievements: int
    weekly_xp: int
    rank: int


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: str
    xp: int
    level: int


class LeaderboardResponse(BaseModel):
    skill_id: str | None = None
    entries: list[LeaderboardEntry]


class ManualXPRequest(BaseModel):
    amount: int
    skill_id: str | None = None
    reason: str = "Manuelle Vergabe"


class LevelUpEntry(BaseModel):
    old_level: int
    new_level: int
    skill_id: str | None = None
    created_at: datetime


class LevelUpCheckResponse(BaseModel):
    level_ups: list[LevelUpEntry]


# --- Achievements ---


class AchievementResponse(BaseModel):
    id: str
    name: str
    description: str
    icon: str
    category: str
    rarity: str
    is_active: bool
    is_hidden: bool
    conditions: list[dict]
    rewards: list[dict]
    unlock_count: int = 0


class AllAchievementsResponse(BaseModel):
    achievements: list[AchievementResponse]


class UnlockedAchievementResponse(BaseModel):
    id: str
    name: str
    icon: str
    rarity: str
    unlocked_at: datetime
    seen: bool


class AchievementStatsResponse(BaseModel):
    total_achievements: int
    unlocked_achievements: int
    completion_rate: float
    recent_unlocks: list[str]


class UserAchievementsResponse(BaseModel):
    unlocked: list[UnlockedAchievementResponse]
    locked: list[AchievementResponse]
    stats: AchievementStatsResponse


class MarkSeenRequest(BaseModel):
    achievement_ids: list[str] | None = None


class MarkSeenResponse(BaseModel):
    marked: int
