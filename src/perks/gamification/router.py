"""Progression and achievement API endpoints."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query

from perks.dependencies import Services, get_clock, get_services, require_admin
from perks.events.schemas import EventOutcomeResponse
from perks.gamification.achievements import Achievement
from perks.gamification.level_table import LevelTable
from perks.gamification.schemas import (
    AchievementResponse,
    AchievementStatsResponse,
    AllAchievementsResponse,
    AllLevelsResponse,
    LeaderboardEntry,
    LeaderboardResponse,
    LevelTableUpdate,
    LevelUpCheckResponse,
    LevelUpEntry,
    ManualXPRequest,
    MarkSeenRequest,
    MarkSeenResponse,
    ProgressionResponse,
    QuarterlyStatsResponse,
    SkillResponse,
    StreakResponse,
    SummaryResponse,
    UnlockedAchievementResponse,
    UserAchievementsResponse,
    XPHistoryEntry,
    XPHistoryResponse,
)
from perks.gamification.periods import calendar_day, effective_streak

router = APIRouter(prefix="/api/v1", tags=["Gamification"])


def _achievement_response(services: Services, achievement: Achievement) -> AchievementResponse:
    return AchievementResponse(
        id=achievement.id,
        name=achievement.name,
        description=achievement.description,
        icon=achievement.icon,
        category=achievement.category,
        rarity=achievement.rarity,
        is_active=achievement.is_active,
        is_hidden=achievement.is_hidden,
        conditions=[c.model_dump() for c in achievement.conditions],
        rewards=[r.model_dump() for r in achievement.rewards],
        unlock_count=services.achievements.unlock_count(achievement.id),
    )


# ── Levels ──


@router.get("/levels", response_model=AllLevelsResponse)
async def list_levels(services: Services = Depends(get_services)):
    """Get all level definitions."""
    return AllLevelsResponse(levels=list(services.progression.level_table.levels))


@router.put("/levels", response_model=AllLevelsResponse)
async def replace_levels(
    body: LevelTableUpdate,
    services: Services = Depends(get_services),
    _admin: str | None = Depends(require_admin),
):
    """Replace the level table. Every cached level is re-derived."""
    table = LevelTable(body.levels)
    services.progression.replace_table(table)
    return AllLevelsResponse(levels=list(table.levels))


# ── Progression ──


@router.get("/users/{user_id}/progression", response_model=ProgressionResponse)
async def get_progression(
    user_id: str,
    services: Services = Depends(get_services),
    now: datetime = Depends(get_clock),
):
    """Level, skills, streak and quarterly counters for one user."""
    ledger = services.progression
    prog = ledger.get_progression(user_id)
    info = ledger.level_table.level_progress(prog.total_xp)
    quarterly = ledger.current_quarterly_stats(prog, now)

    return ProgressionResponse(
        user_id=user_id,
        total_xp=prog.total_xp,
        level=prog.level,
        level_title=info["title"],
        level_icon=info["icon"],
        level_color=info["color"],
        current_level_xp=prog.current_level_xp,
        next_level_xp=prog.next_level_xp,
        progress_percent=info["percent"],
        next_level=info["next_level"],
        next_title=info["next_title"],
        skills=[
            SkillResponse(
                skill_id=s.skill_id,
                name=s.name,
                total_xp=s.total_xp,
                level=s.level,
                current_xp_in_level=s.current_xp_in_level,
            )
            for s in prog.skills.values()
        ],
        streak=StreakResponse(
            current=effective_streak(prog.daily_streak, calendar_day(now, ledger.tz)),
            longest=prog.daily_streak.longest,
            last_event_date=prog.daily_streak.last_event_date,
        ),
        quarterly_stats=QuarterlyStatsResponse(
            quarter=quarterly.quarter,
            coins_earned=quarterly.coins_earned,
            trainings_completed=quarterly.trainings_completed,
            punctual_days=quarterly.punctual_days,
            feedback_given=quarterly.feedback_given,
        ),
        achievements_unlocked=len(prog.unlocked_achievements),
        last_active_at=prog.last_active_at,
    )


@router.get("/users/{user_id}/xp/history", response_model=XPHistoryResponse)
async def get_xp_history(
    user_id: str,
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=100),
    services: Services = Depends(get_services),
):
    """Paginated XP events, newest first."""
    entries, total = services.progression.xp_history(user_id, page, per_page)
    return XPHistoryResponse(
        entries=[
            XPHistoryEntry(
                id=e.id,
                amount=e.amount,
                skill_id=e.skill_id,
                source=e.source_type,
                description=e.description,
                created_at=e.created_at,
            )
            for e in entries
        ],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/users/{user_id}/summary", response_model=SummaryResponse)
async def get_summary(
    user_id: str,
    services: Services = Depends(get_services),
    now: datetime = Depends(get_clock),
):
    return SummaryResponse(**services.progression.summary(user_id, now))


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def get_leaderboard(
    skill_id: str | None = Query(None),
    limit: int = Query(10, ge=1, le=100),
    services: Services = Depends(get_services),
):
    """Users ranked by XP, overall or for one skill."""
    rows = services.progression.leaderboard(skill_id=skill_id, limit=limit)
    return LeaderboardResponse(skill_id=skill_id, entries=[LeaderboardEntry(**row) for row in rows])


@router.post("/users/{user_id}/xp", response_model=EventOutcomeResponse)
async def award_xp(
    user_id: str,
    body: ManualXPRequest,
    services: Services = Depends(get_services),
    now: datetime = Depends(get_clock),
    actor_id: str | None = Depends(require_admin),
):
    """Manual XP award by an admin."""
    outcome = await services.facade.award_manual_xp(user_id, body.skill_id, body.amount, body.reason, actor_id, now)
    return EventOutcomeResponse.from_outcome(outcome)


@router.post("/users/{user_id}/level-ups/check", response_model=LevelUpCheckResponse)
async def check_level_ups(
    user_id: str,
    services: Services = Depends(get_services),
    now: datetime = Depends(get_clock),
):
    """Report levels crossed since the last check."""
    events = await services.progression.check_level_up(user_id, now)
    return LevelUpCheckResponse(
        level_ups=[
            LevelUpEntry(old_level=e.old_level, new_level=e.new_level, skill_id=e.skill_id, created_at=e.created_at)
            for e in events
        ]
    )


# ── Achievements ──


@router.get("/achievements", response_model=AllAchievementsResponse)
async def list_achievements(
    include_hidden: bool = Query(False),
    services: Services = Depends(get_services),
):
    """Get all achievement definitions with unlock counts."""
    items = [
        _achievement_response(services, a)
        for a in services.catalog.ordered()
        if include_hidden or not a.is_hidden
    ]
    return AllAchievementsResponse(achievements=items)


@router.post("/achievements", response_model=AchievementResponse, status_code=201)
async def create_achievement(
    body: Achievement,
    services: Services = Depends(get_services),
    _admin: str | None = Depends(require_admin),
):
    achievement = services.catalog.add(body)
    return _achievement_response(services, achievement)


@router.get("/users/{user_id}/achievements", response_model=UserAchievementsResponse)
async def get_user_achievements(user_id: str, services: Services = Depends(get_services)):
    """Unlocked and still-locked achievements plus completion stats."""
    engine = services.achievements
    unlocked = sorted(engine.unlocked_for(user_id), key=lambda pair: pair[1].unlocked_at, reverse=True)
    return UserAchievementsResponse(
        unlocked=[
            UnlockedAchievementResponse(
                id=a.id,
                name=a.name,
                icon=a.icon,
                rarity=a.rarity,
                unlocked_at=record.unlocked_at,
                seen=record.seen,
            )
            for a, record in unlocked
        ],
        locked=[_achievement_response(services, a) for a in engine.locked_for(user_id)],
        stats=AchievementStatsResponse(**engine.progress_stats(user_id)),
    )


@router.post("/users/{user_id}/achievements/evaluate", response_model=EventOutcomeResponse)
async def evaluate_achievements(
    user_id: str,
    services: Services = Depends(get_services),
    now: datetime = Depends(get_clock),
):
    """Evaluate achievements and apply any rewards."""
    outcome = await services.facade.evaluate_user(user_id, now)
    return EventOutcomeResponse.from_outcome(outcome)


@router.post("/users/{user_id}/achievements/seen", response_model=MarkSeenResponse)
async def mark_achievements_seen(
    user_id: str,
    body: MarkSeenRequest,
    services: Services = Depends(get_services),
):
    marked = await services.achievements.mark_seen(user_id, body.achievement_ids)
    return MarkSeenResponse(marked=marked)
