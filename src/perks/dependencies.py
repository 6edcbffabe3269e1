"""Shared FastAPI dependencies and the per-application service container."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from fastapi import Header, Request

from perks.coins.ledger import CoinLedger
from perks.coins.milestones import MilestoneBoard
from perks.coins.redemption import RedemptionWorkflow
from perks.coins.seed import BENEFIT_SEED_DATA, COIN_MILESTONE_SEED_DATA
from perks.config import Settings
from perks.errors import PermissionDenied
from perks.facade import GamificationFacade
from perks.gamification.achievements import AchievementCatalog, AchievementEngine
from perks.gamification.level_table import LevelTable
from perks.gamification.progression import ProgressionLedger
from perks.gamification.seed import ACHIEVEMENT_SEED_DATA, DEFAULT_SKILLS
from perks.notifications import NotificationOutbox
from perks.store import Store


@dataclass
class Services:
    store: Store
    progression: ProgressionLedger
    catalog: AchievementCatalog
    achievements: AchievementEngine
    coins: CoinLedger
    redemptions: RedemptionWorkflow
    milestones: MilestoneBoard
    notifications: NotificationOutbox
    facade: GamificationFacade


def build_services(settings: Settings, now: datetime | None = None) -> Services:
    """Wire one Store and all services around it, seeded with the default catalogs.

    A malformed level table or achievement raises a ConfigurationError here,
    so the application never starts with a broken configuration.
    """
    now = now or datetime.now(timezone.utc)
    store = Store(notification_limit=settings.notification_limit)

    progression = ProgressionLedger(
        store,
        LevelTable.default(),
        DEFAULT_SKILLS,
        tz=settings.tzinfo,
        streak_event_kinds=set(settings.gamification.streak_event_kinds),
    )
    catalog = AchievementCatalog(ACHIEVEMENT_SEED_DATA, skills=DEFAULT_SKILLS)
    achievements = AchievementEngine(progression, catalog)
    coins = CoinLedger(store)
    redemptions = RedemptionWorkflow(store, coins)
    for data in BENEFIT_SEED_DATA:
        redemptions.create_benefit(now=now, **data)
    notifications = NotificationOutbox(store)

    facade = GamificationFacade(
        progression,
        achievements,
        coins,
        redemptions,
        notifications,
        settings.gamification,
    )
    return Services(
        store=store,
        progression=progression,
        catalog=catalog,
        achievements=achievements,
        coins=coins,
        redemptions=redemptions,
        milestones=MilestoneBoard(COIN_MILESTONE_SEED_DATA),
        notifications=notifications,
        facade=facade,
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_clock(request: Request) -> datetime:
    """Current time; tests replace ``app.state.clock`` for deterministic dates."""
    clock = getattr(request.app.state, "clock", None)
    return clock() if clock is not None else datetime.now(timezone.utc)


def require_admin(
    x_role: str | None = Header(default=None),
    x_actor_id: str | None = Header(default=None),
) -> str | None:
    """Admin-only endpoints need ``X-Role: admin``. Returns the acting admin's id."""
    if (x_role or "").lower() != "admin":
        raise PermissionDenied("Admin role required", details={"role": x_role})
    return x_actor_id
