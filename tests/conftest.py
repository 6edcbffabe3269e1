"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from perks.coins.ledger import CoinLedger
from perks.coins.redemption import RedemptionWorkflow
from perks.config import Settings
from perks.dependencies import Services, build_services
from perks.gamification.level_table import LevelTable
from perks.gamification.progression import ProgressionLedger
from perks.main import create_app
from perks.notifications import NotificationOutbox
from perks.store import Store

# Mid-July: well inside Q3, so quarter rollover only happens when a test asks for it.
NOW = datetime(2026, 7, 15, 9, 0, tzinfo=timezone.utc)

SKILLS = {"knowledge": "Wissen", "loyalty": "Loyalität", "hustle": "Fleiß"}

ADMIN = {"X-Role": "admin", "X-Actor-Id": "admin-1"}


class FixedClock:
    """Deterministic clock for the API; tests move it explicitly."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def small_table() -> LevelTable:
    return LevelTable(
        [
            {"level_number": 1, "title": "Eins", "required_xp": 0},
            {"level_number": 2, "title": "Zwei", "required_xp": 100},
            {"level_number": 3, "title": "Drei", "required_xp": 250},
        ]
    )


@pytest.fixture
def store() -> Store:
    return Store()


@pytest.fixture
def progression(store: Store, small_table: LevelTable) -> ProgressionLedger:
    return ProgressionLedger(store, small_table, SKILLS)


@pytest.fixture
def coins(store: Store) -> CoinLedger:
    return CoinLedger(store)


@pytest.fixture
def redemptions(store: Store, coins: CoinLedger) -> RedemptionWorkflow:
    return RedemptionWorkflow(store, coins)


@pytest.fixture
def outbox(store: Store) -> NotificationOutbox:
    return NotificationOutbox(store)


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def services(settings: Settings) -> Services:
    """Fully wired services with the default levels, catalog and benefits."""
    return build_services(settings, now=NOW)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def app(settings: Settings, clock: FixedClock) -> FastAPI:
    application = create_app(settings)
    application.state.clock = clock
    return application


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client against a fresh app and store."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
