"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from perks.coins.router import router as coins_router
from perks.config import Settings, get_settings
from perks.dependencies import build_services
from perks.events.router import router as events_router
from perks.gamification.router import router as gamification_router
from perks.health.router import router as health_router
from perks.middleware import setup_middleware

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    services = app.state.services
    logger.info(
        "perks_started",
        levels=len(services.progression.level_table.levels),
        achievements=len(services.catalog),
        benefits=len(services.redemptions.list_benefits()),
    )

    yield

    logger.info("perks_stopped", users=len(services.store.progression.users))


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Services and their in-memory store are built here, once per app, so a
    broken level table or achievement catalog fails before serving requests.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Perks API",
        description="Progression & rewards ledger — XP, levels, achievements, coins and benefit redemptions",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.services = build_services(settings)

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(gamification_router)
    app.include_router(coins_router)
    app.include_router(events_router)

    return app


app = create_app()
