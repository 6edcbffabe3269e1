"""Health and version endpoints."""

from fastapi import APIRouter, Depends

from perks.config import get_settings
from perks.dependencies import Services, get_services
from perks.replay import verify

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe — returns 200 if the process is alive."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(services: Services = Depends(get_services)) -> dict[str, object]:  # noqa: B008
    """Readiness probe — derived balances, levels and stock match their logs."""
    problems = verify(services.store, services.progression.level_table)
    return {
        "status": "ready" if not problems else "degraded",
        "checks": {"ledgers": "ok" if not problems else f"{len(problems)} divergences"},
    }


@router.get("/version")
async def version() -> dict[str, str]:
    """Return API version and environment."""
    settings = get_settings()
    return {
        "version": settings.app_version,
        "environment": settings.environment,
    }
