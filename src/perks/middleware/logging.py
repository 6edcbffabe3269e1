"""structlog setup for the perks service.

Every entry carries the service name, environment and version so ledger
events from several deployments can share one log sink.
"""

import logging
from typing import Any

import structlog

from perks.config import Settings

SERVICE_NAME = "perks"


def _service_context(settings: Settings) -> structlog.types.Processor:
    def add_service_context(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault("service", SERVICE_NAME)
        event_dict.setdefault("environment", settings.environment)
        event_dict.setdefault("version", settings.app_version)
        return event_dict

    return add_service_context


def build_renderer(settings: Settings) -> structlog.types.Processor:
    """Console output in debug mode or when asked for; JSON lines otherwise."""
    if settings.debug or settings.log_format == "console":
        return structlog.dev.ConsoleRenderer(colors=settings.environment == "development")
    return structlog.processors.JSONRenderer(ensure_ascii=False)


def setup_logging(settings: Settings) -> None:
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            _service_context(settings),
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            build_renderer(settings),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO), format="%(message)s")
