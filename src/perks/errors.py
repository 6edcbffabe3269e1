"""Domain exceptions for the progression and rewards ledger.

Services raise these for business rule violations. Every operation validates
before it mutates, so a raised error means no ledger was touched. The HTTP
layer turns them into JSON responses (see ``perks.middleware.error_handler``).
"""

from __future__ import annotations

from typing import Any


class PerksError(Exception):
    """Base class for all domain errors.

    Carries a human-readable ``message``, structured ``details`` and a stable
    ``error_code`` for programmatic handling.
    """

    status_code: int = 400

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        error_code: str | None = None,
    ) -> None:
        self.message = message
        self.details = details or {}
        self.error_code = error_code or self.__class__.__name__
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "detail": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }

    def __str__(self) -> str:
        details_str = f" | Details: {self.details}" if self.details else ""
        return f"[{self.error_code}] {self.message}{details_str}"


class InvalidAmount(PerksError):
    """Non-positive XP or coin amount."""

    status_code = 422

    def __init__(self, amount: int | float, what: str = "amount") -> None:
        super().__init__(
            f"{what} must be positive, got {amount}",
            details={"amount": amount},
        )


class InsufficientBalance(PerksError):
    """Coin reservation exceeds the available balance."""

    status_code = 409

    def __init__(self, user_id: str, required: int, available: int) -> None:
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient coins: need {required:,}, have {available:,}",
            details={
                "user_id": user_id,
                "required": required,
                "available": available,
                "deficit": required - available,
            },
        )


class InvalidStateTransition(PerksError):
    """Illegal redemption status change, or a second refund of the same spend."""

    status_code = 409

    def __init__(self, current: str, target: str, entity_id: str | None = None) -> None:
        self.current = current
        self.target = target
        super().__init__(
            f"Invalid transition: {current} -> {target}",
            details={"id": entity_id, "current": current, "target": target},
        )


class OutOfStock(PerksError):
    """Benefit has no stock left."""

    status_code = 409

    def __init__(self, benefit_id: str) -> None:
        super().__init__(f"Benefit {benefit_id} is out of stock", details={"benefit_id": benefit_id})


class BenefitUnavailable(PerksError):
    """Benefit exists but is not active."""

    status_code = 409

    def __init__(self, benefit_id: str) -> None:
        super().__init__(f"Benefit {benefit_id} is not available", details={"benefit_id": benefit_id})


class NotFound(PerksError):
    """Unknown user, skill, benefit, achievement, redemption or notification id."""

    status_code = 404

    def __init__(self, kind: str, entity_id: str) -> None:
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} not found: {entity_id}", details={"kind": kind, "id": entity_id})


class PermissionDenied(PerksError):
    status_code = 403


class ConfigurationError(PerksError):
    """Malformed static configuration. Fatal when raised during startup."""

    status_code = 422


class InvalidLevelTable(ConfigurationError):
    pass


class InvalidAchievement(ConfigurationError):
    def __init__(self, achievement_id: str, reason: str) -> None:
        super().__init__(
            f"Achievement {achievement_id!r} is invalid: {reason}",
            details={"achievement_id": achievement_id, "reason": reason},
        )
