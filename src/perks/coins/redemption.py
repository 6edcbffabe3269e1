"""Benefit catalog and redemption workflow — state machine and stock handling.

State progression: PENDING -> APPROVED -> FULFILLED, or PENDING -> REJECTED.
REJECTED and FULFILLED are terminal. A rejected request gets its coins and
its stock unit back.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

import structlog

from perks.coins.ledger import CoinLedger
from perks.errors import BenefitUnavailable, InvalidAmount, InvalidStateTransition, NotFound, OutOfStock
from perks.models import Benefit, Redemption, RedemptionStatus, new_id
from perks.store import Store

logger = structlog.get_logger()

VALID_TRANSITIONS: dict[RedemptionStatus, list[RedemptionStatus]] = {
    RedemptionStatus.PENDING: [RedemptionStatus.APPROVED, RedemptionStatus.REJECTED],
    RedemptionStatus.APPROVED: [RedemptionStatus.FULFILLED],
    RedemptionStatus.REJECTED: [],
    RedemptionStatus.FULFILLED: [],
}

EDITABLE_BENEFIT_FIELDS = frozenset({"title", "description", "coin_cost", "category", "icon", "is_active", "stock_limit"})


def validate_transition(current: RedemptionStatus, target: RedemptionStatus, redemption_id: str | None = None) -> None:
    """Raise InvalidStateTransition unless current -> target is allowed."""
    if target not in VALID_TRANSITIONS.get(current, []):
        raise InvalidStateTransition(current.value, target.value, redemption_id)


class RedemptionWorkflow:
    """Benefit purchases: reserve coins, track the request, refund on rejection."""

    def __init__(self, store: Store, coins: CoinLedger) -> None:
        self.store = store
        self.coins = coins

    # ── Benefit catalog ──

    def get_benefit(self, benefit_id: str) -> Benefit:
        benefit = self.store.benefits.get(benefit_id)
        if benefit is None:
            raise NotFound("benefit", benefit_id)
        return benefit

    def list_benefits(self, active_only: bool = False) -> list[Benefit]:
        benefits = self.store.benefits.all()
        if active_only:
            benefits = [b for b in benefits if b.is_active]
        return benefits

    def create_benefit(
        self,
        title: str,
        coin_cost: int,
        category: str,
        now: datetime,
        description: str = "",
        icon: str = "",
        is_active: bool = True,
        stock_limit: int | None = None,
        benefit_id: str | None = None,
    ) -> Benefit:
        if coin_cost <= 0:
            raise InvalidAmount(coin_cost, "coin cost")
        if stock_limit is not None and stock_limit < 0:
            raise InvalidAmount(stock_limit, "stock limit")

        benefit = Benefit(
            id=benefit_id or new_id(),
            title=title,
            coin_cost=coin_cost,
            category=category,
            description=description,
            icon=icon,
            is_active=is_active,
            stock_limit=stock_limit,
            current_stock=stock_limit,
            created_at=now,
        )
        self.store.benefits.add(benefit)
        logger.info("benefit_created", benefit_id=benefit.id, coin_cost=coin_cost, stock_limit=stock_limit)
        return benefit

    async def update_benefit(self, benefit_id: str, changes: dict[str, Any]) -> Benefit:
        """Edit a benefit. Price changes never affect existing redemptions."""
        unknown = set(changes) - EDITABLE_BENEFIT_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {sorted(unknown)}")
        if "coin_cost" in changes and changes["coin_cost"] <= 0:
            raise InvalidAmount(changes["coin_cost"], "coin cost")
        if changes.get("stock_limit") is not None and changes["stock_limit"] < 0:
            raise InvalidAmount(changes["stock_limit"], "stock limit")

        async with self.store.locks.benefit(benefit_id):
            benefit = self.get_benefit(benefit_id)
            for key, value in changes.items():
                if key != "stock_limit":
                    setattr(benefit, key, value)

            if "stock_limit" in changes:
                benefit.stock_limit = changes["stock_limit"]
                if benefit.stock_limit is None:
                    benefit.current_stock = None
                else:
                    benefit.current_stock = max(0, benefit.stock_limit - self._outstanding(benefit_id))

        logger.info("benefit_updated", benefit_id=benefit_id, fields=sorted(changes))
        return benefit

    def _outstanding(self, benefit_id: str) -> int:
        """Redemptions of a benefit that hold a stock unit (all but rejected)."""
        return sum(
            1
            for r in self.store.benefits.redemptions_of_benefit(benefit_id)
            if r.status is not RedemptionStatus.REJECTED
        )

    # ── Redemptions ──

    def get_redemption(self, redemption_id: str) -> Redemption:
        redemption = self.store.benefits.get_redemption(redemption_id)
        if redemption is None:
            raise NotFound("redemption", redemption_id)
        return redemption

    def user_redemptions(self, user_id: str) -> list[Redemption]:
        """A user's redemptions, newest first."""
        return sorted(self.store.benefits.redemptions_for(user_id), key=lambda r: r.requested_at, reverse=True)

    def pending_redemptions(self) -> list[Redemption]:
        """Requests awaiting an admin decision, oldest first."""
        return sorted(
            (r for r in self.store.benefits.redemptions.values() if r.status is RedemptionStatus.PENDING),
            key=lambda r: r.requested_at,
        )

    async def request_redemption(self, user_id: str, benefit_id: str, now: datetime) -> Redemption:
        """Reserve coins for a benefit and open a PENDING request.

        The cost is frozen at the benefit's current price.
        """
        async with self.store.locks.benefit(benefit_id):
            benefit = self.get_benefit(benefit_id)
            if not benefit.is_active:
                raise BenefitUnavailable(benefit_id)
            if benefit.is_bounded and (benefit.current_stock or 0) <= 0:
                raise OutOfStock(benefit_id)

            redemption_id = new_id()
            spend = await self.coins.reserve(
                user_id,
                benefit.coin_cost,
                reason=benefit.title,
                related_benefit_id=benefit_id,
                now=now,
                related_redemption_id=redemption_id,
            )

            if benefit.is_bounded:
                benefit.current_stock -= 1
            benefit.redeem_count += 1

            redemption = Redemption(
                id=redemption_id,
                user_id=user_id,
                benefit_id=benefit_id,
                coins_cost=benefit.coin_cost,
                status=RedemptionStatus.PENDING,
                requested_at=now,
                spend_transaction_id=spend.id,
            )
            self.store.benefits.add_redemption(redemption)

        logger.info(
            "redemption_requested",
            redemption_id=redemption.id,
            user_id=user_id,
            benefit_id=benefit_id,
            coins_cost=redemption.coins_cost,
            current_stock=benefit.current_stock,
        )
        return redemption

    async def approve(self, redemption_id: str, actor_id: str | None, now: datetime) -> Redemption:
        """PENDING -> APPROVED. Coins stay spent."""
        async with self.store.locks.redemption(redemption_id):
            redemption = self.get_redemption(redemption_id)
            validate_transition(redemption.status, RedemptionStatus.APPROVED, redemption_id)
            redemption.status = RedemptionStatus.APPROVED
            redemption.decided_at = now
            redemption.decided_by = actor_id

        logger.info("redemption_approved", redemption_id=redemption_id, actor_id=actor_id)
        return redemption

    async def reject(self, redemption_id: str, actor_id: str | None, now: datetime, reason: str | None = None) -> Redemption:
        """PENDING -> REJECTED. Refunds the frozen cost and restores stock.

        Stock comes back even if the benefit was deactivated in the meantime.
        """
        async with self.store.locks.redemption(redemption_id):
            redemption = self.get_redemption(redemption_id)
            validate_transition(redemption.status, RedemptionStatus.REJECTED, redemption_id)

            async with self.store.locks.benefit(redemption.benefit_id):
                benefit = self.get_benefit(redemption.benefit_id)
                await self.coins.refund(
                    redemption.user_id,
                    redemption.spend_transaction_id,
                    reason=f"Rückerstattung: {reason or 'Antrag abgelehnt'}",
                    now=now,
                )
                redemption.status = RedemptionStatus.REJECTED
                redemption.decided_at = now
                redemption.decided_by = actor_id
                redemption.notes = reason

                # Units still held by other redemptions stay out, even after the limit was lowered
                outstanding = self._outstanding(benefit.id)
                if benefit.is_bounded:
                    benefit.current_stock = max(0, benefit.stock_limit - outstanding)
                benefit.redeem_count = outstanding

        logger.info("redemption_rejected", redemption_id=redemption_id, actor_id=actor_id, reason=reason)
        return redemption

    async def fulfill(self, redemption_id: str, actor_id: str | None, now: datetime) -> Redemption:
        """APPROVED -> FULFILLED."""
        async with self.store.locks.redemption(redemption_id):
            redemption = self.get_redemption(redemption_id)
            validate_transition(redemption.status, RedemptionStatus.FULFILLED, redemption_id)
            redemption.status = RedemptionStatus.FULFILLED
            redemption.fulfilled_at = now

        logger.info("redemption_fulfilled", redemption_id=redemption_id, actor_id=actor_id)
        return redemption
