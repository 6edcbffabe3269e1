"""Coin, benefit and redemption API endpoints."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query

from perks.coins.milestones import CoinMilestone
from perks.coins.schemas import (
    BenefitCreate,
    BenefitListResponse,
    BenefitResponse,
    BenefitUpdate,
    CoinAccountResponse,
    CoinHistoryResponse,
    CoinTransactionResponse,
    GrantRequest,
    MilestoneProgressResponse,
    MilestoneResponse,
    RedemptionListResponse,
    RedemptionRequest,
    RedemptionResponse,
    RejectRequest,
)
from perks.dependencies import Services, get_clock, get_services, require_admin
from perks.models import Benefit, CoinAccount, Redemption

router = APIRouter(prefix="/api/v1", tags=["Coins"])


def _account_response(account: CoinAccount) -> CoinAccountResponse:
    return CoinAccountResponse(
        user_id=account.user_id,
        total_earned=account.total_earned,
        spent=account.spent,
        available=account.available,
    )


def _benefit_response(benefit: Benefit) -> BenefitResponse:
    return BenefitResponse(
        id=benefit.id,
        title=benefit.title,
        description=benefit.description,
        coin_cost=benefit.coin_cost,
        category=benefit.category,
        icon=benefit.icon,
        is_active=benefit.is_active,
        stock_limit=benefit.stock_limit,
        current_stock=benefit.current_stock,
        redeem_count=benefit.redeem_count,
    )


def _redemption_response(redemption: Redemption) -> RedemptionResponse:
    return RedemptionResponse(
        id=redemption.id,
        user_id=redemption.user_id,
        benefit_id=redemption.benefit_id,
        coins_cost=redemption.coins_cost,
        status=redemption.status.value,
        requested_at=redemption.requested_at,
        decided_at=redemption.decided_at,
        decided_by=redemption.decided_by,
        fulfilled_at=redemption.fulfilled_at,
        notes=redemption.notes,
    )


def _milestone_response(milestone: CoinMilestone) -> MilestoneResponse:
    return MilestoneResponse(**milestone.model_dump(exclude={"is_active"}))


# ── Coins ──


@router.get("/users/{user_id}/coins", response_model=CoinAccountResponse)
async def get_coins(user_id: str, services: Services = Depends(get_services)):
    """Coin balance. Users without transactions have an empty account."""
    return _account_response(services.coins.get_account(user_id))


@router.get("/users/{user_id}/coins/transactions", response_model=CoinHistoryResponse)
async def get_coin_transactions(
    user_id: str,
    limit: int = Query(50, ge=1, le=500),
    services: Services = Depends(get_services),
):
    """Coin transactions, newest first."""
    history = services.coins.history(user_id)
    return CoinHistoryResponse(
        transactions=[
            CoinTransactionResponse(
                id=t.id,
                amount=t.amount,
                type=t.type.value,
                reason=t.reason,
                created_at=t.created_at,
                related_benefit_id=t.related_benefit_id,
                related_redemption_id=t.related_redemption_id,
                related_admin_id=t.related_admin_id,
            )
            for t in history[:limit]
        ],
        total=len(history),
    )


@router.post("/users/{user_id}/coins/grant", response_model=CoinAccountResponse)
async def grant_coins(
    user_id: str,
    body: GrantRequest,
    services: Services = Depends(get_services),
    now: datetime = Depends(get_clock),
    actor_id: str | None = Depends(require_admin),
):
    """Admin coin grant."""
    await services.coins.grant(user_id, body.amount, body.reason, actor_id, now)
    return _account_response(services.coins.get_account(user_id))


@router.get("/users/{user_id}/coins/milestones", response_model=MilestoneProgressResponse)
async def get_coin_milestones(user_id: str, services: Services = Depends(get_services)):
    """Unlocked coin milestones and progress towards the next one."""
    progress = services.milestones.progress(services.coins.get_account(user_id).available)
    upcoming = progress["next_milestone"]
    return MilestoneProgressResponse(
        balance=progress["balance"],
        unlocked=[_milestone_response(m) for m in progress["unlocked"]],
        next_milestone=_milestone_response(upcoming) if upcoming is not None else None,
        percent=progress["percent"],
        all_unlocked=progress["all_unlocked"],
    )


# ── Benefits ──


@router.get("/benefits", response_model=BenefitListResponse)
async def list_benefits(
    active_only: bool = Query(True),
    services: Services = Depends(get_services),
):
    benefits = sorted(services.redemptions.list_benefits(active_only=active_only), key=lambda b: b.coin_cost)
    return BenefitListResponse(benefits=[_benefit_response(b) for b in benefits])


@router.post("/benefits", response_model=BenefitResponse, status_code=201)
async def create_benefit(
    body: BenefitCreate,
    services: Services = Depends(get_services),
    now: datetime = Depends(get_clock),
    _admin: str | None = Depends(require_admin),
):
    benefit = services.redemptions.create_benefit(now=now, **body.model_dump())
    return _benefit_response(benefit)


@router.patch("/benefits/{benefit_id}", response_model=BenefitResponse)
async def update_benefit(
    benefit_id: str,
    body: BenefitUpdate,
    services: Services = Depends(get_services),
    _admin: str | None = Depends(require_admin),
):
    """Edit a benefit. A null stock_limit makes it unlimited."""
    changes = {
        key: value
        for key, value in body.model_dump(exclude_unset=True).items()
        if value is not None or key == "stock_limit"
    }
    benefit = await services.redemptions.update_benefit(benefit_id, changes)
    return _benefit_response(benefit)


# ── Redemptions ──


@router.post("/redemptions", response_model=RedemptionResponse, status_code=201)
async def request_redemption(
    body: RedemptionRequest,
    services: Services = Depends(get_services),
    now: datetime = Depends(get_clock),
):
    """Spend coins on a benefit. The request waits for an admin decision."""
    redemption = await services.facade.on_benefit_redemption_requested(body.user_id, body.benefit_id, now)
    return _redemption_response(redemption)


@router.get("/users/{user_id}/redemptions", response_model=RedemptionListResponse)
async def list_user_redemptions(user_id: str, services: Services = Depends(get_services)):
    return RedemptionListResponse(
        redemptions=[_redemption_response(r) for r in services.redemptions.user_redemptions(user_id)]
    )


@router.get("/redemptions/pending", response_model=RedemptionListResponse)
async def list_pending_redemptions(
    services: Services = Depends(get_services),
    _admin: str | None = Depends(require_admin),
):
    return RedemptionListResponse(
        redemptions=[_redemption_response(r) for r in services.redemptions.pending_redemptions()]
    )


@router.post("/redemptions/{redemption_id}/approve", response_model=RedemptionResponse)
async def approve_redemption(
    redemption_id: str,
    services: Services = Depends(get_services),
    now: datetime = Depends(get_clock),
    actor_id: str | None = Depends(require_admin),
):
    redemption = await services.facade.on_admin_decision(redemption_id, True, actor_id, now)
    return _redemption_response(redemption)


@router.post("/redemptions/{redemption_id}/reject", response_model=RedemptionResponse)
async def reject_redemption(
    redemption_id: str,
    body: RejectRequest | None = None,
    services: Services = Depends(get_services),
    now: datetime = Depends(get_clock),
    actor_id: str | None = Depends(require_admin),
):
    """Reject a pending request; coins and stock are returned."""
    reason = body.reason if body is not None else None
    redemption = await services.facade.on_admin_decision(redemption_id, False, actor_id, now, reason=reason)
    return _redemption_response(redemption)


@router.post("/redemptions/{redemption_id}/fulfill", response_model=RedemptionResponse)
async def fulfill_redemption(
    redemption_id: str,
    services: Services = Depends(get_services),
    now: datetime = Depends(get_clock),
    actor_id: str | None = Depends(require_admin),
):
    redemption = await services.redemptions.fulfill(redemption_id, actor_id, now)
    return _redemption_response(redemption)
