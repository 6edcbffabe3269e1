"""Pydantic request/response models for coin, benefit and redemption endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


# --- Coins ---


class CoinAccountResponse(BaseModel):
    user_id: str
    total_earned: int
    spent: int
    available: int


class CoinTransactionResponse(BaseModel):
    id: str
    amount: int
    type: str
    reason: str
    created_at: datetime
    related_benefit_id: str | None = None
    related_redemption_id: str | None = None
    related_admin_id: str | None = None


class CoinHistoryResponse(BaseModel):
    transactions: list[CoinTransactionResponse]
    total: int


class GrantRequest(BaseModel):
    amount: int
    reason: str


class MilestoneResponse(BaseModel):
    id: str
    title: str
    description: str
    required_coins: int
    reward: str


class MilestoneProgressResponse(BaseModel):
    balance: int
    unlocked: list[MilestoneResponse]
    next_milestone: MilestoneResponse | None = None
    percent: float
    all_unlocked: bool


# --- Benefits ---


class BenefitResponse(BaseModel):
    id: str
    title: str
    description: str
    coin_cost: int
    category: str
    icon: str
    is_active: bool
    stock_limit: int | None = None
    current_stock: int | None = None
    redeem_count: int


class BenefitListResponse(BaseModel):
    benefits: list[BenefitResponse]


class BenefitCreate(BaseModel):
    title: str
    coin_cost: int
    category: str
    description: str = ""
    icon: str = ""
    is_active: bool = True
    stock_limit: int | None = None


class BenefitUpdate(BaseModel):
    title: str | None = None
    description: str | None = None
    coin_cost: int | None = None
    category: str | None = None
    icon: str | None = None
    is_active: bool | None = None
    stock_limit: int | None = None


# --- Redemptions ---


class RedemptionRequest(BaseModel):
    user_id: str
    benefit_id: str


class RejectRequest(BaseModel):
    reason: str | None = None


class RedemptionResponse(BaseModel):
    id: str
    user_id: str
    benefit_id: str
    coins_cost: int
    status: str
    requested_at: datetime
    decided_at: datetime | None = None
    decided_by: str | None = None
    fulfilled_at: datetime | None = None
    notes: str | None = None


class RedemptionListResponse(BaseModel):
    redemptions: list[RedemptionResponse]
