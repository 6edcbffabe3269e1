"""Inbound domain events and the notification outbox."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query

from perks.dependencies import Services, get_clock, get_services
from perks.events.schemas import (
    ClearNotificationsResponse,
    CoinsEarnedEvent,
    EventOutcomeResponse,
    FeedbackGivenEvent,
    NotificationListResponse,
    NotificationResponse,
    TrainingCompletedEvent,
    UserEvent,
)
from perks.models import NotificationEvent

router = APIRouter(prefix="/api/v1", tags=["Events"])


def _notification_response(n: NotificationEvent) -> NotificationResponse:
    return NotificationResponse(
        id=n.id,
        kind=n.kind.value,
        title=n.title,
        payload=n.payload,
        is_read=n.is_read,
        created_at=n.created_at,
    )


# ── Events ──


@router.post("/events/training-completed", response_model=EventOutcomeResponse)
async def training_completed(
    body: TrainingCompletedEvent,
    services: Services = Depends(get_services),
    now: datetime = Depends(get_clock),
):
    outcome = await services.facade.on_training_completed(body.user_id, body.training_id, body.passed, now)
    return EventOutcomeResponse.from_outcome(outcome)


@router.post("/events/punctual-checkin", response_model=EventOutcomeResponse)
async def punctual_checkin(
    body: UserEvent,
    services: Services = Depends(get_services),
    now: datetime = Depends(get_clock),
):
    outcome = await services.facade.on_punctual_checkin(body.user_id, now)
    return EventOutcomeResponse.from_outcome(outcome)


@router.post("/events/coins-earned", response_model=EventOutcomeResponse)
async def coins_earned(
    body: CoinsEarnedEvent,
    services: Services = Depends(get_services),
    now: datetime = Depends(get_clock),
):
    outcome = await services.facade.on_coins_earned(body.user_id, body.amount, body.reason, now)
    return EventOutcomeResponse.from_outcome(outcome)


@router.post("/events/feedback-given", response_model=EventOutcomeResponse)
async def feedback_given(
    body: FeedbackGivenEvent,
    services: Services = Depends(get_services),
    now: datetime = Depends(get_clock),
):
    outcome = await services.facade.on_feedback_given(body.user_id, body.feedback_id, now)
    return EventOutcomeResponse.from_outcome(outcome)


@router.post("/events/daily-login", response_model=EventOutcomeResponse)
async def daily_login(
    body: UserEvent,
    services: Services = Depends(get_services),
    now: datetime = Depends(get_clock),
):
    """First login of the day awards login XP; the very first one also the welcome XP."""
    outcome = await services.facade.on_daily_login(body.user_id, now)
    return EventOutcomeResponse.from_outcome(outcome)


# ── Notifications ──


@router.get("/users/{user_id}/notifications", response_model=NotificationListResponse)
async def list_notifications(
    user_id: str,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    services: Services = Depends(get_services),
):
    """Get user's notifications (paginated, most recent first)."""
    items, total = services.notifications.for_user(user_id, page, per_page)
    return NotificationListResponse(
        notifications=[_notification_response(n) for n in items],
        total=total,
        unread=services.notifications.unread_count(user_id),
        page=page,
        per_page=per_page,
    )


@router.post("/notifications/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(notification_id: str, services: Services = Depends(get_services)):
    return _notification_response(services.notifications.mark_read(notification_id))


@router.delete("/users/{user_id}/notifications", response_model=ClearNotificationsResponse)
async def clear_notifications(user_id: str, services: Services = Depends(get_services)):
    return ClearNotificationsResponse(removed=services.notifications.clear(user_id))
