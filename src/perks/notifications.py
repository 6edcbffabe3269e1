"""Notification outbox.

The facade publishes achievement unlocks, level-ups and XP awards here; the UI
layer polls them per user. Only the most recent ``limit`` entries per user
are kept.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

import structlog

from perks.errors import NotFound
from perks.models import NotificationEvent, NotificationKind, new_id
from perks.store import Store

logger = structlog.get_logger()


class NotificationOutbox:
    def __init__(self, store: Store) -> None:
        self.store = store

    def publish(
        self,
        user_id: str,
        kind: NotificationKind,
        title: str,
        now: datetime,
        payload: dict[str, Any] | None = None,
    ) -> NotificationEvent:
        notification = NotificationEvent(
            id=new_id(),
            user_id=user_id,
            kind=kind,
            title=title,
            created_at=now,
            payload=payload or {},
        )
        self.store.notifications.add(notification)
        logger.debug("notification_published", user_id=user_id, kind=kind.value, title=title)
        return notification

    def for_user(self, user_id: str, page: int = 1, per_page: int = 20) -> tuple[list[NotificationEvent], int]:
        """Get a user's notifications (paginated, most recent first)."""
        items = self.store.notifications.for_user(user_id)
        offset = (page - 1) * per_page
        return items[offset:offset + per_page], len(items)

    def unread_count(self, user_id: str) -> int:
        return sum(1 for n in self.store.notifications.for_user(user_id) if not n.is_read)

    def mark_read(self, notification_id: str, user_id: str | None = None) -> NotificationEvent:
        notification = self.store.notifications.get(notification_id)
        if notification is None or (user_id is not None and notification.user_id != user_id):
            raise NotFound("notification", notification_id)
        notification.is_read = True
        return notification

    def mark_all_read(self, user_id: str) -> int:
        """Mark all unread notifications as read. Returns count updated."""
        count = 0
        for notification in self.store.notifications.for_user(user_id):
            if not notification.is_read:
                notification.is_read = True
                count += 1
        return count

    def clear(self, user_id: str) -> int:
        removed = self.store.notifications.clear(user_id)
        logger.info("notifications_cleared", user_id=user_id, removed=removed)
        return removed
