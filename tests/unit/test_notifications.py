"""NotificationOutbox tests."""

from __future__ import annotations

from datetime import timedelta

import pytest

from perks.errors import NotFound
from perks.models import NotificationKind
from perks.notifications import NotificationOutbox
from perks.store import Store
from tests.conftest import NOW


class TestOutbox:
    def test_publish_and_list_newest_first(self, outbox):
        for i in range(3):
            outbox.publish("u1", NotificationKind.XP_AWARDED, f"+{i} XP", NOW + timedelta(minutes=i))

        items, total = outbox.for_user("u1")
        assert total == 3
        assert [n.title for n in items] == ["+2 XP", "+1 XP", "+0 XP"]
        assert outbox.unread_count("u1") == 3

    def test_pagination(self, outbox):
        for i in range(5):
            outbox.publish("u1", NotificationKind.LEVEL_UP, f"n{i}", NOW)
        items, total = outbox.for_user("u1", page=2, per_page=2)
        assert total == 5
        assert [n.title for n in items] == ["n2", "n1"]

    def test_limit_drops_oldest(self):
        outbox = NotificationOutbox(Store(notification_limit=3))
        for i in range(5):
            outbox.publish("u1", NotificationKind.XP_AWARDED, f"n{i}", NOW)
        items, total = outbox.for_user("u1")
        assert total == 3
        assert [n.title for n in items] == ["n4", "n3", "n2"]

    def test_mark_read(self, outbox):
        notification = outbox.publish("u1", NotificationKind.ACHIEVEMENT_UNLOCKED, "Wissensdurst", NOW)
        outbox.mark_read(notification.id, user_id="u1")
        assert outbox.unread_count("u1") == 0

    def test_mark_read_of_other_user(self, outbox):
        notification = outbox.publish("u1", NotificationKind.XP_AWARDED, "x", NOW)
        with pytest.raises(NotFound):
            outbox.mark_read(notification.id, user_id="u2")
        with pytest.raises(NotFound):
            outbox.mark_read("missing")

    def test_mark_all_read(self, outbox):
        first = outbox.publish("u1", NotificationKind.XP_AWARDED, "a", NOW)
        outbox.publish("u1", NotificationKind.XP_AWARDED, "b", NOW)
        outbox.mark_read(first.id)
        assert outbox.mark_all_read("u1") == 1
        assert outbox.unread_count("u1") == 0

    def test_clear(self, outbox):
        outbox.publish("u1", NotificationKind.XP_AWARDED, "a", NOW)
        outbox.publish("u2", NotificationKind.XP_AWARDED, "b", NOW)
        assert outbox.clear("u1") == 1
        assert outbox.for_user("u1") == ([], 0)
        assert outbox.for_user("u2")[1] == 1
