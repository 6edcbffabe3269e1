"""In-memory repositories and per-key locks.

One ``Store`` is created per application (see ``perks.main``) and injected
into the services; there is no module-level state. Repositories do data
access only; the services own validation and locking.
"""

from __future__ import annotations

import asyncio
import weakref
from collections import defaultdict
from collections.abc import Iterator

from perks.models import (
    Benefit,
    CoinAccount,
    CoinTransaction,
    LevelUpEvent,
    NotificationEvent,
    Redemption,
    UserProgression,
    XPEvent,
)


class KeyedLocks:
    """One asyncio.Lock per key, created on first use.

    Entries are weak: a lock lives only while some task holds it, waits on
    it or keeps a reference, so the map does not grow with every id seen.
    Acquire nested locks in a fixed order (redemption -> benefit -> user) to
    avoid deadlocks.
    """

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def __len__(self) -> int:
        return len(self._locks)

    def get(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def user(self, user_id: str) -> asyncio.Lock:
        return self.get(f"user:{user_id}")

    def benefit(self, benefit_id: str) -> asyncio.Lock:
        return self.get(f"benefit:{benefit_id}")

    def redemption(self, redemption_id: str) -> asyncio.Lock:
        return self.get(f"redemption:{redemption_id}")


class ProgressionRepo:
    """UserProgression rows plus the XP and level-up logs."""

    def __init__(self) -> None:
        self.users: dict[str, UserProgression] = {}
        self.xp_events: list[XPEvent] = []
        self.level_ups: list[LevelUpEvent] = []

    def get(self, user_id: str) -> UserProgression | None:
        return self.users.get(user_id)

    def add(self, progression: UserProgression) -> None:
        self.users[progression.user_id] = progression

    def all(self) -> Iterator[UserProgression]:
        return iter(list(self.users.values()))

    def append_xp_event(self, event: XPEvent) -> None:
        self.xp_events.append(event)

    def xp_events_for(self, user_id: str) -> list[XPEvent]:
        return [e for e in self.xp_events if e.user_id == user_id]

    def append_level_up(self, event: LevelUpEvent) -> None:
        self.level_ups.append(event)

    def level_ups_for(self, user_id: str) -> list[LevelUpEvent]:
        return [e for e in self.level_ups if e.user_id == user_id]


class CoinRepo:
    """CoinAccount rows plus the coin transaction log."""

    def __init__(self) -> None:
        self.accounts: dict[str, CoinAccount] = {}
        self.transactions: list[CoinTransaction] = []

    def get_or_create(self, user_id: str) -> CoinAccount:
        account = self.accounts.get(user_id)
        if account is None:
            account = CoinAccount(user_id=user_id)
            self.accounts[user_id] = account
        return account

    def get(self, user_id: str) -> CoinAccount | None:
        return self.accounts.get(user_id)

    def append(self, transaction: CoinTransaction) -> None:
        self.transactions.append(transaction)

    def transactions_for(self, user_id: str) -> list[CoinTransaction]:
        return [t for t in self.transactions if t.user_id == user_id]

    def get_transaction(self, transaction_id: str) -> CoinTransaction | None:
        for t in self.transactions:
            if t.id == transaction_id:
                return t
        return None

    def refund_of(self, transaction_id: str) -> CoinTransaction | None:
        for t in self.transactions:
            if t.related_transaction_id == transaction_id:
                return t
        return None


class BenefitRepo:
    """Benefit catalog plus the redemption history."""

    def __init__(self) -> None:
        self.benefits: dict[str, Benefit] = {}
        self.redemptions: dict[str, Redemption] = {}

    def get(self, benefit_id: str) -> Benefit | None:
        return self.benefits.get(benefit_id)

    def add(self, benefit: Benefit) -> None:
        self.benefits[benefit.id] = benefit

    def all(self) -> list[Benefit]:
        return list(self.benefits.values())

    def get_redemption(self, redemption_id: str) -> Redemption | None:
        return self.redemptions.get(redemption_id)

    def add_redemption(self, redemption: Redemption) -> None:
        self.redemptions[redemption.id] = redemption

    def redemptions_for(self, user_id: str) -> list[Redemption]:
        return [r for r in self.redemptions.values() if r.user_id == user_id]

    def redemptions_of_benefit(self, benefit_id: str) -> list[Redemption]:
        return [r for r in self.redemptions.values() if r.benefit_id == benefit_id]


class NotificationRepo:
    """Per-user notification outbox, newest first, capped at ``limit``."""

    def __init__(self, limit: int = 100) -> None:
        self.limit = limit
        self._by_user: dict[str, list[NotificationEvent]] = defaultdict(list)

    def add(self, notification: NotificationEvent) -> None:
        items = self._by_user[notification.user_id]
        items.insert(0, notification)
        del items[self.limit:]

    def for_user(self, user_id: str) -> list[NotificationEvent]:
        return list(self._by_user.get(user_id, []))

    def get(self, notification_id: str) -> NotificationEvent | None:
        for items in self._by_user.values():
            for n in items:
                if n.id == notification_id:
                    return n
        return None

    def clear(self, user_id: str) -> int:
        return len(self._by_user.pop(user_id, []))


class Store:
    """All repositories and the lock registry for one application instance."""

    def __init__(self, notification_limit: int = 100) -> None:
        self.locks = KeyedLocks()
        self.progression = ProgressionRepo()
        self.coins = CoinRepo()
        self.benefits = BenefitRepo()
        self.notifications = NotificationRepo(limit=notification_limit)
