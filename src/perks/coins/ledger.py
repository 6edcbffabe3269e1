"""Coin ledger — append-only transactions plus derived per-user balances.

Invariant after every mutation: ``available == total_earned - spent >= 0``.
Every operation checks the invariant on the would-be balances before the
transaction is appended; nothing is written and then rolled back.
"""

from __future__ import annotations

from datetime import datetime

import structlog

from perks.errors import InsufficientBalance, InvalidAmount, InvalidStateTransition, NotFound
from perks.models import EARNING_TYPES, CoinAccount, CoinTransaction, TransactionType, new_id
from perks.store import Store

logger = structlog.get_logger()

GRANT_TYPES = frozenset({TransactionType.ADMIN_GRANT, TransactionType.RULE_EARNED})


def _check_invariant(user_id: str, total_earned: int, spent: int) -> None:
    if spent < 0:
        raise InvalidAmount(spent, "spent balance")
    if total_earned - spent < 0:
        raise InsufficientBalance(user_id, spent, total_earned)


class CoinLedger:
    """Per-user coin balances; all mutations serialized by the user lock."""

    def __init__(self, store: Store) -> None:
        self.store = store

    def get_account(self, user_id: str) -> CoinAccount:
        """Current balance; users without transactions have an empty account."""
        return self.store.coins.get(user_id) or CoinAccount(user_id=user_id)

    def _append(self, account: CoinAccount, transaction: CoinTransaction, total_earned: int, spent: int) -> None:
        _check_invariant(account.user_id, total_earned, spent)
        self.store.coins.append(transaction)
        account.total_earned = total_earned
        account.spent = spent
        account.updated_at = transaction.created_at

    async def _credit(
        self,
        user_id: str,
        amount: int,
        type_: TransactionType,
        reason: str,
        now: datetime,
        actor_id: str | None = None,
    ) -> CoinTransaction:
        if amount <= 0:
            raise InvalidAmount(amount, "coin amount")

        async with self.store.locks.user(user_id):
            account = self.store.coins.get_or_create(user_id)
            transaction = CoinTransaction(
                id=new_id(),
                user_id=user_id,
                amount=amount,
                type=type_,
                reason=reason,
                created_at=now,
                related_admin_id=actor_id,
            )
            self._append(account, transaction, account.total_earned + amount, account.spent)

        logger.info(
            "coins_credited",
            user_id=user_id,
            amount=amount,
            type=type_.value,
            actor_id=actor_id,
            available=account.available,
        )
        return transaction

    async def grant(
        self,
        user_id: str,
        amount: int,
        reason: str,
        actor_id: str | None,
        now: datetime,
        kind: TransactionType = TransactionType.ADMIN_GRANT,
    ) -> CoinTransaction:
        """Admin grant or rule-based reward (e.g. an achievement's coin reward)."""
        if kind not in GRANT_TYPES:
            raise ValueError(f"grant kind must be ADMIN_GRANT or RULE_EARNED, got {kind}")
        return await self._credit(user_id, amount, kind, reason, now, actor_id=actor_id)

    async def earn(self, user_id: str, amount: int, reason: str, now: datetime) -> CoinTransaction:
        """Coins earned through regular work events."""
        return await self._credit(user_id, amount, TransactionType.EARNED, reason, now)

    async def reserve(
        self,
        user_id: str,
        amount: int,
        reason: str,
        related_benefit_id: str | None,
        now: datetime,
        related_redemption_id: str | None = None,
    ) -> CoinTransaction:
        """Spend coins. Balance check and deduction happen under one user lock."""
        if amount <= 0:
            raise InvalidAmount(amount, "coin amount")

        async with self.store.locks.user(user_id):
            account = self.store.coins.get_or_create(user_id)
            if account.available < amount:
                raise InsufficientBalance(user_id, amount, account.available)

            transaction = CoinTransaction(
                id=new_id(),
                user_id=user_id,
                amount=-amount,
                type=TransactionType.SPENT,
                reason=reason,
                created_at=now,
                related_benefit_id=related_benefit_id,
                related_redemption_id=related_redemption_id,
            )
            self._append(account, transaction, account.total_earned, account.spent + amount)

        logger.info(
            "coins_reserved",
            user_id=user_id,
            amount=amount,
            benefit_id=related_benefit_id,
            available=account.available,
        )
        return transaction

    async def refund(self, user_id: str, spent_transaction_id: str, reason: str, now: datetime) -> CoinTransaction:
        """Reverse one SPENT transaction in full.

        The amount comes from the originating spend, and each spend can be
        refunded once, so ``spent`` can never drop below what was reserved.
        """
        async with self.store.locks.user(user_id):
            original = self.store.coins.get_transaction(spent_transaction_id)
            if original is None or original.user_id != user_id or original.type is not TransactionType.SPENT:
                raise NotFound("spend transaction", spent_transaction_id)
            if self.store.coins.refund_of(spent_transaction_id) is not None:
                raise InvalidStateTransition("REFUNDED", "REFUNDED", spent_transaction_id)

            amount = -original.amount
            account = self.store.coins.get_or_create(user_id)
            transaction = CoinTransaction(
                id=new_id(),
                user_id=user_id,
                amount=amount,
                type=TransactionType.REFUND,
                reason=reason,
                created_at=now,
                related_benefit_id=original.related_benefit_id,
                related_redemption_id=original.related_redemption_id,
                related_transaction_id=original.id,
            )
            self._append(account, transaction, account.total_earned, account.spent - amount)

        logger.info(
            "coins_refunded",
            user_id=user_id,
            amount=amount,
            spent_transaction_id=spent_transaction_id,
            available=account.available,
        )
        return transaction

    def history(self, user_id: str) -> list[CoinTransaction]:
        """Transactions newest first."""
        transactions = self.store.coins.transactions_for(user_id)
        transactions.reverse()
        return transactions

    def reconcile(self, user_id: str) -> dict[str, int | bool]:
        """Compare the transaction log with the stored balance."""
        transactions = self.store.coins.transactions_for(user_id)
        account = self.get_account(user_id)
        earned = sum(t.amount for t in transactions if t.type in EARNING_TYPES)
        total = sum(t.amount for t in transactions)
        return {
            "transaction_sum": total,
            "total_earned": account.total_earned,
            "spent": account.spent,
            "available": account.available,
            "consistent": total == account.available and earned == account.total_earned and account.available >= 0,
        }
