"""Rebuild derived state from the append-only logs.

Coin accounts, XP totals / levels and benefit stock are derived tables. The
logs (coin transactions, XP events, redemptions) are authoritative: ``verify``
reports where the two disagree and ``repair`` overwrites the derived side.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import structlog

from perks.gamification.level_table import LevelTable
from perks.gamification.progression import ProgressionLedger
from perks.models import (
    EARNING_TYPES,
    Benefit,
    CoinAccount,
    CoinTransaction,
    Redemption,
    RedemptionStatus,
    TransactionType,
    XPEvent,
)
from perks.store import Store

logger = structlog.get_logger()


def rebuild_coin_account(user_id: str, transactions: Iterable[CoinTransaction]) -> CoinAccount:
    account = CoinAccount(user_id=user_id)
    for t in transactions:
        if t.user_id != user_id:
            continue
        if t.type in EARNING_TYPES:
            account.total_earned += t.amount
        elif t.type is TransactionType.SPENT:
            account.spent += -t.amount
        elif t.type is TransactionType.REFUND:
            account.spent -= t.amount
        account.updated_at = t.created_at
    return account


def rebuild_progression_totals(events: Iterable[XPEvent], table: LevelTable) -> dict[str, Any]:
    """Total XP, level and per-skill XP / level from a user's XP events."""
    total_xp = 0
    skill_xp: dict[str, int] = {}
    for e in events:
        total_xp += e.amount
        if e.skill_id is not None:
            skill_xp[e.skill_id] = skill_xp.get(e.skill_id, 0) + e.amount

    return {
        "total_xp": total_xp,
        "level": table.derive_level(total_xp),
        "skills": {sid: {"total_xp": xp, "level": table.derive_level(xp)} for sid, xp in skill_xp.items()},
    }


def rebuild_benefit_stock(benefit: Benefit, redemptions: Iterable[Redemption]) -> dict[str, int | None]:
    """Stock and redeem count implied by the redemption history.

    Every redemption that was not rejected holds one unit.
    """
    outstanding = sum(
        1 for r in redemptions if r.benefit_id == benefit.id and r.status is not RedemptionStatus.REJECTED
    )
    current_stock = None if benefit.stock_limit is None else max(0, benefit.stock_limit - outstanding)
    return {"current_stock": current_stock, "redeem_count": outstanding}


def verify(store: Store, table: LevelTable) -> list[str]:
    """Compare every derived table with its log. Empty list when consistent."""
    problems: list[str] = []

    user_ids = set(store.coins.accounts) | {t.user_id for t in store.coins.transactions}
    for user_id in sorted(user_ids):
        expected = rebuild_coin_account(user_id, store.coins.transactions_for(user_id))
        actual = store.coins.get(user_id) or CoinAccount(user_id=user_id)
        if (actual.total_earned, actual.spent) != (expected.total_earned, expected.spent):
            problems.append(
                f"coins:{user_id}: stored earned={actual.total_earned} spent={actual.spent}, "
                f"log earned={expected.total_earned} spent={expected.spent}"
            )
        if actual.available < 0:
            problems.append(f"coins:{user_id}: negative available balance {actual.available}")

    for prog in store.progression.all():
        expected = rebuild_progression_totals(store.progression.xp_events_for(prog.user_id), table)
        if prog.total_xp != expected["total_xp"] or prog.level != expected["level"]:
            problems.append(
                f"progression:{prog.user_id}: stored xp={prog.total_xp} level={prog.level}, "
                f"log xp={expected['total_xp']} level={expected['level']}"
            )
        for skill in prog.skills.values():
            skill_expected = expected["skills"].get(skill.skill_id, {"total_xp": 0, "level": table.derive_level(0)})
            if skill.total_xp != skill_expected["total_xp"] or skill.level != skill_expected["level"]:
                problems.append(
                    f"skill:{prog.user_id}:{skill.skill_id}: stored xp={skill.total_xp}, "
                    f"log xp={skill_expected['total_xp']}"
                )

    for benefit in store.benefits.all():
        expected = rebuild_benefit_stock(benefit, store.benefits.redemptions_of_benefit(benefit.id))
        if benefit.current_stock != expected["current_stock"] or benefit.redeem_count != expected["redeem_count"]:
            problems.append(
                f"benefit:{benefit.id}: stored stock={benefit.current_stock} redeemed={benefit.redeem_count}, "
                f"log stock={expected['current_stock']} redeemed={expected['redeem_count']}"
            )

    if problems:
        logger.warning("ledger_divergence", count=len(problems))
    return problems


def repair(store: Store, progression: ProgressionLedger) -> int:
    """Overwrite derived tables with the values replayed from the logs.

    Runs without awaiting, so no other operation sees a partial repair.
    Returns the number of divergences found beforehand.
    """
    found = len(verify(store, progression.level_table))

    user_ids = set(store.coins.accounts) | {t.user_id for t in store.coins.transactions}
    for user_id in user_ids:
        store.coins.accounts[user_id] = rebuild_coin_account(user_id, store.coins.transactions_for(user_id))

    for prog in store.progression.all():
        totals = rebuild_progression_totals(store.progression.xp_events_for(prog.user_id), progression.level_table)
        prog.total_xp = totals["total_xp"]
        for skill in prog.skills.values():
            skill.total_xp = totals["skills"].get(skill.skill_id, {"total_xp": 0})["total_xp"]
        progression.refresh_levels(prog)

    for benefit in store.benefits.all():
        stock = rebuild_benefit_stock(benefit, store.benefits.redemptions_of_benefit(benefit.id))
        benefit.current_stock = stock["current_stock"]
        benefit.redeem_count = stock["redeem_count"]

    logger.info("ledger_repaired", divergences=found)
    return found
