"""Gamification facade — turns domain events into ledger calls.

Every inbound event follows the same path:
1. Update counters / streaks and award the configured XP (or coins)
2. Announce level-ups
3. Evaluate achievements and apply their reward effects
4. Publish notifications

Steps 2-3 repeat until a pass produces nothing new, so rewards that cross a
level or satisfy another achievement are picked up by the next pass rather
than within the same evaluation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

import structlog

from perks.coins.ledger import CoinLedger
from perks.coins.redemption import RedemptionWorkflow
from perks.config import GamificationConfig
from perks.gamification.achievements import AchievementEngine, AchievementUnlock, RewardEffect
from perks.gamification.progression import ProgressionLedger
from perks.models import (
    CoinTransaction,
    LevelUpEvent,
    NotificationEvent,
    NotificationKind,
    Redemption,
    TransactionType,
    XPEvent,
)
from perks.notifications import NotificationOutbox

logger = structlog.get_logger()


@dataclass
class EventOutcome:
    """Everything one inbound event caused."""

    xp_events: list[XPEvent] = field(default_factory=list)
    level_ups: list[LevelUpEvent] = field(default_factory=list)
    unlocks: list[AchievementUnlock] = field(default_factory=list)
    coin_transactions: list[CoinTransaction] = field(default_factory=list)
    notifications: list[NotificationEvent] = field(default_factory=list)
    skipped: bool = False


class GamificationFacade:
    def __init__(
        self,
        progression: ProgressionLedger,
        achievements: AchievementEngine,
        coins: CoinLedger,
        redemptions: RedemptionWorkflow,
        notifications: NotificationOutbox,
        config: GamificationConfig,
    ) -> None:
        self.progression = progression
        self.achievements = achievements
        self.coins = coins
        self.redemptions = redemptions
        self.notifications = notifications
        self.config = config

    # ── Inbound events ──

    async def initialize_user(self, user_id: str, now: datetime) -> EventOutcome:
        """Create the progression row; first-time users get the welcome XP."""
        outcome = EventOutcome()
        if not await self._welcome(outcome, user_id, now):
            outcome.skipped = True
            return outcome
        await self._settle(outcome, user_id, now)
        return outcome

    async def on_training_completed(self, user_id: str, training_id: str, passed: bool, now: datetime) -> EventOutcome:
        outcome = EventOutcome()
        if not passed:
            outcome.skipped = True
            return outcome

        await self.progression.record_quarterly_metric(user_id, "trainingsCompleted", 1, now)
        await self._award_for_event(
            outcome, user_id, "training_completed", self.config.xp_training_completed,
            f"Schulung abgeschlossen: {training_id}", now,
        )
        await self._settle(outcome, user_id, now)
        return outcome

    async def on_punctual_checkin(self, user_id: str, now: datetime) -> EventOutcome:
        outcome = EventOutcome()
        await self.progression.record_streak_event(user_id, "punctual_checkin", now)
        await self.progression.record_quarterly_metric(user_id, "punctualDays", 1, now)
        await self._award_for_event(
            outcome, user_id, "punctual_checkin", self.config.xp_punctual_checkin, "Pünktlich eingestempelt", now,
        )
        await self._settle(outcome, user_id, now)
        return outcome

    async def on_coins_earned(self, user_id: str, amount: int, reason: str, now: datetime) -> EventOutcome:
        """Record earned coins and convert them to XP at the configured rate."""
        outcome = EventOutcome()
        transaction = await self.coins.earn(user_id, amount, reason, now)
        outcome.coin_transactions.append(transaction)
        await self.progression.record_quarterly_metric(user_id, "coinsEarned", amount, now)

        xp = int(amount * self.config.coins_to_xp_rate)
        await self._award_for_event(outcome, user_id, "coins_earned", xp, f"Coins verdient: {reason}", now)
        await self._settle(outcome, user_id, now)
        return outcome

    async def on_feedback_given(self, user_id: str, feedback_id: str, now: datetime) -> EventOutcome:
        outcome = EventOutcome()
        await self.progression.record_quarterly_metric(user_id, "feedbackGiven", 1, now)
        await self._award_for_event(
            outcome, user_id, "feedback_given", self.config.xp_feedback_given,
            f"Feedback gegeben: {feedback_id}", now,
        )
        await self._settle(outcome, user_id, now)
        return outcome

    async def on_daily_login(self, user_id: str, now: datetime) -> EventOutcome:
        """Award login XP at most once per canonical calendar day.

        The first login ever also grants the welcome XP.
        """
        outcome = EventOutcome()
        welcomed = await self._welcome(outcome, user_id, now)
        if await self.progression.register_login(user_id, now):
            await self._award_for_event(outcome, user_id, "daily_login", self.config.xp_daily_login, "Täglicher Login", now)
        elif not welcomed:
            outcome.skipped = True
            return outcome

        await self._settle(outcome, user_id, now)
        return outcome

    async def on_benefit_redemption_requested(self, user_id: str, benefit_id: str, now: datetime) -> Redemption:
        return await self.redemptions.request_redemption(user_id, benefit_id, now)

    async def on_admin_decision(
        self,
        redemption_id: str,
        approve: bool,
        actor_id: str | None,
        now: datetime,
        reason: str | None = None,
    ) -> Redemption:
        if approve:
            return await self.redemptions.approve(redemption_id, actor_id, now)
        return await self.redemptions.reject(redemption_id, actor_id, now, reason=reason)

    # ── Admin actions ──

    async def award_manual_xp(
        self,
        user_id: str,
        skill_id: str | None,
        amount: int,
        reason: str,
        actor_id: str | None,
        now: datetime,
    ) -> EventOutcome:
        outcome = EventOutcome()
        await self._award(outcome, user_id, skill_id, amount, "admin", reason, now)
        await self._settle(outcome, user_id, now)
        logger.info("manual_xp_awarded", user_id=user_id, amount=amount, actor_id=actor_id)
        return outcome

    async def evaluate_user(self, user_id: str, now: datetime) -> EventOutcome:
        """Run level-up and achievement checks without a new event."""
        outcome = EventOutcome()
        await self._settle(outcome, user_id, now)
        return outcome

    # ── Internals ──

    async def _welcome(self, outcome: EventOutcome, user_id: str, now: datetime) -> bool:
        """Create the progression row; returns True (after the welcome XP) for new users."""
        _, created = await self.progression.ensure_user(user_id, now)
        if created and self.config.welcome_xp > 0:
            await self._award(outcome, user_id, None, self.config.welcome_xp, "welcome", "Willkommen!", now)
        return created

    async def _award_for_event(
        self,
        outcome: EventOutcome,
        user_id: str,
        event_type: str,
        amount: int,
        description: str,
        now: datetime,
    ) -> None:
        # A zero rate disables XP for the event; its counters still apply
        if amount <= 0:
            return
        skill_id = self.config.default_skill_for(event_type)
        if skill_id is not None and skill_id not in self.progression.skills:
            skill_id = None
        await self._award(outcome, user_id, skill_id, amount, event_type, description, now)

    async def _award(
        self,
        outcome: EventOutcome,
        user_id: str,
        skill_id: str | None,
        amount: int,
        source: str,
        description: str,
        now: datetime,
    ) -> XPEvent:
        event = await self.progression.award_xp(user_id, skill_id, amount, source, description, now)
        outcome.xp_events.append(event)
        outcome.notifications.append(
            self.notifications.publish(
                user_id,
                NotificationKind.XP_AWARDED,
                f"+{amount} XP",
                now,
                payload={"amount": amount, "skill_id": skill_id, "source": source, "description": description},
            )
        )
        return event

    async def _settle(self, outcome: EventOutcome, user_id: str, now: datetime) -> None:
        """Announce level-ups and apply achievement rewards until nothing changes."""
        while True:
            level_ups = await self.progression.check_level_up(user_id, now)
            for event in level_ups:
                self._notify_level_up(outcome, event, now)
            outcome.level_ups += level_ups

            unlocks = await self.achievements.evaluate(user_id, now)
            if not unlocks:
                break

            for unlock in unlocks:
                outcome.unlocks.append(unlock)
                outcome.notifications.append(
                    self.notifications.publish(
                        user_id,
                        NotificationKind.ACHIEVEMENT_UNLOCKED,
                        unlock.achievement.name,
                        now,
                        payload={
                            "achievement_id": unlock.achievement.id,
                            "icon": unlock.achievement.icon,
                            "rarity": unlock.achievement.rarity,
                        },
                    )
                )
                for effect in unlock.effects:
                    await self._apply_effect(outcome, effect, now)

    async def _apply_effect(self, outcome: EventOutcome, effect: RewardEffect, now: datetime) -> None:
        if effect.kind == "coins":
            transaction = await self.coins.grant(
                effect.user_id,
                effect.amount,
                effect.description,
                actor_id=None,
                now=now,
                kind=TransactionType.RULE_EARNED,
            )
            outcome.coin_transactions.append(transaction)
        else:
            await self._award(
                outcome,
                effect.user_id,
                effect.skill_id,
                effect.amount,
                f"achievement:{effect.achievement_id}",
                effect.description,
                now,
            )

    def _notify_level_up(self, outcome: EventOutcome, event: LevelUpEvent, now: datetime) -> None:
        definition = self.progression.level_table.get(event.new_level)
        if event.skill_id is None:
            title = f"Level {event.new_level}: {definition.title}"
        else:
            title = f"{self.progression.skills[event.skill_id]} Level {event.new_level}"
        outcome.notifications.append(
            self.notifications.publish(
                event.user_id,
                NotificationKind.LEVEL_UP,
                title,
                now,
                payload={
                    "old_level": event.old_level,
                    "new_level": event.new_level,
                    "skill_id": event.skill_id,
                    "icon": definition.icon,
                    "color": definition.color,
                },
            )
        )
