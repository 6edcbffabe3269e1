"""Full event pipelines through the facade on the default configuration."""

from __future__ import annotations

from datetime import timedelta

import pytest
from pydantic import ValidationError

from perks.config import GamificationConfig, Settings
from perks.dependencies import build_services
from perks.errors import NotFound
from perks.models import NotificationKind, RedemptionStatus, TransactionType
from tests.conftest import NOW


def _kinds(outcome) -> list[NotificationKind]:
    return [n.kind for n in outcome.notifications]


class TestTrainingCompleted:
    @pytest.mark.asyncio
    async def test_first_training_unlocks_and_rewards(self, services):
        outcome = await services.facade.on_training_completed("u1", "fire-safety", True, NOW)

        assert [e.amount for e in outcome.xp_events] == [50, 25]
        assert [u.achievement.id for u in outcome.unlocks] == ["first_training"]
        assert _kinds(outcome) == [
            NotificationKind.XP_AWARDED,
            NotificationKind.ACHIEVEMENT_UNLOCKED,
            NotificationKind.XP_AWARDED,
        ]

        prog = services.progression.get_progression("u1")
        assert prog.total_xp == 75
        assert prog.skills["knowledge"].total_xp == 75
        assert prog.lifetime_stats.trainings_completed == 1

    @pytest.mark.asyncio
    async def test_failed_training_is_skipped(self, services):
        outcome = await services.facade.on_training_completed("u1", "fire-safety", False, NOW)
        assert outcome.skipped
        assert outcome.xp_events == []
        with pytest.raises(NotFound):
            services.progression.get_progression("u1")

    @pytest.mark.asyncio
    async def test_unknown_default_skill_falls_back_to_overall_xp(self):
        settings = Settings(
            _env_file=None,
            gamification=GamificationConfig(default_skills={"training_completed": "cooking"}),
        )
        services = build_services(settings, now=NOW)

        outcome = await services.facade.on_training_completed("u1", "t1", True, NOW)
        assert outcome.xp_events[0].skill_id is None

    @pytest.mark.asyncio
    async def test_zero_rate_still_counts_training(self):
        settings = Settings(_env_file=None, gamification=GamificationConfig(xp_training_completed=0))
        services = build_services(settings, now=NOW)

        outcome = await services.facade.on_training_completed("u1", "t1", True, NOW)

        assert "training_completed" not in {e.source_type for e in outcome.xp_events}
        assert [u.achievement.id for u in outcome.unlocks] == ["first_training"]
        prog = services.progression.get_progression("u1")
        assert prog.lifetime_stats.trainings_completed == 1
        assert prog.total_xp == 25

    def test_negative_rate_rejected(self):
        with pytest.raises(ValidationError):
            GamificationConfig(xp_feedback_given=-5)


class TestCoinsEarned:
    @pytest.mark.asyncio
    async def test_coins_convert_to_xp_and_level_up(self, services):
        outcome = await services.facade.on_coins_earned("u1", 500, "Projektabschluss", NOW)

        assert [t.type for t in outcome.coin_transactions] == [TransactionType.EARNED]
        assert sum(e.amount for e in outcome.xp_events) == 300
        assert [u.achievement.id for u in outcome.unlocks] == ["coin_collector"]
        assert {(e.skill_id, e.new_level) for e in outcome.level_ups} == {
            (None, 2),
            (None, 3),
            ("hustle", 2),
            ("hustle", 3),
        }

        titles = [n.title for n in outcome.notifications if n.kind is NotificationKind.LEVEL_UP]
        assert "Level 2: Anfänger" in titles
        assert "Fleiß Level 3" in titles

        assert services.coins.get_account("u1").available == 500


class TestPunctualStreak:
    @pytest.mark.asyncio
    async def test_seven_day_streak_rewards(self, services):
        for day in range(6):
            outcome = await services.facade.on_punctual_checkin("u1", NOW + timedelta(days=day))
            assert outcome.unlocks == []

        outcome = await services.facade.on_punctual_checkin("u1", NOW + timedelta(days=6))
        assert [u.achievement.id for u in outcome.unlocks] == ["punctual_week"]

        [reward] = outcome.coin_transactions
        assert reward.type is TransactionType.RULE_EARNED
        assert reward.amount == 25

        prog = services.progression.get_progression("u1")
        assert prog.total_xp == 120
        assert prog.skills["loyalty"].total_xp == 120
        # The reward XP crossed level 2; the next pass announces it
        assert {(e.skill_id, e.new_level) for e in outcome.level_ups} == {(None, 2), ("loyalty", 2)}

        # Rule-based coins are not "earned" coins
        assert prog.lifetime_stats.coins_earned == 0
        assert services.coins.get_account("u1").available == 25


class TestManualXP:
    @pytest.mark.asyncio
    async def test_level_5_grants_coins_once(self, services):
        outcome = await services.facade.award_manual_xp("u1", None, 700, "Sonderleistung", "admin-1", NOW)

        assert [e.new_level for e in outcome.level_ups] == [2, 3, 4, 5]
        assert [u.achievement.id for u in outcome.unlocks] == ["level_5"]
        assert [(t.type, t.amount) for t in outcome.coin_transactions] == [(TransactionType.RULE_EARNED, 75)]
        assert outcome.xp_events[0].source_type == "admin"

        again = await services.facade.evaluate_user("u1", NOW)
        assert again.unlocks == []
        assert again.level_ups == []
        assert services.coins.get_account("u1").available == 75


class TestLogin:
    @pytest.mark.asyncio
    async def test_first_login_welcomes(self, services):
        outcome = await services.facade.on_daily_login("u1", NOW)
        assert [(e.source_type, e.amount) for e in outcome.xp_events] == [("welcome", 25), ("daily_login", 5)]
        assert not outcome.skipped

    @pytest.mark.asyncio
    async def test_once_per_day(self, services):
        await services.facade.on_daily_login("u1", NOW)

        same_day = await services.facade.on_daily_login("u1", NOW + timedelta(hours=6))
        assert same_day.skipped
        assert same_day.xp_events == []

        next_day = await services.facade.on_daily_login("u1", NOW + timedelta(days=1))
        assert [e.amount for e in next_day.xp_events] == [5]
        assert services.progression.get_progression("u1").total_xp == 35

    @pytest.mark.asyncio
    async def test_initialize_user_is_idempotent(self, services):
        first = await services.facade.initialize_user("u1", NOW)
        assert [e.amount for e in first.xp_events] == [25]

        second = await services.facade.initialize_user("u1", NOW)
        assert second.skipped
        assert services.progression.get_progression("u1").total_xp == 25


class TestRedemptionEvents:
    @pytest.mark.asyncio
    async def test_request_and_reject(self, services):
        await services.coins.grant("u1", 200, "Start", actor_id="admin-1", now=NOW)

        redemption = await services.facade.on_benefit_redemption_requested("u1", "lunch_voucher", NOW)
        assert redemption.status is RedemptionStatus.PENDING
        assert services.coins.get_account("u1").available == 50

        rejected = await services.facade.on_admin_decision(
            redemption.id, approve=False, actor_id="admin-1", now=NOW, reason="Budget erschöpft"
        )
        assert rejected.status is RedemptionStatus.REJECTED
        assert services.coins.get_account("u1").available == 200

    @pytest.mark.asyncio
    async def test_request_and_approve(self, services):
        await services.coins.grant("u1", 200, "Start", actor_id="admin-1", now=NOW)
        redemption = await services.facade.on_benefit_redemption_requested("u1", "lunch_voucher", NOW)

        approved = await services.facade.on_admin_decision(redemption.id, approve=True, actor_id="admin-1", now=NOW)
        assert approved.status is RedemptionStatus.APPROVED
        assert services.coins.get_account("u1").available == 50


class TestFeedback:
    @pytest.mark.asyncio
    async def test_tenth_feedback_unlocks(self, services):
        for i in range(9):
            outcome = await services.facade.on_feedback_given("u1", f"fb-{i}", NOW)
        assert outcome.unlocks == []

        outcome = await services.facade.on_feedback_given("u1", "fb-9", NOW)
        assert [u.achievement.id for u in outcome.unlocks] == ["feedback_giver"]
        prog = services.progression.get_progression("u1")
        assert prog.skills["teamwork"].total_xp == 30
        assert prog.skills["loyalty"].total_xp == 150
