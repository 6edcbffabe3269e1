"""Integration: inbound events flowing through to XP, coins and notifications."""

from __future__ import annotations

import pytest
from httpx import AsyncClient


class TestEventPipeline:
    @pytest.mark.asyncio
    async def test_failed_training_skipped(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/events/training-completed",
            json={"user_id": "u1", "training_id": "t1", "passed": False},
        )
        assert response.status_code == 200
        assert response.json()["skipped"] is True
        assert (await client.get("/api/v1/users/u1/progression")).status_code == 404

    @pytest.mark.asyncio
    async def test_coins_earned(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/events/coins-earned",
            json={"user_id": "u1", "amount": 500, "reason": "Projektabschluss"},
        )
        data = response.json()
        assert data["coins_awarded"] == 500
        assert data["xp_awarded"] == 300
        assert data["unlocked_achievements"] == ["coin_collector"]
        assert len(data["level_ups"]) == 4

        coins = (await client.get("/api/v1/users/u1/coins")).json()
        assert coins["total_earned"] == 500

        progression = (await client.get("/api/v1/users/u1/progression")).json()
        assert progression["quarterly_stats"]["coins_earned"] == 500
        assert progression["level"] == 3

    @pytest.mark.asyncio
    async def test_coins_earned_non_positive(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/events/coins-earned",
            json={"user_id": "u1", "amount": 0, "reason": "x"},
        )
        assert response.status_code == 422
        assert response.json()["error_code"] == "InvalidAmount"

    @pytest.mark.asyncio
    async def test_punctual_week(self, client: AsyncClient, clock):
        for day in range(7):
            if day:
                clock.advance(days=1)
            response = await client.post("/api/v1/events/punctual-checkin", json={"user_id": "u1"})
            assert response.status_code == 200

        data = response.json()
        assert data["unlocked_achievements"] == ["punctual_week"]
        assert data["coins_awarded"] == 25

        progression = (await client.get("/api/v1/users/u1/progression")).json()
        assert progression["streak"]["current"] == 7
        assert progression["streak"]["longest"] == 7

        # Two days without a check-in break the streak
        clock.advance(days=2)
        progression = (await client.get("/api/v1/users/u1/progression")).json()
        assert progression["streak"]["current"] == 0
        assert progression["streak"]["longest"] == 7

    @pytest.mark.asyncio
    async def test_feedback_given(self, client: AsyncClient):
        response = await client.post("/api/v1/events/feedback-given", json={"user_id": "u1", "feedback_id": "f1"})
        assert response.json()["xp_awarded"] == 15

    @pytest.mark.asyncio
    async def test_daily_login_once_per_day(self, client: AsyncClient, clock):
        first = (await client.post("/api/v1/events/daily-login", json={"user_id": "u1"})).json()
        assert first["xp_awarded"] == 30
        assert first["skipped"] is False

        clock.advance(hours=3)
        again = (await client.post("/api/v1/events/daily-login", json={"user_id": "u1"})).json()
        assert again["skipped"] is True
        assert again["xp_awarded"] == 0

        clock.advance(days=1)
        next_day = (await client.post("/api/v1/events/daily-login", json={"user_id": "u1"})).json()
        assert next_day["xp_awarded"] == 5


class TestNotificationsAPI:
    @pytest.mark.asyncio
    async def test_list_empty(self, client: AsyncClient):
        data = (await client.get("/api/v1/users/u1/notifications")).json()
        assert data["total"] == 0
        assert data["notifications"] == []

    @pytest.mark.asyncio
    async def test_training_notifications(self, client: AsyncClient):
        await client.post("/api/v1/events/training-completed", json={"user_id": "u1", "training_id": "t1"})

        data = (await client.get("/api/v1/users/u1/notifications")).json()
        assert data["total"] == 3
        assert data["unread"] == 3
        assert [n["kind"] for n in data["notifications"]] == ["xpAwarded", "achievementUnlocked", "xpAwarded"]
        assert data["notifications"][1]["title"] == "Wissensdurst"
        assert data["notifications"][1]["payload"]["achievement_id"] == "first_training"

    @pytest.mark.asyncio
    async def test_mark_read_and_clear(self, client: AsyncClient):
        await client.post("/api/v1/events/feedback-given", json={"user_id": "u1", "feedback_id": "f1"})
        [notification] = (await client.get("/api/v1/users/u1/notifications")).json()["notifications"]

        response = await client.post(f"/api/v1/notifications/{notification['id']}/read")
        assert response.status_code == 200
        assert response.json()["is_read"] is True
        assert (await client.get("/api/v1/users/u1/notifications")).json()["unread"] == 0

        cleared = await client.delete("/api/v1/users/u1/notifications")
        assert cleared.json() == {"removed": 1}
        assert (await client.get("/api/v1/users/u1/notifications")).json()["total"] == 0

    @pytest.mark.asyncio
    async def test_mark_unknown_notification(self, client: AsyncClient):
        response = await client.post("/api/v1/notifications/nope/read")
        assert response.status_code == 404
