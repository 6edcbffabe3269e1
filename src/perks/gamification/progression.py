"""XP ledger, skill levels, level-up detection, streaks and quarterly buckets."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone, tzinfo

import structlog

from perks.errors import InvalidAmount, NotFound
from perks.gamification.level_table import LevelTable
from perks.gamification.periods import apply_streak_day, calendar_day, get_quarter_key, roll_quarter
from perks.models import (
    COUNTER_METRICS,
    DailyStreak,
    LevelUpEvent,
    QuarterlyStats,
    SkillProgress,
    UserProgression,
    XPEvent,
    new_id,
)
from perks.store import Store

logger = structlog.get_logger()


class ProgressionLedger:
    """Owns every UserProgression and the XP / level-up logs.

    ``total_xp`` only ever changes by appending an XPEvent, and cached levels
    are re-derived in the same critical section.
    """

    def __init__(
        self,
        store: Store,
        level_table: LevelTable,
        skills: dict[str, str],
        tz: tzinfo = timezone.utc,
        streak_event_kinds: frozenset[str] | set[str] = frozenset({"punctual_checkin"}),
    ) -> None:
        self.store = store
        self.level_table = level_table
        self.skills = dict(skills)  # skill_id -> display name
        self.tz = tz
        self.streak_event_kinds = frozenset(streak_event_kinds)

    # ── Lookup ──

    def get_progression(self, user_id: str) -> UserProgression:
        prog = self.store.progression.get(user_id)
        if prog is None:
            raise NotFound("user", user_id)
        return prog

    def _get_or_create(self, user_id: str, now: datetime) -> UserProgression:
        """Get or create the progression row for a user (caller holds the user lock)."""
        prog = self.store.progression.get(user_id)
        if prog is None:
            prog = UserProgression(
                user_id=user_id,
                created_at=now,
                skills={sid: SkillProgress(skill_id=sid, name=name) for sid, name in self.skills.items()},
                quarterly_stats=QuarterlyStats(quarter=get_quarter_key(now, self.tz)),
            )
            self.refresh_levels(prog)
            self.store.progression.add(prog)
            logger.info("progression_created", user_id=user_id)
        return prog

    async def ensure_user(self, user_id: str, now: datetime) -> tuple[UserProgression, bool]:
        """Return (progression, created)."""
        async with self.store.locks.user(user_id):
            created = self.store.progression.get(user_id) is None
            return self._get_or_create(user_id, now), created

    # ── XP ──

    def refresh_levels(self, prog: UserProgression) -> None:
        """Re-derive the cached level fields of the user and every skill."""
        overall = self.level_table.level_progress(prog.total_xp)
        prog.level = overall["level"]
        prog.current_level_xp = overall["current_level_xp"]
        prog.next_level_xp = overall["next_level_xp"]

        for skill in prog.skills.values():
            skill.level = self.level_table.derive_level(skill.total_xp)
            skill.current_xp_in_level = skill.total_xp - self.level_table.definition_for(skill.total_xp).required_xp

    async def award_xp(
        self,
        user_id: str,
        skill_id: str | None,
        amount: int,
        source: str,
        description: str,
        now: datetime,
    ) -> XPEvent:
        """Append an XP event and update totals and levels.

        Each call is a new event; callers are responsible for not firing the
        same domain event twice.
        """
        if amount <= 0:
            raise InvalidAmount(amount, "XP amount")
        if skill_id is not None and skill_id not in self.skills:
            raise NotFound("skill", skill_id)

        async with self.store.locks.user(user_id):
            prog = self._get_or_create(user_id, now)

            event = XPEvent(
                id=new_id(),
                user_id=user_id,
                skill_id=skill_id,
                amount=amount,
                source_type=source,
                description=description,
                created_at=now,
            )
            self.store.progression.append_xp_event(event)

            prog.total_xp += amount
            if skill_id is not None:
                prog.skills[skill_id].total_xp += amount
            self.refresh_levels(prog)
            prog.last_active_at = now

        logger.info(
            "xp_awarded",
            user_id=user_id,
            skill_id=skill_id,
            amount=amount,
            source=source,
            total_xp=prog.total_xp,
            level=prog.level,
        )
        return event

    async def check_level_up(self, user_id: str, now: datetime) -> list[LevelUpEvent]:
        """Report levels crossed since the last check, one event per level.

        Compares the last announced level with the derived one for the user
        and each skill. Running it again without new XP returns nothing.
        """
        async with self.store.locks.user(user_id):
            prog = self.store.progression.get(user_id)
            if prog is None:
                return []

            events = self._collect_level_ups(user_id, None, prog.announced_level, prog.level, now)
            prog.announced_level = max(prog.announced_level, prog.level)

            for skill in prog.skills.values():
                events += self._collect_level_ups(user_id, skill.skill_id, skill.announced_level, skill.level, now)
                skill.announced_level = max(skill.announced_level, skill.level)

            for event in events:
                self.store.progression.append_level_up(event)

        for event in events:
            logger.info(
                "level_up",
                user_id=user_id,
                skill_id=event.skill_id,
                old_level=event.old_level,
                new_level=event.new_level,
            )
        return events

    def _collect_level_ups(
        self,
        user_id: str,
        skill_id: str | None,
        announced: int,
        current: int,
        now: datetime,
    ) -> list[LevelUpEvent]:
        events = []
        previous = announced
        for level in self.level_table.levels_between(announced, current):
            events.append(
                LevelUpEvent(
                    id=new_id(),
                    user_id=user_id,
                    old_level=previous,
                    new_level=level,
                    skill_id=skill_id,
                    created_at=now,
                )
            )
            previous = level
        return events

    def replace_table(self, table: LevelTable) -> None:
        """Swap the level table and re-derive every cached level.

        Runs without yielding to the event loop, so no operation observes a
        half-updated state.
        """
        self.level_table = table
        for prog in self.store.progression.all():
            self.refresh_levels(prog)
        logger.info("level_table_replaced", levels=len(table.levels))

    # ── Counters & streaks ──

    async def record_quarterly_metric(self, user_id: str, metric: str, delta: int, now: datetime) -> QuarterlyStats:
        """Add delta to the current quarter's bucket and the lifetime counter."""
        if metric not in COUNTER_METRICS:
            raise NotFound("metric", metric)
        if delta <= 0:
            raise InvalidAmount(delta, "metric delta")

        async with self.store.locks.user(user_id):
            prog = self._get_or_create(user_id, now)
            roll_quarter(prog.quarterly_stats, get_quarter_key(now, self.tz))
            prog.quarterly_stats.add(metric, delta)
            prog.lifetime_stats.add(metric, delta)
            prog.last_active_at = now
            return prog.quarterly_stats

    async def record_streak_event(self, user_id: str, kind: str, event_date: datetime | date) -> DailyStreak:
        """Advance the daily streak for streak-eligible event kinds."""
        if isinstance(event_date, datetime):
            created_at = event_date
        else:
            created_at = datetime.combine(event_date, datetime.min.time(), tzinfo=self.tz)

        async with self.store.locks.user(user_id):
            prog = self._get_or_create(user_id, created_at)
            if kind not in self.streak_event_kinds:
                return prog.daily_streak
            if apply_streak_day(prog.daily_streak, calendar_day(event_date, self.tz)):
                logger.debug(
                    "streak_updated",
                    user_id=user_id,
                    current=prog.daily_streak.current,
                    longest=prog.daily_streak.longest,
                )
            return prog.daily_streak

    async def register_login(self, user_id: str, now: datetime) -> bool:
        """Record a login; True only for the first login of the canonical day."""
        today = calendar_day(now, self.tz)
        async with self.store.locks.user(user_id):
            prog = self._get_or_create(user_id, now)
            if prog.last_login_day == today:
                return False
            prog.last_login_day = today
            prog.last_active_at = now
            return True

    def current_quarterly_stats(self, prog: UserProgression, now: datetime) -> QuarterlyStats:
        """The quarterly bucket as seen at ``now`` (zeroed if it belongs to a past quarter)."""
        quarter = get_quarter_key(now, self.tz)
        if prog.quarterly_stats.quarter == quarter:
            return prog.quarterly_stats
        return QuarterlyStats(quarter=quarter)

    # ── History & rankings ──

    def xp_history(self, user_id: str, page: int = 1, per_page: int = 50) -> tuple[list[XPEvent], int]:
        """XP events newest first, paginated. Returns (entries, total)."""
        events = self.store.progression.xp_events_for(user_id)
        events.reverse()
        offset = (page - 1) * per_page
        return events[offset:offset + per_page], len(events)

    def level_up_history(self, user_id: str, limit: int = 5) -> list[LevelUpEvent]:
        events = self.store.progression.level_ups_for(user_id)
        events.reverse()
        return events[:limit]

    def leaderboard(self, skill_id: str | None = None, limit: int = 10) -> list[dict]:
        """Users ranked by XP (overall or for one skill), ties broken by user id."""
        if skill_id is not None and skill_id not in self.skills:
            raise NotFound("skill", skill_id)

        rows = []
        for prog in self.store.progression.all():
            if skill_id is None:
                xp, level = prog.total_xp, prog.level
            else:
                skill = prog.skills[skill_id]
                xp, level = skill.total_xp, skill.level
            rows.append({"user_id": prog.user_id, "xp": xp, "level": level})

        rows.sort(key=lambda r: (-r["xp"], r["user_id"]))
        for rank, row in enumerate(rows, start=1):
            row["rank"] = rank
        return rows[:limit]

    def summary(self, user_id: str, now: datetime) -> dict:
        """Level, total XP, achievements, XP of the last 7 days and overall rank."""
        prog = self.store.progression.get(user_id)
        board = self.leaderboard(limit=len(self.store.progression.users) or 1)

        if prog is None:
            return {
                "user_id": user_id,
                "level": 1,
                "total_xp": 0,
                "achievements": 0,
                "weekly_xp": 0,
                "rank": len(board) + 1,
            }

        week_ago = now - timedelta(days=7)
        weekly_xp = sum(e.amount for e in self.store.progression.xp_events_for(user_id) if e.created_at >= week_ago)
        rank = next((row["rank"] for row in board if row["user_id"] == user_id), len(board) + 1)

        return {
            "user_id": user_id,
            "level": prog.level,
            "total_xp": prog.total_xp,
            "achievements": len(prog.unlocked_achievements),
            "weekly_xp": weekly_xp,
            "rank": rank,
        }
