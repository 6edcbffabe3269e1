"""Calendar helpers: quarter keys, canonical days, streak and bucket updates.

All functions take the current time explicitly; nothing here reads the system
clock. Days and quarters are computed in one canonical timezone so that two
instants on the same local calendar day compare equal.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone, tzinfo

from perks.models import DailyStreak, QuarterlyStats


def calendar_day(dt: datetime | date, tz: tzinfo = timezone.utc) -> date:
    """Calendar date of dt in the canonical timezone. Naive datetimes are taken as UTC."""
    if isinstance(dt, datetime):
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(tz).date()
    return dt


def get_quarter_key(dt: datetime | date, tz: tzinfo = timezone.utc) -> str:
    """Quarter string e.g. '2026-Q3'."""
    d = calendar_day(dt, tz)
    return f"{d.year}-Q{(d.month - 1) // 3 + 1}"


def roll_quarter(stats: QuarterlyStats, quarter: str) -> None:
    """Reset the bucket to zero when it belongs to another quarter."""
    if stats.quarter != quarter:
        stats.quarter = quarter
        stats.coins_earned = 0
        stats.trainings_completed = 0
        stats.punctual_days = 0
        stats.feedback_given = 0


def apply_streak_day(streak: DailyStreak, day: date) -> bool:
    """Advance a daily streak with an event on ``day``.

    Same day as the last event: no-op. The following day: extend. Any other
    day, earlier ones included: restart at 1. Returns True if the streak
    changed.
    """
    last = streak.last_event_date
    if last == day:
        return False

    if last is not None and day - last == timedelta(days=1):
        streak.current += 1
    else:
        streak.current = 1

    streak.longest = max(streak.longest, streak.current)
    streak.last_event_date = day
    return True


def effective_streak(streak: DailyStreak, today: date) -> int:
    """Current streak as seen on ``today``: broken if the last event was before yesterday."""
    if streak.last_event_date is None:
        return 0
    if today - streak.last_event_date > timedelta(days=1):
        return 0
    return streak.current
