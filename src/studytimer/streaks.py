"""Calendar-day study streaks."""
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Optional, Union


@dataclass(frozen=True)
class StreakResult:
    streak: int
    longest_streak: int
    last_date: Optional[str]


def _as_date(value: Union[str, date, None]) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


def local_date(now: datetime, tz: tzinfo = timezone.utc) -> date:
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(tz).date()


def update_streak(
    last_date: Union[str, date, None],
    streak: int,
    longest_streak: int,
    now: datetime,
    tz: tzinfo = timezone.utc,
) -> StreakResult:
    """Advance the streak for a session completed at ``now``.

    Same day: unchanged. Next day: +1. Longer gap: back to 1. A ``now``
    earlier than the last update is treated like the same day.
    """
    today = local_date(now, tz)
    last = _as_date(last_date)
    streak = max(0, streak)
    longest_streak = max(0, longest_streak)

    if last is not None and today <= last:
        return StreakResult(streak, longest_streak, last.isoformat())
    if last is not None and today == last + timedelta(days=1):
        streak += 1
    else:
        streak = 1
    return StreakResult(streak, max(longest_streak, streak), today.isoformat())


def is_streak_current(last_date: Union[str, date, None], now: datetime, tz: tzinfo = timezone.utc) -> bool:
    last = _as_date(last_date)
    if last is None:
        return False
    return (local_date(now, tz) - last).days <= 1
