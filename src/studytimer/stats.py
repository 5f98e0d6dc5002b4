"""Read-only statistics derived from a progress snapshot."""
from datetime import datetime, timezone, tzinfo
from typing import Optional

from studytimer.grades import compute_gpa
from studytimer.levels import (
    DEFAULT_RATE, LevelCurve, PointRate, account_curve, rank_badge,
    safe_percentage, seconds_for_points, term_curve,
)
from studytimer.models import Progress
from studytimer.streaks import is_streak_current


def format_duration(seconds: int) -> str:
    """Short human duration, e.g. "1d 2h 3m 4s"."""
    seconds = int(seconds)
    if seconds <= 0:
        return "0s"
    days, rest = divmod(seconds, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, secs = divmod(rest, 60)
    parts = []
    for value, unit in ((days, "d"), (hours, "h"), (minutes, "m"), (secs, "s")):
        if value:
            parts.append(f"{value}{unit}")
    return " ".join(parts)


def format_hours(seconds: int) -> str:
    return f"{max(0, seconds) / 3600:,.3f} hours"


def progress_bar(percent: int, segments: int = 10) -> str:
    percent = min(max(percent, 0), 100)
    filled = round(percent / 100 * segments)
    return "█" * filled + "░" * (segments - filled)


def _avg(total: int, count: int) -> int:
    return total // count if count else 0


def _ladder(curve: LevelCurve, level: int, points: int, rate: PointRate) -> dict:
    actual = curve.progress(level, points)
    required = curve.requirement(actual.new_level + 1)
    return {
        "level": actual.new_level,
        "points": actual.leftover,
        "required": required,
        "percent": safe_percentage(actual.leftover, required),
        "seconds_to_next": seconds_for_points(required - actual.leftover, rate),
    }


def build_stats(
    progress: Progress,
    xp_curve: Optional[LevelCurve] = None,
    rp_curve: Optional[LevelCurve] = None,
    rate: PointRate = DEFAULT_RATE,
    top_n: int = 3,
    now: Optional[datetime] = None,
    tz: tzinfo = timezone.utc,
) -> dict:
    xp_curve = xp_curve or term_curve()
    rp_curve = rp_curve or account_curve()
    now = now or datetime.now(timezone.utc)
    account = progress.account
    term = progress.term

    rank = _ladder(rp_curve, account.rank, account.rp, rate)
    gpa = compute_gpa(account.courses)
    record = account.record_term
    stats = {
        "lifetime_seconds": account.lifetime_seconds,
        "rank": rank["level"],
        "rp": rank["points"],
        "rp_required": rank["required"],
        "rank_percent": rank["percent"],
        "seconds_to_rank": rank["seconds_to_next"],
        "rank_badge": rank_badge(rank["level"]),
        "gpa": gpa.gpa if gpa.has_gpa else None,
        "record_term": {"name": record.name, "seconds": record.total_seconds} if record else None,
        "has_term": term is not None,
    }
    if term is None:
        return stats

    sessions = len(term.session_starts)
    courses = sorted(term.courses, key=lambda c: c.times_studied, reverse=True)
    times_studied = sum(c.times_studied for c in term.courses)
    weeks = max(1, sessions // 7)
    level = _ladder(xp_curve, term.level, term.xp, rate)
    stats.update({
        "term_name": term.name,
        "term_seconds": term.total_seconds,
        "session_count": sessions,
        "avg_session_seconds": _avg(term.total_seconds, sessions),
        "avg_weekly_seconds": term.total_seconds // weeks,
        "longest_session_seconds": term.longest_session_seconds,
        "break_seconds": term.total_break_seconds,
        "break_count": term.break_count,
        "avg_break_seconds": _avg(term.total_break_seconds, term.break_count),
        "avg_between_breaks_seconds": term.total_seconds // (term.break_count + 1),
        "course_count": len(term.courses),
        "times_studied": times_studied,
        "avg_per_study_seconds": _avg(term.total_seconds, times_studied),
        "top_courses": courses[:max(0, top_n)],
        "courses_by_study": courses,
        "streak": term.streak,
        "longest_streak": term.longest_streak,
        "streak_current": is_streak_current(term.last_streak_date, now, tz),
        "level": level["level"],
        "xp": level["points"],
        "xp_required": level["required"],
        "level_percent": level["percent"],
        "seconds_to_level": level["seconds_to_next"],
        "avg_start_ms": _avg(sum(term.session_starts), sessions) if sessions else None,
    })
    return stats
