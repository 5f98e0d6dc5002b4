# tests/test_stats.py
from datetime import datetime, timezone

import pytest

from studytimer.grades import Grade
from studytimer.models import Account, AccountCourse, Progress, Term, TermCourse
from studytimer.stats import build_stats, format_duration, format_hours, progress_bar

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def make_progress(**term_fields):
    term = Term(name="Fall 2026", **term_fields)
    return Progress(account=Account(user_id="u1"), term=term)


@pytest.mark.parametrize("seconds,expected", [
    (0, "0s"),
    (-5, "0s"),
    (59, "59s"),
    (3600, "1h"),
    (93784, "1d 2h 3m 4s"),
])
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


def test_format_hours():
    assert format_hours(5400) == "1.500 hours"
    assert format_hours(-1) == "0.000 hours"


def test_progress_bar_bounds():
    assert progress_bar(0) == "░" * 10
    assert progress_bar(100) == "█" * 10
    assert progress_bar(150) == "█" * 10
    assert progress_bar(50) == "█" * 5 + "░" * 5


def test_stats_without_term():
    progress = Progress(account=Account(user_id="u1", lifetime_seconds=7200, rank=2, rp=100))
    stats = build_stats(progress, now=NOW)
    assert stats["has_term"] is False
    assert stats["lifetime_seconds"] == 7200
    assert stats["rank"] == 2
    assert stats["rp_required"] == 2700
    assert stats["rank_badge"] == "Verified"
    assert stats["gpa"] is None
    assert stats["record_term"] is None
    assert "level" not in stats


def test_stats_with_fresh_term_has_no_division_errors():
    stats = build_stats(make_progress(), now=NOW)
    assert stats["session_count"] == 0
    assert stats["avg_session_seconds"] == 0
    assert stats["avg_break_seconds"] == 0
    assert stats["avg_per_study_seconds"] == 0
    assert stats["avg_start_ms"] is None
    assert stats["streak_current"] is False
    assert stats["level"] == 1
    assert stats["xp_required"] == 700
    assert stats["level_percent"] == 0


def test_stats_averages():
    progress = make_progress(
        total_seconds=6000,
        session_starts=[1000, 3000],
        total_break_seconds=900,
        break_count=3,
        longest_session_seconds=4000,
    )
    stats = build_stats(progress, now=NOW)
    assert stats["avg_session_seconds"] == 3000
    assert stats["avg_weekly_seconds"] == 6000
    assert stats["avg_break_seconds"] == 300
    assert stats["avg_between_breaks_seconds"] == 1500
    assert stats["avg_start_ms"] == 2000


def test_stats_level_progress_and_time_to_next():
    stats = build_stats(make_progress(level=2, xp=650), now=NOW)
    assert stats["xp_required"] == 1300
    assert stats["level_percent"] == 50
    # 650 points at 180 per 5 minutes
    assert stats["seconds_to_level"] == 1083


def test_stats_normalizes_overflowing_points():
    stats = build_stats(make_progress(level=1, xp=800), now=NOW)
    assert stats["level"] == 2
    assert stats["xp"] == 100


def test_stats_courses_ordered_by_study_count():
    courses = [
        TermCourse("CS101", "Intro", 2),
        TermCourse("MA101", "Calc", 5),
        TermCourse("PH101", "Physics", 1),
        TermCourse("EN101", "English", 3),
    ]
    progress = make_progress(courses=courses, total_seconds=2200)
    stats = build_stats(progress, top_n=2, now=NOW)
    assert [c.code for c in stats["top_courses"]] == ["MA101", "EN101"]
    assert [c.code for c in stats["courses_by_study"]] == ["MA101", "EN101", "CS101", "PH101"]
    assert stats["times_studied"] == 11
    assert stats["avg_per_study_seconds"] == 200


def test_stats_streak_current():
    progress = make_progress(streak=3, longest_streak=4, last_streak_date="2026-03-09")
    stats = build_stats(progress, now=NOW)
    assert stats["streak"] == 3
    assert stats["longest_streak"] == 4
    assert stats["streak_current"] is True
    stale = make_progress(streak=3, last_streak_date="2026-03-07")
    assert build_stats(stale, now=NOW)["streak_current"] is False


def test_stats_gpa_and_record_term():
    account = Account(
        user_id="u1",
        courses=[AccountCourse("MA101", "Calc", Grade.A_MINUS, 4)],
        record_term=Term(name="Spring 2026", total_seconds=36000),
    )
    stats = build_stats(Progress(account=account), now=NOW)
    assert str(stats["gpa"]) == "3.700"
    assert stats["record_term"] == {"name": "Spring 2026", "seconds": 36000}
