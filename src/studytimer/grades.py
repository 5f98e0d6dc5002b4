"""Letter grades and exact GPA computation."""
import re
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Iterable, Optional

GPA_PLACES = Decimal("0.001")


class Grade(Enum):
    A_PLUS = ("A+", "4.0")
    A = ("A", "4.0")
    A_MINUS = ("A-", "3.7")
    B_PLUS = ("B+", "3.3")
    B = ("B", "3.0")
    B_MINUS = ("B-", "2.7")
    C_PLUS = ("C+", "2.3")
    C = ("C", "2.0")
    C_MINUS = ("C-", "1.7")
    D_PLUS = ("D+", "1.3")
    D = ("D", "1.0")
    F = ("F", "0.0")
    W = ("W", None)
    P = ("P", None)

    def __init__(self, symbol: str, points: Optional[str]):
        self.symbol = symbol
        self.counts_toward_gpa = points is not None
        self.points = Decimal(points) if points is not None else Decimal("0.0")

    def __str__(self) -> str:
        return self.symbol


_DESCRIPTIVE = {
    Grade.F: ("FAIL", "FAILED", "FAILING"),
    Grade.W: ("WITHDRAW", "WITHDRAWN", "WITHDRAWAL"),
    Grade.P: ("PASS", "PASSED"),
}


def _normalize(text: str) -> str:
    key = re.sub(r"[\s_]+", " ", text.strip().upper())
    return re.sub(r"\s*([+-])\s*", r"\1", key)


def _build_aliases() -> dict[str, Grade]:
    aliases = {}
    for grade in Grade:
        spelled = grade.name.replace("_", " ")
        for alias in (grade.symbol, spelled, grade.name.replace("_", ""), *_DESCRIPTIVE.get(grade, ())):
            aliases[_normalize(alias)] = grade
    return aliases


_ALIASES = _build_aliases()


def parse_grade(text) -> Optional[Grade]:
    """Parse a grade such as "a+", "B minus" or "withdrawn"; None if unrecognized."""
    if isinstance(text, Grade):
        return text
    if not isinstance(text, str) or not text.strip():
        return None
    return _ALIASES.get(_normalize(text))


@dataclass(frozen=True)
class GpaResult:
    gpa: Decimal
    total_credit_hours: int
    quality_points: Decimal

    @property
    def has_gpa(self) -> bool:
        return self.total_credit_hours > 0


def _counts(course) -> bool:
    grade = getattr(course, "grade", None)
    return grade is not None and grade.counts_toward_gpa and course.credit_hours > 0


def compute_gpa(courses: Iterable) -> GpaResult:
    """Weighted GPA over graded courses.

    Courses without a grade, with W/P, or with no credit hours are skipped.
    The result is rounded half-up to three places with Decimal arithmetic.
    """
    quality = Decimal("0")
    hours = 0
    for course in courses:
        if not _counts(course):
            continue
        quality += course.grade.points * course.credit_hours
        hours += course.credit_hours
    if hours == 0:
        return GpaResult(Decimal("0").quantize(GPA_PLACES), 0, quality)
    gpa = (quality / Decimal(hours)).quantize(GPA_PLACES, rounding=ROUND_HALF_UP)
    return GpaResult(gpa, hours, quality)


def convert_grades(rows: Iterable[tuple]) -> list:
    """Turn (code, grade text, credit hours) rows into graded courses, skipping bad rows."""
    from studytimer.models import AccountCourse

    courses = []
    for code, grade_text, credit_hours in rows:
        grade = parse_grade(grade_text)
        if grade is None or not code or not str(code).strip():
            continue
        try:
            hours = int(credit_hours)
        except (TypeError, ValueError):
            continue
        if hours < 1:
            continue
        code = str(code).strip()
        courses.append(AccountCourse(code=code, name=code, grade=grade, credit_hours=hours))
    return courses


def classify(grade: Optional[Grade]) -> str:
    if grade is None:
        return "Unknown"
    if grade in (Grade.A_PLUS, Grade.A, Grade.A_MINUS):
        return "Excellent"
    if grade in (Grade.B_PLUS, Grade.B, Grade.B_MINUS):
        return "Good"
    if grade in (Grade.C_PLUS, Grade.C, Grade.C_MINUS):
        return "Satisfactory"
    if grade in (Grade.D_PLUS, Grade.D):
        return "Below Average"
    if grade is Grade.F:
        return "Failing"
    if grade is Grade.W:
        return "Withdrawn"
    return "Pass"


_ORDER = {grade: i for i, grade in enumerate(Grade)}


def grade_summary(courses: Iterable) -> dict:
    """Courses ordered best grade first, plus a "2 A, 1 B+" style count line."""
    ordered = sorted(
        courses,
        key=lambda c: _ORDER[c.grade] if c.grade is not None else len(_ORDER),
    )
    counts = {}
    for course in ordered:
        if course.grade is not None:
            counts[course.grade.symbol] = counts.get(course.grade.symbol, 0) + 1
    return {
        "courses": ordered,
        "counts": counts,
        "line": ", ".join(f"{n} {symbol}" for symbol, n in counts.items()),
    }
