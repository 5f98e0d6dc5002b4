"""Data classes for the study-tracking domain model."""
from dataclasses import dataclass, field, fields
from typing import Optional

from studytimer.grades import Grade, parse_grade


def _known(cls, data: dict) -> dict:
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names}


@dataclass
class TermCourse:
    code: str
    name: str
    times_studied: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> "TermCourse":
        return cls(**_known(cls, data))


@dataclass
class AccountCourse:
    code: str
    name: str
    grade: Optional[Grade] = None
    credit_hours: int = 1

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "name": self.name,
            "grade": self.grade.symbol if self.grade else None,
            "credit_hours": self.credit_hours,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AccountCourse":
        values = _known(cls, data)
        values["grade"] = parse_grade(values.get("grade"))
        return cls(**values)


@dataclass
class Term:
    name: str
    level: int = 1
    xp: int = 0
    total_seconds: int = 0
    session_starts: list[int] = field(default_factory=list)
    total_break_seconds: int = 0
    break_count: int = 0
    longest_session_seconds: int = 0
    streak: int = 0
    longest_streak: int = 0
    last_streak_date: Optional[str] = None  # ISO date
    courses: list[TermCourse] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["session_starts"] = list(self.session_starts)
        data["courses"] = [vars(c).copy() for c in self.courses]
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Term":
        values = _known(cls, data)
        values["courses"] = [TermCourse.from_dict(c) for c in values.get("courses", [])]
        values["session_starts"] = list(values.get("session_starts", []))
        return cls(**values)


@dataclass
class Account:
    user_id: str
    lifetime_seconds: int = 0
    rank: int = 0
    rp: int = 0
    record_term: Optional[Term] = None
    courses: list[AccountCourse] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "lifetime_seconds": self.lifetime_seconds,
            "rank": self.rank,
            "rp": self.rp,
            "record_term": self.record_term.to_dict() if self.record_term else None,
            "courses": [c.to_dict() for c in self.courses],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Account":
        values = _known(cls, data)
        record = values.get("record_term")
        values["record_term"] = Term.from_dict(record) if record else None
        values["courses"] = [AccountCourse.from_dict(c) for c in values.get("courses", [])]
        return cls(**values)


@dataclass
class Break:
    start_ms: Optional[int] = None
    ms: int = 0  # closed break time

    @classmethod
    def from_dict(cls, data: dict) -> "Break":
        values = _known(cls, data)
        if "ms" not in values and "seconds" in data:
            values["ms"] = int(data["seconds"]) * 1000
        return cls(**values)


@dataclass
class Session:
    start_ms: Optional[int] = None
    last_elapsed_seconds: int = 0
    brk: Break = field(default_factory=Break)
    break_count: int = 0
    topic: Optional[str] = None
    last_topic: Optional[str] = None
    courses_studied: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["brk"] = vars(self.brk).copy()
        data["courses_studied"] = list(self.courses_studied)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Session":
        values = _known(cls, data)
        values["brk"] = Break.from_dict(values.get("brk") or {})
        values["courses_studied"] = list(values.get("courses_studied", []))
        return cls(**values)


@dataclass
class Progress:
    """Everything stored for one user: account, active term and session."""
    account: Account
    term: Optional[Term] = None
    session: Session = field(default_factory=Session)

    @property
    def user_id(self) -> str:
        return self.account.user_id

    def to_dict(self) -> dict:
        return {
            "account": self.account.to_dict(),
            "term": self.term.to_dict() if self.term else None,
            "session": self.session.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Progress":
        term = data.get("term")
        return cls(
            account=Account.from_dict(data["account"]),
            term=Term.from_dict(term) if term else None,
            session=Session.from_dict(data.get("session") or {}),
        )
