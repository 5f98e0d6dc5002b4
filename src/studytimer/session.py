"""Session and break state machine.

A session moves IDLE -> ACTIVE -> (ACTIVE <-> ON_BREAK) -> IDLE. Every
transition checks its state first and raises ProgressionError without
touching anything when the move is not allowed.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from studytimer.errors import Failure, ProgressionError
from studytimer.models import Account, Break, Session, Term


class SessionState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    ON_BREAK = "on_break"


@dataclass(frozen=True)
class SessionSummary:
    start_ms: int
    end_ms: int
    wall_seconds: int
    break_seconds: int
    net_seconds: int
    break_count: int
    open_break_seconds: int = 0
    topic: Optional[str] = None
    courses: list[str] = field(default_factory=list)


def state(session: Session) -> SessionState:
    if session.start_ms is None:
        return SessionState.IDLE
    if session.brk.start_ms is not None:
        return SessionState.ON_BREAK
    return SessionState.ACTIVE


def _ms_between(start_ms: int, end_ms: int) -> int:
    return max(0, end_ms - start_ms)


def topic_code(topic: str) -> str:
    """Course code part of a topic such as "CS101 - Recursion"."""
    return topic.split(" - ", 1)[0].strip()


def start(session: Session, term: Term, now_ms: int, topic: Optional[str] = None) -> None:
    if state(session) is not SessionState.IDLE:
        raise ProgressionError(Failure.ALREADY_RUNNING)
    session.start_ms = now_ms
    session.brk = Break()
    session.break_count = 0
    session.courses_studied = []
    session.topic = topic.strip() if topic and topic.strip() else None
    term.session_starts.append(now_ms)

    if session.topic:
        code = topic_code(session.topic).lower()
        for course in term.courses:
            if course.code.strip().lower() == code:
                course.times_studied += 1
                session.courses_studied.append(course.code)
                break


def pause(session: Session, now_ms: int) -> None:
    current = state(session)
    if current is SessionState.IDLE:
        raise ProgressionError(Failure.NOT_STARTED)
    if current is SessionState.ON_BREAK:
        raise ProgressionError(Failure.ALREADY_PAUSED)
    session.brk.start_ms = now_ms


def resume(session: Session, now_ms: int) -> int:
    """Close the open break and return its length in seconds."""
    current = state(session)
    if current is SessionState.IDLE:
        raise ProgressionError(Failure.NOT_STARTED)
    if current is SessionState.ACTIVE:
        raise ProgressionError(Failure.NOT_PAUSED)
    length_ms = _ms_between(session.brk.start_ms, now_ms)
    session.brk.ms += length_ms
    session.brk.start_ms = None
    session.break_count += 1
    return length_ms // 1000


def elapsed(session: Session, now_ms: int) -> SessionSummary:
    """Running totals for an open session. Break time never exceeds wall time.

    Totals are kept in milliseconds and floored to whole seconds once, so
    where calls fall within a second does not change net time.
    """
    if state(session) is SessionState.IDLE:
        raise ProgressionError(Failure.NOT_STARTED)
    wall_ms = _ms_between(session.start_ms, now_ms)
    open_ms = 0
    if session.brk.start_ms is not None:
        open_ms = _ms_between(session.brk.start_ms, now_ms)
    break_ms = min(max(0, session.brk.ms) + open_ms, wall_ms)
    return SessionSummary(
        start_ms=session.start_ms,
        end_ms=now_ms,
        wall_seconds=wall_ms // 1000,
        break_seconds=break_ms // 1000,
        net_seconds=(wall_ms - break_ms) // 1000,
        break_count=session.break_count,
        open_break_seconds=open_ms // 1000,
        topic=session.topic,
        courses=list(session.courses_studied),
    )


def stop(session: Session, term: Term, account: Account, now_ms: int) -> SessionSummary:
    """End the session and fold its net time into the term and account."""
    current = state(session)
    if current is SessionState.IDLE:
        raise ProgressionError(Failure.NOT_STARTED)
    if current is SessionState.ON_BREAK:
        raise ProgressionError(Failure.CANNOT_STOP_WHILE_PAUSED)
    summary = elapsed(session, now_ms)

    term.total_seconds += summary.net_seconds
    term.total_break_seconds += summary.break_seconds
    term.break_count += summary.break_count
    if summary.net_seconds > term.longest_session_seconds:
        term.longest_session_seconds = summary.net_seconds
    account.lifetime_seconds += summary.net_seconds

    session.start_ms = None
    session.brk = Break()
    session.break_count = 0
    session.courses_studied = []
    session.last_topic = session.topic
    session.topic = None
    session.last_elapsed_seconds = summary.net_seconds
    return summary
