"""Progression operations: sessions, ladders, streaks, terms and courses.

Each operation loads the user's aggregate, works on a copy and saves it
once. Rejected operations come back as a failed OperationResult and leave
the stored aggregate untouched. Storage errors propagate to the caller.
"""
import logging
import time
from copy import deepcopy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from studytimer import session as clock
from studytimer.config import Settings
from studytimer.errors import Failure, ProgressionError
from studytimer.events import LevelUp, RankUp, RecordBroken, RecordKind
from studytimer.grades import compute_gpa, grade_summary, parse_grade
from studytimer.levels import LevelCurve, earned_points
from studytimer.models import Account, AccountCourse, Progress, Term, TermCourse
from studytimer.stats import build_stats
from studytimer.streaks import update_streak

logger = logging.getLogger(__name__)


def system_clock() -> int:
    return int(time.time() * 1000)


@dataclass
class OperationResult:
    ok: bool
    failure: Optional[Failure] = None
    progress: Optional[Progress] = None
    recap: dict = field(default_factory=dict)
    events: list = field(default_factory=list)
    value: Any = None

    @property
    def message(self) -> str:
        return self.failure.message if self.failure else ""

    @classmethod
    def fail(cls, failure: Failure, progress: Optional[Progress] = None) -> "OperationResult":
        return cls(ok=False, failure=failure, progress=progress)


def _same(a: str, b: str) -> bool:
    return a.strip().lower() == b.strip().lower()


def _blank(text) -> bool:
    return not isinstance(text, str) or not text.strip()


class ProgressionCoordinator:
    def __init__(
        self,
        gateway,
        clock_fn: Callable[[], int] = system_clock,
        settings: Optional[Settings] = None,
        term_curve: Optional[LevelCurve] = None,
        account_curve: Optional[LevelCurve] = None,
    ):
        self.gateway = gateway
        self.clock = clock_fn
        self.settings = settings or Settings()
        self.term_curve = term_curve or self.settings.term_curve()
        self.account_curve = account_curve or self.settings.account_curve()
        self.rate = self.settings.rate()
        self.zone = self.settings.zone()

    # -- helpers ---------------------------------------------------------

    def _load(self, user_id: str) -> Progress:
        progress = self.gateway.load(user_id)
        if progress is None:
            raise ProgressionError(Failure.NO_ACCOUNT)
        return deepcopy(progress)

    @staticmethod
    def _require_term(progress: Progress) -> Term:
        if progress.term is None:
            raise ProgressionError(Failure.NO_ACTIVE_TERM)
        return progress.term

    def _run(self, name: str, user_id: str, operation) -> OperationResult:
        try:
            result = operation()
        except ProgressionError as e:
            logger.debug("%s rejected for user %s: %s", name, user_id, e.failure.value)
            return OperationResult.fail(e.failure)
        logger.info("%s completed for user %s", name, user_id)
        return result

    def _save(self, progress: Progress, **kwargs) -> OperationResult:
        saved = self.gateway.save(progress)
        return OperationResult(ok=True, progress=saved, **kwargs)

    # -- registration ----------------------------------------------------

    def register(self, user_id: str, term_name: Optional[str] = None) -> OperationResult:
        """Create the account if needed and, when named, a fresh term."""
        def op():
            if _blank(user_id) or (term_name is not None and _blank(term_name)):
                raise ProgressionError(Failure.INVALID_INPUT)
            existing = self.gateway.load(user_id)
            if existing is None:
                progress = Progress(account=Account(user_id=user_id))
            elif term_name is None:
                raise ProgressionError(Failure.ACCOUNT_EXISTS)
            else:
                progress = deepcopy(existing)
            if term_name is not None:
                if progress.term is not None:
                    raise ProgressionError(Failure.TERM_ALREADY_ACTIVE)
                progress.term = Term(name=term_name.strip())
            return self._save(progress, recap={"term": term_name.strip() if term_name else None})

        return self._run("register", user_id, op)

    # -- session lifecycle -----------------------------------------------

    def start(self, user_id: str, topic: Optional[str] = None) -> OperationResult:
        def op():
            progress = self._load(user_id)
            term = self._require_term(progress)
            clock.start(progress.session, term, self.clock(), topic)
            return self._save(progress, recap={
                "topic": progress.session.topic,
                "courses": list(progress.session.courses_studied),
            })

        return self._run("start", user_id, op)

    def pause(self, user_id: str) -> OperationResult:
        def op():
            progress = self._load(user_id)
            clock.pause(progress.session, self.clock())
            return self._save(progress)

        return self._run("pause", user_id, op)

    def resume(self, user_id: str) -> OperationResult:
        def op():
            progress = self._load(user_id)
            length = clock.resume(progress.session, self.clock())
            return self._save(progress, value=length, recap={"break_seconds": length})

        return self._run("resume", user_id, op)

    def info(self, user_id: str) -> OperationResult:
        """Live view of the open session; nothing is saved."""
        def op():
            progress = self._load(user_id)
            summary = clock.elapsed(progress.session, self.clock())
            return OperationResult(ok=True, progress=progress, value=summary, recap=vars(summary).copy())

        return self._run("info", user_id, op)

    def stop(self, user_id: str) -> OperationResult:
        def op():
            progress = self._load(user_id)
            term = self._require_term(progress)
            account = progress.account
            now_ms = self.clock()
            prior_longest = term.longest_session_seconds
            summary = clock.stop(progress.session, term, account, now_ms)

            earned = earned_points(summary.net_seconds, self.rate)
            events = self._award(progress, earned)

            streak = update_streak(
                term.last_streak_date, term.streak, term.longest_streak,
                datetime.fromtimestamp(now_ms / 1000, tz=timezone.utc), self.zone,
            )
            term.streak = streak.streak
            term.longest_streak = streak.longest_streak
            term.last_streak_date = streak.last_date

            if summary.net_seconds > prior_longest and summary.net_seconds > 0:
                events.append(RecordBroken(RecordKind.SESSION, summary.net_seconds))

            recap = {
                "start_ms": summary.start_ms,
                "wall_seconds": summary.wall_seconds,
                "net_seconds": summary.net_seconds,
                "break_seconds": summary.break_seconds,
                "break_count": summary.break_count,
                "avg_break_seconds": summary.break_seconds // summary.break_count if summary.break_count else 0,
                "courses": summary.courses,
                "points_earned": earned,
                "streak": term.streak,
            }
            return self._save(progress, recap=recap, events=events, value=summary)

        return self._run("stop", user_id, op)

    def _award(self, progress: Progress, earned: int) -> list:
        """Apply earned points to both ladders independently."""
        events = []
        account = progress.account
        term = progress.term

        rank = self.account_curve.apply(account.rank, account.rp, earned)
        account.rank, account.rp = rank.new_level, rank.leftover
        if rank.levels_gained > 0:
            events.append(RankUp(rank.levels_gained, rank.leftover, rank.new_level))

        level = self.term_curve.apply(term.level, term.xp, earned)
        term.level, term.xp = level.new_level, level.leftover
        if level.levels_gained > 0:
            events.append(LevelUp(level.levels_gained, level.leftover, level.new_level))
        return events

    # -- term end --------------------------------------------------------

    def end_term(self, user_id: str) -> OperationResult:
        """Fold the term into the account, keep it as a record if longest, clear it."""
        def op():
            progress = self._load(user_id)
            term = self._require_term(progress)
            if progress.session.start_ms is not None:
                raise ProgressionError(Failure.ALREADY_RUNNING)
            account = progress.account
            events = []

            total = self.term_curve.total_points(term.level, term.xp)
            rank = self.account_curve.apply(account.rank, account.rp, total)
            account.rank, account.rp = rank.new_level, rank.leftover
            if rank.levels_gained > 0:
                events.append(RankUp(rank.levels_gained, rank.leftover, rank.new_level))

            record = account.record_term
            if record is None or record.total_seconds < term.total_seconds:
                account.record_term = deepcopy(term)
                events.append(RecordBroken(RecordKind.TERM, term.total_seconds))

            account.lifetime_seconds += term.total_seconds
            recap = {
                "term": term.name,
                "total_seconds": term.total_seconds,
                "session_count": len(term.session_starts),
                "break_seconds": term.total_break_seconds,
                "longest_session_seconds": term.longest_session_seconds,
                "level": term.level,
                "points_converted": total,
            }
            progress.term = None
            return self._save(progress, recap=recap, events=events)

        return self._run("end_term", user_id, op)

    # -- courses ---------------------------------------------------------

    def add_term_course(self, user_id: str, code: str, name: str) -> OperationResult:
        def op():
            if _blank(code) or _blank(name):
                raise ProgressionError(Failure.INVALID_INPUT)
            progress = self._load(user_id)
            term = self._require_term(progress)
            if any(_same(c.code, code) for c in term.courses):
                raise ProgressionError(Failure.DUPLICATE_COURSE)
            if any(_same(c.name, name) for c in progress.account.courses):
                raise ProgressionError(Failure.DUPLICATE_COURSE)
            term.courses.append(TermCourse(code=code.strip(), name=name.strip()))
            return self._save(progress)

        return self._run("add_term_course", user_id, op)

    def remove_term_course(self, user_id: str, code: str) -> OperationResult:
        def op():
            if _blank(code):
                raise ProgressionError(Failure.INVALID_INPUT)
            progress = self._load(user_id)
            term = self._require_term(progress)
            kept = [c for c in term.courses if not _same(c.code, code)]
            if len(kept) == len(term.courses):
                raise ProgressionError(Failure.INVALID_INPUT)
            term.courses = kept
            return self._save(progress)

        return self._run("remove_term_course", user_id, op)

    def add_account_course(
        self, user_id: str, code: str, name: str, credit_hours: int = 1, grade: Optional[str] = None,
    ) -> OperationResult:
        def op():
            if _blank(code) or _blank(name):
                raise ProgressionError(Failure.INVALID_INPUT)
            if isinstance(credit_hours, bool) or not isinstance(credit_hours, int) or credit_hours < 1:
                raise ProgressionError(Failure.INVALID_INPUT)
            parsed = None
            if grade is not None and not _blank(grade) and grade.strip().upper() != "N/A":
                parsed = parse_grade(grade)
                if parsed is None:
                    raise ProgressionError(Failure.INVALID_INPUT)
            progress = self._load(user_id)
            account = progress.account
            if any(_same(c.code, code) or _same(c.name, name) for c in account.courses):
                raise ProgressionError(Failure.DUPLICATE_COURSE)
            if progress.term and any(_same(c.name, name) for c in progress.term.courses):
                raise ProgressionError(Failure.DUPLICATE_COURSE)
            account.courses.append(AccountCourse(
                code=code.strip(), name=name.strip(), grade=parsed, credit_hours=credit_hours,
            ))
            return self._save(progress)

        return self._run("add_account_course", user_id, op)

    def remove_account_course(self, user_id: str, code: str) -> OperationResult:
        def op():
            if _blank(code):
                raise ProgressionError(Failure.INVALID_INPUT)
            progress = self._load(user_id)
            account = progress.account
            kept = [c for c in account.courses if not _same(c.code, code)]
            if len(kept) == len(account.courses):
                raise ProgressionError(Failure.INVALID_INPUT)
            account.courses = kept
            return self._save(progress)

        return self._run("remove_account_course", user_id, op)

    def set_grade(self, user_id: str, code: str, grade: str) -> OperationResult:
        def op():
            parsed = parse_grade(grade)
            if _blank(code) or parsed is None:
                raise ProgressionError(Failure.INVALID_INPUT)
            progress = self._load(user_id)
            for course in progress.account.courses:
                if _same(course.code, code):
                    course.grade = parsed
                    break
            else:
                raise ProgressionError(Failure.INVALID_INPUT)
            return self._save(progress, value=parsed)

        return self._run("set_grade", user_id, op)

    # -- read-only views -------------------------------------------------

    def gpa(self, user_id: str) -> OperationResult:
        def op():
            progress = self._load(user_id)
            result = compute_gpa(progress.account.courses)
            return OperationResult(
                ok=True, progress=progress, value=result,
                recap=grade_summary(progress.account.courses),
            )

        return self._run("gpa", user_id, op)

    def stats(self, user_id: str) -> OperationResult:
        def op():
            progress = self._load(user_id)
            now = datetime.fromtimestamp(self.clock() / 1000, tz=timezone.utc)
            snapshot = build_stats(
                progress, self.term_curve, self.account_curve, self.rate,
                self.settings.top_courses, now, self.zone,
            )
            return OperationResult(ok=True, progress=progress, value=snapshot, recap=snapshot)

        return self._run("stats", user_id, op)

    def session_state(self, user_id: str) -> OperationResult:
        def op():
            progress = self._load(user_id)
            return OperationResult(ok=True, progress=progress, value=clock.state(progress.session))

        return self._run("session_state", user_id, op)
