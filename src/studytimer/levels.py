"""Leveling ladders: requirement curves and overflow-aware progression."""
import threading
from dataclasses import dataclass
from typing import MutableMapping, Optional

MAX_LEVEL = 5000

# Default guard for requirement caches. Curves sharing a cache share this lock
# unless the caller supplies one with the cache.
_CACHE_LOCK = threading.Lock()

TERM_SLOPE, TERM_OFFSET = 600, 500
ACCOUNT_SLOPE, ACCOUNT_OFFSET = 1200, 900

# Lower bound of each badge band, highest first.
RANK_BADGES = [
    (1001, "Donut"),
    (251, "Crystal Heart"),
    (151, "Red Heart"),
    (101, "Pink Heart"),
    (51, "White Heart"),
    (26, "Black Heart"),
    (0, "Verified"),
]


@dataclass(frozen=True)
class LevelResult:
    new_level: int
    leftover: int
    levels_gained: int


@dataclass(frozen=True)
class PointRate:
    """Points awarded per whole block of study minutes."""
    points_per_block: int = 180
    block_minutes: int = 5


DEFAULT_RATE = PointRate()


class LevelCurve:
    """A ladder whose step from n-1 to n costs ``slope * n - offset`` points.

    Requirement lookups are memoized in ``cache``. Pass a shared mapping to
    reuse one cache between curves with the same parameters, and ``lock``
    to guard it with something other than the module-wide lock.
    """

    def __init__(
        self,
        slope: int,
        offset: int,
        ceiling: int = MAX_LEVEL,
        cache: Optional[MutableMapping[int, int]] = None,
        lock: Optional[threading.Lock] = None,
    ):
        if slope <= 0 or slope - offset <= 0:
            raise ValueError("curve must be positive and strictly increasing")
        self.slope = slope
        self.offset = offset
        self.ceiling = ceiling
        self.cache = cache if cache is not None else {}
        self.lock = lock if lock is not None else _CACHE_LOCK

    def requirement(self, n: int) -> int:
        n = max(1, n)
        value = self.cache.get(n)
        if value is None:
            with self.lock:
                value = self.cache.get(n)
                if value is None:
                    value = self.slope * n - self.offset
                    self.cache[n] = value
        return value

    def apply(self, level: int, points: int, earned: int) -> LevelResult:
        """Add ``earned`` to ``points`` and consume every reachable level.

        Negative inputs count as zero. Stops at the ceiling, where leftover
        may exceed the next requirement.
        """
        start = max(0, level)
        current = start
        total = max(0, points) + max(0, earned)
        while current < self.ceiling:
            need = self.requirement(current + 1)
            if total < need:
                break
            total -= need
            current += 1
        return LevelResult(new_level=current, leftover=total, levels_gained=current - start)

    def progress(self, level: int, points: int) -> LevelResult:
        return self.apply(level, points, 0)

    def total_points(self, level: int, leftover: int = 0) -> int:
        """Every point spent reaching ``level`` plus what is left over."""
        return sum(self.requirement(i) for i in range(1, max(0, level) + 1)) + max(0, leftover)


def term_curve(ceiling: int = MAX_LEVEL, cache=None, lock=None) -> LevelCurve:
    return LevelCurve(TERM_SLOPE, TERM_OFFSET, ceiling, cache, lock)


def account_curve(ceiling: int = MAX_LEVEL, cache=None, lock=None) -> LevelCurve:
    return LevelCurve(ACCOUNT_SLOPE, ACCOUNT_OFFSET, ceiling, cache, lock)


def earned_points(seconds: int, rate: PointRate = DEFAULT_RATE) -> int:
    """Points for a session; partial blocks earn nothing."""
    minutes = max(0, seconds) // 60
    return (minutes // rate.block_minutes) * rate.points_per_block


def seconds_for_points(points: int, rate: PointRate = DEFAULT_RATE) -> int:
    """Study time needed to earn ``points``."""
    if points <= 0:
        return 0
    return round(points * rate.block_minutes * 60 / rate.points_per_block)


def safe_percentage(value: int, required: int) -> int:
    if required <= 0:
        return 0
    return int(min(100, max(0, round(value * 100 / required))))


def rank_badge(level: int) -> str:
    for floor, badge in RANK_BADGES:
        if level >= floor:
            return badge
    return RANK_BADGES[-1][1]
