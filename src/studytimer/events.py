"""Domain events emitted by progression operations."""
from dataclasses import dataclass
from enum import Enum


class RecordKind(str, Enum):
    SESSION = "session"
    TERM = "term"


@dataclass(frozen=True)
class LevelUp:
    levels_gained: int
    leftover_points: int
    new_level: int


@dataclass(frozen=True)
class RankUp:
    levels_gained: int
    leftover_points: int
    new_rank: int


@dataclass(frozen=True)
class RecordBroken:
    kind: RecordKind
    value: int  # seconds
