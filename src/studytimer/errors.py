"""Typed failures returned by progression operations."""
from enum import Enum


class Failure(str, Enum):
    NOT_STARTED = "not_started"
    ALREADY_RUNNING = "already_running"
    ALREADY_PAUSED = "already_paused"
    NOT_PAUSED = "not_paused"
    CANNOT_STOP_WHILE_PAUSED = "cannot_stop_while_paused"
    NO_ACCOUNT = "no_account"
    NO_ACTIVE_TERM = "no_active_term"
    DUPLICATE_COURSE = "duplicate_course"
    INVALID_INPUT = "invalid_input"
    ACCOUNT_EXISTS = "account_exists"
    TERM_ALREADY_ACTIVE = "term_already_active"

    @property
    def message(self) -> str:
        return MESSAGES[self]


MESSAGES = {
    Failure.NOT_STARTED: "You don't have an active session.",
    Failure.ALREADY_RUNNING: "You have an active session.",
    Failure.ALREADY_PAUSED: "The timer is already paused, resume it before starting a new break.",
    Failure.NOT_PAUSED: "The timer is not paused.",
    Failure.CANNOT_STOP_WHILE_PAUSED: "You cannot end the session while the timer is paused.",
    Failure.NO_ACCOUNT: "You don't have a study account. Register first.",
    Failure.NO_ACTIVE_TERM: "You don't have an active term.",
    Failure.DUPLICATE_COURSE: "That course is already registered.",
    Failure.INVALID_INPUT: "Invalid input.",
    Failure.ACCOUNT_EXISTS: "An account already exists for this user.",
    Failure.TERM_ALREADY_ACTIVE: "A term is already active, end it before starting a new one.",
}


class ProgressionError(Exception):
    """A rejected operation; carries the Failure shown to the user."""

    def __init__(self, failure: Failure, detail: str = ""):
        super().__init__(detail or failure.message)
        self.failure = failure
        self.detail = detail
