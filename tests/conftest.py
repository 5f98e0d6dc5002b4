import pytest

from studytimer.config import Settings
from studytimer.db import MemoryGateway
from studytimer.progression import ProgressionCoordinator

# 2026-03-02 09:00:00 UTC
BASE_MS = 1772442000000
MINUTE_MS = 60 * 1000
DAY_MS = 24 * 60 * MINUTE_MS


class FakeClock:
    def __init__(self, now_ms: int = BASE_MS):
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, minutes: float = 0, seconds: float = 0) -> None:
        self.now_ms += int(minutes * MINUTE_MS + seconds * 1000)


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_studytimer.db")
    return db_path


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def memory_gateway():
    return MemoryGateway()


@pytest.fixture
def coordinator(memory_gateway, fake_clock):
    return ProgressionCoordinator(memory_gateway, fake_clock, settings=Settings(_env_file=None))


@pytest.fixture
def registered(coordinator):
    """A coordinator whose user "u1" has an account and an active term."""
    coordinator.register("u1", "Fall 2026")
    return coordinator
