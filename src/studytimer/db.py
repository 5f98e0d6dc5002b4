"""Database initialization and the progress persistence gateway."""
import json
import logging
import sqlite3
from copy import deepcopy
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Protocol

from studytimer.config import settings
from studytimer.models import Progress

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = settings.db_path

SCHEMA = """
CREATE TABLE IF NOT EXISTS progress (
    user_id TEXT PRIMARY KEY,
    data TEXT NOT NULL,
    updated_at TEXT
);
"""


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection with row factory enabled."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating all tables if they don't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()


def list_users(db_path: str = DEFAULT_DB_PATH) -> list[str]:
    conn = get_connection(db_path)
    rows = conn.execute("SELECT user_id FROM progress ORDER BY user_id").fetchall()
    conn.close()
    return [r["user_id"] for r in rows]


class ProgressGateway(Protocol):
    def load(self, user_id: str) -> Optional[Progress]: ...

    def save(self, progress: Progress) -> Progress: ...


class SqliteGateway:
    """Stores each user's aggregate as one JSON document."""

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        self.db_path = db_path
        init_db(db_path)

    def load(self, user_id: str) -> Optional[Progress]:
        conn = get_connection(self.db_path)
        try:
            row = conn.execute("SELECT data FROM progress WHERE user_id = ?", (user_id,)).fetchone()
        finally:
            conn.close()
        if row is None:
            return None
        return Progress.from_dict(json.loads(row["data"]))

    def save(self, progress: Progress) -> Progress:
        data = json.dumps(progress.to_dict())
        now = datetime.now(timezone.utc).isoformat()
        conn = get_connection(self.db_path)
        try:
            conn.execute(
                """INSERT INTO progress (user_id, data, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET data=excluded.data, updated_at=excluded.updated_at""",
                (progress.user_id, data, now),
            )
            conn.commit()
        except sqlite3.Error:
            logger.exception("Failed to save progress for user %s", progress.user_id)
            raise
        finally:
            conn.close()
        logger.debug("Saved progress for user %s", progress.user_id)
        return progress


class MemoryGateway:
    """Dict-backed gateway; hands out copies so callers never share state."""

    def __init__(self):
        self.store: dict[str, Progress] = {}
        self.saves = 0

    def load(self, user_id: str) -> Optional[Progress]:
        progress = self.store.get(user_id)
        return deepcopy(progress) if progress is not None else None

    def save(self, progress: Progress) -> Progress:
        self.store[progress.user_id] = deepcopy(progress)
        self.saves += 1
        return progress
