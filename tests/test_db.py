"""Tests for database initialization and the progress gateways."""
import sqlite3
from unittest.mock import patch

import pytest

from studytimer.db import MemoryGateway, SqliteGateway, get_connection, init_db, list_users
from studytimer.grades import Grade
from studytimer.models import Account, AccountCourse, Progress, Term, TermCourse


def sample_progress(user_id="u1"):
    record = Term(name="Spring 2026", level=7, total_seconds=90000, last_streak_date="2026-05-01")
    account = Account(
        user_id=user_id,
        lifetime_seconds=120000,
        rank=3,
        rp=250,
        record_term=record,
        courses=[
            AccountCourse("MA101", "Calculus", Grade.B_PLUS, 4),
            AccountCourse("AR101", "Art", None, 2),
        ],
    )
    term = Term(
        name="Fall 2026",
        level=2,
        xp=40,
        session_starts=[1772442000000],
        courses=[TermCourse("CS101", "Intro", 2)],
    )
    return Progress(account=account, term=term)


def test_init_db_creates_tables(tmp_db):
    init_db(tmp_db)
    conn = get_connection(tmp_db)
    tables = {
        row["name"]
        for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
    }
    conn.close()
    assert "progress" in tables


def test_init_db_is_idempotent(tmp_db):
    init_db(tmp_db)
    SqliteGateway(tmp_db).save(sample_progress())
    init_db(tmp_db)
    assert SqliteGateway(tmp_db).load("u1") is not None


def test_init_db_creates_parent_directory(tmp_path):
    db_path = tmp_path / "nested" / "dir" / "study.db"
    init_db(str(db_path))
    assert db_path.exists()


def test_sqlite_load_missing_user(tmp_db):
    assert SqliteGateway(tmp_db).load("nobody") is None


def test_sqlite_save_and_load(tmp_db):
    gateway = SqliteGateway(tmp_db)
    gateway.save(sample_progress())
    loaded = gateway.load("u1")
    assert loaded == sample_progress()
    assert loaded.account.courses[0].grade is Grade.B_PLUS
    assert loaded.account.record_term.name == "Spring 2026"
    assert loaded.term.courses[0].times_studied == 2


def test_sqlite_save_overwrites(tmp_db):
    gateway = SqliteGateway(tmp_db)
    progress = sample_progress()
    gateway.save(progress)
    progress.term = None
    progress.account.rank = 9
    gateway.save(progress)
    loaded = gateway.load("u1")
    assert loaded.term is None
    assert loaded.account.rank == 9
    assert list_users(tmp_db) == ["u1"]


def test_list_users(tmp_db):
    gateway = SqliteGateway(tmp_db)
    gateway.save(sample_progress("bob"))
    gateway.save(sample_progress("alice"))
    assert list_users(tmp_db) == ["alice", "bob"]


def test_sqlite_save_error_propagates(tmp_db):
    gateway = SqliteGateway(tmp_db)
    with patch("studytimer.db.get_connection", side_effect=sqlite3.OperationalError("locked")):
        with pytest.raises(sqlite3.OperationalError):
            gateway.save(sample_progress())


def test_memory_gateway_copies():
    gateway = MemoryGateway()
    progress = sample_progress()
    gateway.save(progress)
    progress.account.rank = 99
    loaded = gateway.load("u1")
    assert loaded.account.rank == 3
    loaded.account.rank = 50
    assert gateway.load("u1").account.rank == 3
    assert gateway.saves == 1
    assert gateway.load("missing") is None
