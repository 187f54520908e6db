from __future__ import annotations

from pathlib import Path

import mysql.connector
import pytest

from src.clinic_attendance.clinic_attendance.common.retry import store_retry
from src.clinic_attendance.clinic_attendance.core.exceptions import TransientStoreError
from src.clinic_attendance.clinic_attendance.database.bootstrap import (
    _iter_sql_statements,
    _strip_create_db_and_use,
    ensure_demo_clinic,
)
from src.clinic_attendance.clinic_attendance.database.connection import DatabaseConnection
from src.clinic_attendance.clinic_attendance.database.mysql_base import db_cursor, load_json
from src.clinic_attendance.clinic_attendance.directory.mysql_directory_repository import MySQLDirectoryRepository

SCHEMA = Path(__file__).resolve().parents[1] / "database" / "schema.sql"


class FakeCursor:
    def __init__(self, row=None, error=None):
        self.row = row
        self.error = error
        self.executed = []
        self.closed = False

    def execute(self, sql, params=None):
        if self.error is not None:
            raise self.error
        self.executed.append((sql, params))

    def fetchone(self):
        return self.row

    def fetchall(self):
        return [self.row] if self.row else []

    def close(self):
        self.closed = True


class FakeConnection:
    def __init__(self, cursor: FakeCursor):
        self._cursor = cursor
        self.committed = False
        self.rolled_back = False
        self.closed = False

    def cursor(self, dictionary=True):
        return self._cursor

    def commit(self):
        self.committed = True

    def rollback(self):
        self.rolled_back = True

    def close(self):
        self.closed = True


class FakeConnFactory:
    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.connections = []

    def connect(self):
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        self.connections.append(outcome)
        return outcome


def test_db_cursor_commits_and_closes():
    conn = FakeConnection(FakeCursor())
    with db_cursor(FakeConnFactory(conn)) as (_, cur):
        cur.execute("SELECT 1")

    assert conn.committed and conn.closed and cur.closed


def test_connection_errors_become_transient():
    conn = FakeConnection(FakeCursor(error=mysql.connector.errors.OperationalError("gone away")))

    with pytest.raises(TransientStoreError):
        with db_cursor(FakeConnFactory(conn)) as (_, cur):
            cur.execute("SELECT 1")

    assert conn.rolled_back and conn.closed and not conn.committed


def test_integrity_errors_are_not_transient():
    conn = FakeConnection(FakeCursor(error=mysql.connector.errors.IntegrityError("duplicate")))

    with pytest.raises(mysql.connector.errors.IntegrityError):
        with db_cursor(FakeConnFactory(conn)) as (_, cur):
            cur.execute("INSERT ...")

    assert conn.rolled_back


def test_store_retry_retries_then_reraises():
    calls = []

    @store_retry(3, initial=0, max_wait=0)
    def flaky():
        calls.append(1)
        raise TransientStoreError("down")

    with pytest.raises(TransientStoreError):
        flaky()
    assert len(calls) == 3


def test_store_retry_ignores_domain_errors():
    calls = []

    @store_retry(3, initial=0, max_wait=0)
    def broken():
        calls.append(1)
        raise ValueError("bad")

    with pytest.raises(ValueError):
        broken()
    assert len(calls) == 1


def test_repository_read_recovers_from_dropped_connection():
    row = {
        "professional_id": "D1",
        "clinic_id": "CL1",
        "full_name": "Dra. Paula",
        "password_hash": "x",
        "signature_data": None,
        "is_active": 1,
    }
    factory = FakeConnFactory(
        mysql.connector.errors.InterfaceError("connection refused"),
        FakeConnection(FakeCursor(row=row)),
    )

    professional = MySQLDirectoryRepository(factory).get_professional("D1")

    assert professional.clinic_id == "CL1"
    assert professional.is_active


def test_schema_splits_into_table_statements():
    statements = list(_iter_sql_statements(_strip_create_db_and_use(SCHEMA.read_text(encoding="utf-8"))))

    assert not any(s.upper().startswith(("CREATE DATABASE", "USE ")) for s in statements)
    tables = [s for s in statements if s.upper().startswith("CREATE TABLE")]
    assert len(tables) == 7


def test_load_json_variants():
    assert load_json(None, default=[]) == []
    assert load_json('["toxina"]') == ["toxina"]
    assert load_json(b'{"a": 1}') == {"a": 1}
    assert load_json(["x"]) == ["x"]


def test_bootstrap_failure_rolls_back_and_closes(monkeypatch):
    cur = FakeCursor(error=mysql.connector.errors.IntegrityError("bad seed"))
    conn = FakeConnection(cur)
    monkeypatch.setattr(DatabaseConnection, "connect", lambda self, *, with_database=True: conn)

    with pytest.raises(mysql.connector.errors.IntegrityError):
        ensure_demo_clinic({"database": "clinic_attendance_test"})

    assert conn.rolled_back and conn.closed and cur.closed
    assert not conn.committed


def test_bootstrap_commits_and_closes(monkeypatch):
    cur = FakeCursor()
    conn = FakeConnection(cur)
    monkeypatch.setattr(DatabaseConnection, "connect", lambda self, *, with_database=True: conn)

    ensure_demo_clinic({"database": "clinic_attendance_test"})

    assert conn.committed and conn.closed and cur.closed
    assert [sql.split()[2] for sql, _ in cur.executed] == ["clinics", "professionals", "patients", "consent_templates"]
