"""Unit tests for the SQLite connection handle."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from ab_database.adapters.outbound import SQLiteConnection
from ab_database.domain.errors import DatabaseNotOpenedError
from ab_database.ports.outbound.connection import EngineError, StepResult


@pytest.mark.unit
class TestSQLiteConnectionLifecycle:
    """Open/close behavior."""

    def test_open_creates_file(self, temp_dir: Path) -> None:
        path = temp_dir / "new.sqlite"
        conn = SQLiteConnection(path)

        assert not conn.is_open
        assert conn.open()
        assert conn.is_open

        conn.execute_immediate("CREATE TABLE t (a INTEGER)")
        conn.close()

        assert path.exists()
        assert not conn.is_open

    def test_open_is_idempotent(self, connection: SQLiteConnection) -> None:
        assert connection.open()
        assert connection.is_open

    def test_open_failure_returns_false(self, temp_dir: Path) -> None:
        """A path inside a missing directory cannot be opened."""
        conn = SQLiteConnection(temp_dir / "missing" / "db.sqlite")

        assert conn.open() is False
        assert not conn.is_open

    def test_close_is_idempotent(self, connection: SQLiteConnection) -> None:
        connection.close()
        connection.close()

        assert not connection.is_open

    def test_use_after_close(self, connection: SQLiteConnection) -> None:
        connection.close()

        with pytest.raises(DatabaseNotOpenedError):
            connection.prepare("SELECT 1")
        with pytest.raises(DatabaseNotOpenedError):
            connection.execute_immediate("BEGIN TRANSACTION")
        with pytest.raises(DatabaseNotOpenedError):
            connection.is_autocommit()


@pytest.mark.unit
class TestSQLiteConnectionStatements:
    """prepare/step/finalize mapping."""

    def test_step_rows_then_done(self, connection: SQLiteConnection) -> None:
        connection.execute_immediate("CREATE TABLE t (a INTEGER)")
        connection.execute_immediate("INSERT INTO t VALUES (1), (2)")

        statement = connection.prepare("SELECT a FROM t ORDER BY a")

        assert statement.column_count() == 1
        assert statement.step() is StepResult.ROW
        assert statement.column_int64(0) == 1
        assert statement.step() is StepResult.ROW
        assert statement.column_int64(0) == 2
        assert statement.step() is StepResult.DONE
        statement.finalize()

    def test_write_statement_is_done(self, connection: SQLiteConnection) -> None:
        statement = connection.prepare("CREATE TABLE t (a INTEGER)")

        assert statement.step() is StepResult.DONE
        statement.finalize()

    def test_blank_sql_cannot_be_prepared(self, connection: SQLiteConnection) -> None:
        with pytest.raises(EngineError, match="Cannot get query statement."):
            connection.prepare("   ")

    def test_syntax_error_fails_prepare(self, connection: SQLiteConnection) -> None:
        with pytest.raises(EngineError, match="syntax error"):
            connection.prepare("SELEC 1")

    def test_unknown_table_fails_prepare(self, connection: SQLiteConnection) -> None:
        with pytest.raises(EngineError, match="no such table"):
            connection.prepare("SELECT * FROM missing")

    def test_constraint_violation_fails_step(self, connection: SQLiteConnection) -> None:
        """Run-time failures surface from the first step, not from prepare."""
        connection.execute_immediate("CREATE TABLE t (a INTEGER NOT NULL)")

        statement = connection.prepare("INSERT INTO t VALUES (NULL)")

        with pytest.raises(EngineError, match="NOT NULL"):
            statement.step()
        statement.finalize()

    def test_finalize_is_idempotent(self, connection: SQLiteConnection) -> None:
        statement = connection.prepare("SELECT 1")

        statement.finalize()
        statement.finalize()

        with pytest.raises(EngineError):
            statement.step()

    def test_undecodable_text_reads_as_none(self, connection: SQLiteConnection) -> None:
        statement = connection.prepare("SELECT X'FF'")

        assert statement.step() is StepResult.ROW
        assert statement.column_text(0) is None
        assert not statement.column_is_null(0)
        statement.finalize()


@pytest.mark.unit
class TestSQLiteConnectionAutocommit:
    """Autocommit flag tracks BEGIN/COMMIT/ROLLBACK."""

    def test_autocommit_flag(self, connection: SQLiteConnection) -> None:
        assert connection.is_autocommit()

        connection.execute_immediate("BEGIN TRANSACTION")
        assert not connection.is_autocommit()

        connection.execute_immediate("ROLLBACK")
        assert connection.is_autocommit()

    def test_commit_without_transaction_fails(self, connection: SQLiteConnection) -> None:
        with pytest.raises(EngineError, match="no transaction is active"):
            connection.execute_immediate("COMMIT")


@pytest.mark.unit
class TestSQLiteConnectionRuntimeFailures:
    """Failures SQLite reports while running a compiled statement."""

    def test_locked_database_fails_step(self, temp_dir: Path) -> None:
        path = temp_dir / "locked.sqlite"
        conn = SQLiteConnection(path, busy_timeout_seconds=0.05)
        assert conn.open()
        conn.execute_immediate("CREATE TABLE t (a INTEGER)")

        other = sqlite3.connect(str(path), isolation_level=None)
        try:
            other.execute("BEGIN EXCLUSIVE")

            statement = conn.prepare("INSERT INTO t VALUES (1)")

            with pytest.raises(EngineError, match="locked"):
                statement.step()
            statement.finalize()
        finally:
            other.execute("ROLLBACK")
            other.close()
            conn.close()

    def test_query_only_database_fails_step(self, connection: SQLiteConnection) -> None:
        connection.execute_immediate("CREATE TABLE t (a INTEGER)")
        connection.execute_immediate("PRAGMA query_only = ON")

        statement = connection.prepare("INSERT INTO t VALUES (1)")

        with pytest.raises(EngineError, match="readonly"):
            statement.step()
        statement.finalize()

    def test_multiple_statements_are_rejected_by_prepare(
        self, connection: SQLiteConnection
    ) -> None:
        """Only single statements are accepted; nothing runs otherwise."""
        with pytest.raises(EngineError, match="one statement"):
            connection.prepare("CREATE TABLE a (x INT); CREATE TABLE b (y INT)")

        statement = connection.prepare(
            "SELECT count(*) FROM sqlite_master WHERE type = 'table'"
        )
        assert statement.step() is StepResult.ROW
        assert statement.column_int(0) == 0
        statement.finalize()
