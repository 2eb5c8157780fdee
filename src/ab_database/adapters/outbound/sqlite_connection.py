"""SQLite implementation of the Connection Handle port.

This adapter wraps one ``sqlite3.Connection`` opened in autocommit mode
(``isolation_level=None``) so that the wrapper, not the ``sqlite3``
module, decides when BEGIN, COMMIT and ROLLBACK are issued.

Prepare / step mapping:
    ``sqlite3`` compiles and runs the first step of a statement in a
    single ``Cursor.execute`` call. The primary result code tells the two
    apart: compile-time failures carry SQLITE_ERROR (syntax errors,
    unknown tables or columns) or come from the module itself
    (``ProgrammingError``, e.g. more than one statement) and are reported
    from ``prepare``. Everything else (SQLITE_BUSY, SQLITE_READONLY,
    SQLITE_CONSTRAINT, I/O errors, ...) is held back and reported by the
    first ``step`` so it surfaces as an execution failure.

Column accessors follow SQLite's own coercion rules: text is read up to
its numeric prefix, floats truncate toward zero, 32-bit reads keep the
low 32 bits of the stored integer.

Thread Safety:
    None. The owning lane serializes every call.
"""

from __future__ import annotations

import logging
import re
import sqlite3
from pathlib import Path
from typing import Any

from ab_database.domain.errors import DatabaseNotOpenedError
from ab_database.ports.outbound.connection import EngineError, StepResult


logger = logging.getLogger(__name__)

_INT_PREFIX = re.compile(r"\s*[+-]?\d+")
_FLOAT_PREFIX = re.compile(r"\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1

# sqlite3_prepare_v2 hands back no statement for blank input
_EMPTY_STATEMENT_MESSAGE = "Cannot get query statement."

_SQLITE_ERROR = 1


def _as_text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="ignore")
    return str(value)


def _to_int64(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value != value:  # NaN
            return 0
        if value >= _INT64_MAX:
            return _INT64_MAX
        if value <= _INT64_MIN:
            return _INT64_MIN
        return int(value)
    match = _INT_PREFIX.match(_as_text(value))
    if match is None:
        return 0
    return max(_INT64_MIN, min(_INT64_MAX, int(match.group())))


def _to_int32(value: Any) -> int:
    wide = _to_int64(value)
    return ((wide + 2**31) % 2**32) - 2**31


def _to_double(value: Any) -> float:
    if value is None:
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    match = _FLOAT_PREFIX.match(_as_text(value))
    if match is None:
        return 0.0
    return float(match.group())


def _is_compile_error(error: sqlite3.Error) -> bool:
    if isinstance(error, sqlite3.ProgrammingError):
        return True
    code = getattr(error, "sqlite_errorcode", None)
    # no result code means the module rejected the call before reaching SQLite
    if code is None:
        return True
    return code & 0xFF == _SQLITE_ERROR


class SQLiteStatement:
    """A ``sqlite3`` cursor adapted to the PreparedStatement protocol."""

    def __init__(
        self,
        cursor: sqlite3.Cursor,
        pending_error: sqlite3.Error | None = None,
    ) -> None:
        self._cursor = cursor
        self._pending_error = pending_error
        self._row: tuple[Any, ...] | None = None
        self._finalized = False

    def step(self) -> StepResult:
        if self._finalized:
            raise EngineError("statement already finalized")

        if self._pending_error is not None:
            error, self._pending_error = self._pending_error, None
            raise EngineError(str(error)) from error

        try:
            row = self._cursor.fetchone()
        except sqlite3.Error as e:
            self._row = None
            raise EngineError(str(e)) from e

        self._row = row
        return StepResult.DONE if row is None else StepResult.ROW

    def column_count(self) -> int:
        return len(self._cursor.description or ())

    def _value(self, index: int) -> Any:
        if self._row is None or index < 0 or index >= len(self._row):
            return None
        return self._row[index]

    def column_is_null(self, index: int) -> bool:
        return self._value(index) is None

    def column_int(self, index: int) -> int:
        return _to_int32(self._value(index))

    def column_int64(self, index: int) -> int:
        return _to_int64(self._value(index))

    def column_double(self, index: int) -> float:
        return _to_double(self._value(index))

    def column_text(self, index: int) -> str | None:
        value = self._value(index)
        if value is None:
            return None
        if isinstance(value, bytes):
            try:
                return value.decode("utf-8")
            except UnicodeDecodeError:
                return None
        return str(value)

    def finalize(self) -> None:
        if self._finalized:
            return
        self._finalized = True
        self._row = None
        try:
            self._cursor.close()
        except sqlite3.Error as e:
            raise EngineError(str(e)) from e


class SQLiteConnection:
    """File-backed implementation of the ConnectionHandle protocol.

    Attributes:
        path: Location of the SQLite database file.
    """

    def __init__(self, path: str | Path, busy_timeout_seconds: float = 5.0) -> None:
        """Initialize the handle without opening it.

        Args:
            path: Database file path (":memory:" for a private in-memory database).
            busy_timeout_seconds: How long SQLite waits on a locked file.
        """
        self._path = Path(path)
        self._busy_timeout_seconds = busy_timeout_seconds
        self._conn: sqlite3.Connection | None = None

    @property
    def path(self) -> Path:
        return self._path

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def open(self) -> bool:
        if self._conn is not None:
            return True

        try:
            conn = sqlite3.connect(
                str(self._path),
                timeout=self._busy_timeout_seconds,
                isolation_level=None,
                check_same_thread=False,
            )
        except sqlite3.Error as e:
            logger.error("Cannot open database %s: %s", self._path, e)
            return False

        self._conn = conn
        logger.debug("Opened database %s", self._path)
        return True

    def close(self) -> None:
        if self._conn is None:
            return

        conn, self._conn = self._conn, None
        conn.close()
        logger.debug("Closed database %s", self._path)

    def prepare(self, sql: str) -> SQLiteStatement:
        conn = self._require_open()

        if not sql.strip():
            raise EngineError(_EMPTY_STATEMENT_MESSAGE)

        cursor = conn.cursor()
        try:
            cursor.execute(sql)
        except sqlite3.Warning as e:
            cursor.close()
            raise EngineError(str(e)) from e
        except sqlite3.Error as e:
            if not _is_compile_error(e):
                return SQLiteStatement(cursor, pending_error=e)
            cursor.close()
            raise EngineError(str(e)) from e

        return SQLiteStatement(cursor)

    def execute_immediate(self, sql: str) -> None:
        conn = self._require_open()

        try:
            conn.execute(sql).close()
        except sqlite3.Error as e:
            raise EngineError(str(e)) from e

    def is_autocommit(self) -> bool:
        return not self._require_open().in_transaction

    def _require_open(self) -> sqlite3.Connection:
        if self._conn is None:
            raise DatabaseNotOpenedError()
        return self._conn
