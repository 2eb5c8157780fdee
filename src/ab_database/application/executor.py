"""Statement Executor - prepares, steps and finalizes SQL statements.

The executor turns caller SQL into results against the connection
handle. Each call prepares its own statement and finalizes it before
returning, whether preparation, stepping or decoding failed.

Failures map onto the statement error taxonomy:
    prepare fails          -> CannotPrepareError
    step fails / not done  -> CannotExecuteError
    finalize fails         -> CannotFinalizeError (only if nothing failed earlier)
"""

from __future__ import annotations

from typing import Callable, Sequence, TypeVar

from ab_database.domain.errors import (
    CannotExecuteError,
    CannotFinalizeError,
    CannotPrepareError,
)
from ab_database.domain.services.column_decoder import decode_row
from ab_database.domain.value_objects import ColumnInfo, SelectColumnType
from ab_database.infrastructure.logging import get_logger
from ab_database.ports.inbound.database import Row
from ab_database.ports.outbound.connection import (
    ConnectionHandle,
    EngineError,
    PreparedStatement,
    StepResult,
)

T = TypeVar("T")

logger = get_logger(__name__)

TABLE_NAMES_SQL = (
    "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
)

# Diagnostic SQLite reports when a statement yields a row instead of finishing
ANOTHER_ROW_AVAILABLE = "another row available"


def table_info_sql(table_name: str) -> str:
    """Build the PRAGMA that describes a table's columns."""
    quoted = table_name.replace("'", "''")
    return f"PRAGMA TABLE_INFO('{quoted}')"


class StatementExecutor:
    """Runs statements against a connection handle.

    Usage:
        executor = StatementExecutor(connection)
        executor.execute("CREATE TABLE t (a INTEGER)")
        rows = executor.select("SELECT a FROM t", [SelectColumnType.INT])
    """

    def __init__(self, connection: ConnectionHandle) -> None:
        """Initialize the executor.

        Args:
            connection: The handle statements are prepared on.
        """
        self._connection = connection

    def execute(self, sql: str) -> None:
        """Run one statement that must complete without producing rows.

        Raises:
            DatabaseNotOpenedError: If the connection is closed.
            CannotPrepareError: If the SQL cannot be prepared.
            CannotExecuteError: If stepping fails or yields a row.
            CannotFinalizeError: If the statement cannot be released.
        """

        def run(statement: PreparedStatement) -> None:
            result = self._step(statement)
            if result is not StepResult.DONE:
                raise CannotExecuteError(ANOTHER_ROW_AVAILABLE)

        self._with_statement(sql, run)

    def select(
        self, sql: str, column_types: Sequence[SelectColumnType]
    ) -> list[Row]:
        """Run a query and decode every row with the declared column types.

        Only the first ``len(column_types)`` columns of each row are read.

        Raises:
            DatabaseNotOpenedError: If the connection is closed.
            CannotPrepareError: If the SQL cannot be prepared.
            CannotExecuteError: If stepping fails.
            UnknownColumnTypeError: If a column type is not a SelectColumnType.
            CannotFinalizeError: If the statement cannot be released.
        """

        def run(statement: PreparedStatement) -> list[Row]:
            rows = self._read_rows(
                statement, lambda current: decode_row(current, column_types)
            )
            available = statement.column_count()
            if rows and len(column_types) > available:
                # extra declared types decoded as missing cells
                logger.warning(
                    "select_extra_column_types",
                    declared=len(column_types),
                    available=available,
                    sql=sql,
                )
            return rows

        return self._with_statement(sql, run)

    def table_names(self) -> list[str]:
        """List user tables, excluding SQLite's internal ones."""
        return self._collect(TABLE_NAMES_SQL, lambda statement: self._text(statement, 0))

    def table_column_infos(self, table_name: str) -> list[ColumnInfo]:
        """Describe a table's columns (empty for an unknown table)."""

        def read(statement: PreparedStatement) -> ColumnInfo:
            return ColumnInfo(
                name=self._text(statement, 1),
                type=self._text(statement, 2),
                not_null=statement.column_int(3) != 0,
            )

        return self._collect(table_info_sql(table_name), read)

    def _collect(
        self, sql: str, read_row: Callable[[PreparedStatement], T]
    ) -> list[T]:
        return self._with_statement(
            sql, lambda statement: self._read_rows(statement, read_row)
        )

    def _read_rows(
        self, statement: PreparedStatement, read_row: Callable[[PreparedStatement], T]
    ) -> list[T]:
        rows: list[T] = []
        while self._step(statement) is StepResult.ROW:
            rows.append(read_row(statement))
        return rows

    def _with_statement(
        self, sql: str, body: Callable[[PreparedStatement], T]
    ) -> T:
        try:
            statement = self._connection.prepare(sql)
        except EngineError as e:
            raise CannotPrepareError(e.message) from e

        try:
            result = body(statement)
        except BaseException:
            self._finalize_after_error(statement)
            raise

        try:
            statement.finalize()
        except EngineError as e:
            raise CannotFinalizeError(e.message) from e

        return result

    @staticmethod
    def _finalize_after_error(statement: PreparedStatement) -> None:
        try:
            statement.finalize()
        except EngineError as e:
            # the error already propagating is the one the caller sees
            logger.warning("statement_finalize_failed", error=e.message)

    @staticmethod
    def _step(statement: PreparedStatement) -> StepResult:
        try:
            return statement.step()
        except EngineError as e:
            raise CannotExecuteError(e.message) from e

    @staticmethod
    def _text(statement: PreparedStatement, index: int) -> str:
        return statement.column_text(index) or ""
