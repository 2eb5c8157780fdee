"""AB Database - serialized, transaction-scoped access to one SQLite file.

This module provides the ABDatabase facade that wires the components
together:

    caller -> RetryScheduler -> SerializationQueue (lane)
           -> TransactionCoordinator (token validation)
           -> StatementExecutor -> ConnectionHandle

Usage:
    from ab_database.application import create_database

    with create_database() as db:
        db.execute("CREATE TABLE IF NOT EXISTS notes (id INTEGER, body TEXT)").result()

        token = db.start_transaction().result()
        db.execute("INSERT INTO notes VALUES (1, 'hi')", transaction_id=token).result()
        db.finish_transaction(token, commit=True).result()

        rows = db.select(
            "SELECT id, body FROM notes", [SelectColumnType.LONG, SelectColumnType.STRING]
        ).result()

Every operation returns a Future. Failures are typed ABDatabaseError
instances raised from ``Future.result()``.
"""

from __future__ import annotations

import time
from concurrent.futures import Future
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator, Sequence

from ab_database.adapters.outbound.sqlite_connection import SQLiteConnection
from ab_database.application.executor import StatementExecutor
from ab_database.application.retry import RetryScheduler
from ab_database.application.serial_queue import SerializationQueue
from ab_database.domain.errors import (
    ABDatabaseError,
    CannotOpenDatabaseError,
    TransactionConflictError,
    UnknownColumnTypeError,
)
from ab_database.domain.services.transaction_coordinator import TransactionCoordinator
from ab_database.domain.value_objects import (
    ColumnInfo,
    ColumnTypeTag,
    TransactionToken,
    parse_column_types,
)
from ab_database.infrastructure.config import Config, get_config
from ab_database.infrastructure.logging import get_logger
from ab_database.infrastructure.metrics import MetricsRegistry, get_metrics
from ab_database.infrastructure.tracing import operation_span
from ab_database.ports.inbound.database import Row
from ab_database.ports.outbound.connection import ConnectionHandle

logger = get_logger(__name__)


class ABDatabase:
    """Single-writer facade over one connection handle.

    The connection is injected and owned by this object: it is opened by
    ``open()`` and closed exactly once by ``close()``, both on the lane.

    Thread Safety:
        Every public operation may be called from any thread. Work is
        executed one operation at a time on the serialization lane.
    """

    def __init__(
        self,
        connection: ConnectionHandle,
        metrics: MetricsRegistry | None = None,
        thread_name_prefix: str = "ab-database",
        default_timeout_ms: int = 0,
    ) -> None:
        """Initialize the facade without opening the connection.

        Args:
            connection: The handle this database owns.
            metrics: Metrics registry (process default if None).
            thread_name_prefix: Name prefix for the lane thread.
            default_timeout_ms: Retry budget used when a call passes None.
        """
        self._connection = connection
        self._metrics = metrics or get_metrics()
        self._lane = SerializationQueue(thread_name_prefix)
        self._retry = RetryScheduler(self._lane, self._metrics)
        self._coordinator = TransactionCoordinator(connection)
        self._executor = StatementExecutor(connection)
        self._default_timeout_ms = default_timeout_ms
        self._closed = False

    @property
    def path(self) -> Path:
        """Location of the backing database file."""
        return self._connection.path

    @property
    def is_open(self) -> bool:
        return self._connection.is_open and not self._closed

    @property
    def current_token(self) -> TransactionToken | None:
        """Token of the open transaction, as last set on the lane."""
        return self._coordinator.current_token

    @property
    def next_token(self) -> TransactionToken:
        return self._coordinator.next_token

    @property
    def pending_retries(self) -> int:
        return self._retry.pending_count

    def open(self) -> ABDatabase:
        """Open the connection on the lane.

        Returns:
            self, for chaining.

        Raises:
            CannotOpenDatabaseError: If the engine cannot open the file.
            DatabaseNotOpenedError: If the database was already closed.
        """
        self._ensure_off_lane("open")
        opened = self._lane.submit(self._connection.open).result()
        if not opened:
            raise CannotOpenDatabaseError(f"cannot open database at {self.path}")

        logger.info("database_opened", path=str(self.path))
        return self

    def close(self) -> None:
        """Close the database.

        Pending deferred retries fail with DatabaseNotOpenedError, an open
        transaction is rolled back, the connection is released on the lane
        and the lane is shut down. Idempotent.
        """
        if self._closed:
            return
        self._ensure_off_lane("close")
        self._closed = True

        failed = self._retry.cancel_pending()
        self._lane.submit(self._release_connection).result()
        self._lane.shutdown(wait=True)

        logger.info("database_closed", path=str(self.path), failed_retries=failed)

    def get_table_names(
        self,
        transaction_id: TransactionToken | None = None,
        timeout_ms: int | None = None,
    ) -> Future[list[str]]:
        """List user tables (internal ``sqlite_*`` tables excluded)."""

        def operation() -> list[str]:
            self._coordinator.validate(transaction_id)
            with self._observe("table_names", transaction_id=transaction_id):
                return self._executor.table_names()

        return self._retry.submit(
            "get_table_names", operation, self._timeout(timeout_ms),
            transaction_id=transaction_id,
        )

    def get_table_column_infos(
        self,
        table_name: str,
        transaction_id: TransactionToken | None = None,
        timeout_ms: int | None = None,
    ) -> Future[list[ColumnInfo]]:
        """Describe the columns of one table (empty for an unknown table)."""

        def operation() -> list[ColumnInfo]:
            self._coordinator.validate(transaction_id)
            with self._observe(
                "table_column_infos", transaction_id=transaction_id, table=table_name
            ):
                return self._executor.table_column_infos(table_name)

        return self._retry.submit(
            "get_table_column_infos", operation, self._timeout(timeout_ms),
            table=table_name, transaction_id=transaction_id,
        )

    def start_transaction(self, timeout_ms: int | None = None) -> Future[TransactionToken]:
        """Open a transaction and resolve to its token.

        While another transaction is open this fails with
        OtherTransactionAlreadyInProgressError, unless ``timeout_ms > 0``,
        in which case it is re-attempted once after that delay.
        """

        def operation() -> TransactionToken:
            with operation_span("start_transaction"):
                try:
                    token = self._coordinator.start()
                except TransactionConflictError:
                    raise
                except ABDatabaseError:
                    self._metrics.transactions_total.labels(status="failed").inc()
                    raise
            self._metrics.transactions_total.labels(status="begin").inc()
            self._metrics.transactions_active.set(1)
            logger.debug("transaction_started", token=token)
            return token

        return self._retry.submit("start_transaction", operation, self._timeout(timeout_ms))

    def finish_transaction(
        self,
        transaction_id: TransactionToken,
        commit: bool,
        timeout_ms: int | None = None,
    ) -> Future[None]:
        """Commit (``commit=True``) or roll back the open transaction."""

        def operation() -> None:
            status = "commit" if commit else "rollback"
            with operation_span(status, transaction_id=transaction_id):
                try:
                    self._coordinator.finish(transaction_id, commit)
                except TransactionConflictError:
                    raise
                except ABDatabaseError:
                    self._metrics.transactions_total.labels(status="failed").inc()
                    raise
                finally:
                    self._metrics.transactions_active.set(
                        1 if self._coordinator.in_transaction else 0
                    )
            self._metrics.transactions_total.labels(status=status).inc()
            logger.debug("transaction_finished", token=transaction_id, status=status)

        return self._retry.submit(
            "finish_transaction", operation, self._timeout(timeout_ms),
            transaction_id=transaction_id, commit=commit,
        )

    def check_autocommit(self) -> Future[TransactionToken | None]:
        """Resolve to the open token, or None in autocommit mode.

        Fails with TransactionIdInconsistencyError if the engine and the
        coordinator disagree about whether a transaction is open.
        """
        return self._retry.submit("check_autocommit", self._coordinator.check_autocommit)

    def execute(
        self,
        sql: str,
        transaction_id: TransactionToken | None = None,
        timeout_ms: int | None = None,
    ) -> Future[None]:
        """Run one statement that produces no rows."""

        def operation() -> None:
            self._coordinator.validate(transaction_id)
            with self._observe("execute", transaction_id=transaction_id, sql=sql):
                self._executor.execute(sql)

        return self._retry.submit(
            "execute", operation, self._timeout(timeout_ms),
            sql=sql, transaction_id=transaction_id,
        )

    def select(
        self,
        sql: str,
        column_types: Sequence[ColumnTypeTag],
        transaction_id: TransactionToken | None = None,
        timeout_ms: int | None = None,
    ) -> Future[list[Row]]:
        """Run a query and decode each row with the declared column types.

        Column types may be SelectColumnType members, names or wire
        indexes. An unknown tag fails the future with
        UnknownColumnTypeError without touching the lane.
        """
        try:
            types = parse_column_types(list(column_types))
        except UnknownColumnTypeError as e:
            return _failed(e)

        def operation() -> list[Row]:
            self._coordinator.validate(transaction_id)
            with self._observe("select", transaction_id=transaction_id, sql=sql):
                return self._executor.select(sql, types)

        return self._retry.submit(
            "select", operation, self._timeout(timeout_ms),
            sql=sql, transaction_id=transaction_id,
        )

    def get_stats(self) -> dict[str, Any]:
        """Get database statistics.

        Returns:
            Dictionary with connection, token and retry state.
        """
        txn_stats = self._coordinator.get_stats()
        return {
            "open": self.is_open,
            "path": str(self.path),
            "current_token": self._coordinator.current_token,
            "next_token": self._coordinator.next_token,
            "pending_retries": self._retry.pending_count,
            "transactions": {
                "started": txn_stats.started_total,
                "committed": txn_stats.committed_total,
                "rolled_back": txn_stats.rolled_back_total,
                "failed": txn_stats.failed_total,
            },
        }

    def _timeout(self, timeout_ms: int | None) -> int:
        return self._default_timeout_ms if timeout_ms is None else timeout_ms

    def _ensure_off_lane(self, action: str) -> None:
        # waiting on the lane from inside the lane would never return
        if self._lane.in_lane():
            raise RuntimeError(f"Cannot {action} the database from its own lane")

    def _release_connection(self) -> None:
        token = self._coordinator.current_token
        if token is not None and self._connection.is_open:
            try:
                self._coordinator.finish(token, commit=False)
            except ABDatabaseError as e:
                logger.warning("rollback_on_close_failed", token=token, error=str(e))
            else:
                logger.info("rolled_back_on_close", token=token)
        self._connection.close()
        self._metrics.transactions_active.set(0)

    @contextmanager
    def _observe(self, query_type: str, **attributes: Any) -> Generator[None, None, None]:
        start = time.perf_counter()
        status = "error"
        try:
            with operation_span(query_type, **attributes):
                yield
            status = "success"
        finally:
            self._metrics.queries_total.labels(query_type=query_type, status=status).inc()
            self._metrics.query_latency_seconds.labels(query_type=query_type).observe(
                time.perf_counter() - start
            )

    def __enter__(self) -> ABDatabase:
        """Context manager entry."""
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()


def _failed(error: BaseException) -> Future[Any]:
    future: Future[Any] = Future()
    future.set_exception(error)
    return future


def create_database(
    config: Config | None = None,
    metrics: MetricsRegistry | None = None,
) -> ABDatabase:
    """Build and open the default SQLite-backed database.

    Args:
        config: Configuration (global configuration if None).
        metrics: Metrics registry (process default if None).

    Returns:
        An open ABDatabase.

    Raises:
        StorageUnavailableError: If the storage directory cannot be created.
        CannotOpenDatabaseError: If SQLite cannot open the file.
    """
    config = config or get_config()
    path = config.database_path()

    database = ABDatabase(
        SQLiteConnection(path, busy_timeout_seconds=config.storage.busy_timeout_seconds),
        metrics=metrics,
        thread_name_prefix=config.lane.thread_name_prefix,
        default_timeout_ms=config.lane.default_timeout_ms,
    )
    try:
        return database.open()
    except CannotOpenDatabaseError:
        database.close()
        raise
