"""Database port - the operation surface offered to callers.

This inbound port defines the contract the action dispatch layer and
any other client use. Every operation is asynchronous: it is queued on
the serialization lane and returns a ``Future`` that resolves to the
result or to a typed ``ABDatabaseError``.

Token-gated operations take ``transaction_id``: pass the token returned
by ``start_transaction`` while a transaction is open, and None
otherwise. ``timeout_ms > 0`` lets a conflicting call be re-attempted
once after that many milliseconds instead of failing immediately;
``timeout_ms=None`` uses the implementation's default budget.
"""

from __future__ import annotations

from abc import abstractmethod
from concurrent.futures import Future
from typing import Any, Protocol, Sequence

from ab_database.domain.value_objects import (
    ColumnInfo,
    ColumnTypeTag,
    TransactionToken,
)

Row = list[Any]
"""One decoded result row. None is the null marker."""


class Database(Protocol):
    """Protocol for serialized, transaction-scoped database access."""

    @abstractmethod
    def get_table_names(
        self,
        transaction_id: TransactionToken | None = None,
        timeout_ms: int | None = None,
    ) -> Future[list[str]]:
        """List user tables (internal ``sqlite_*`` tables excluded)."""
        ...

    @abstractmethod
    def get_table_column_infos(
        self,
        table_name: str,
        transaction_id: TransactionToken | None = None,
        timeout_ms: int | None = None,
    ) -> Future[list[ColumnInfo]]:
        """Describe the columns of one table."""
        ...

    @abstractmethod
    def start_transaction(self, timeout_ms: int | None = None) -> Future[TransactionToken]:
        """Open a transaction and resolve to its token."""
        ...

    @abstractmethod
    def finish_transaction(
        self,
        transaction_id: TransactionToken,
        commit: bool,
        timeout_ms: int | None = None,
    ) -> Future[None]:
        """Commit (``commit=True``) or roll back the open transaction."""
        ...

    @abstractmethod
    def check_autocommit(self) -> Future[TransactionToken | None]:
        """Resolve to the open token (None in autocommit mode).

        Fails with ``TransactionIdInconsistencyError`` if the engine and
        the wrapper disagree about whether a transaction is open.
        """
        ...

    @abstractmethod
    def execute(
        self,
        sql: str,
        transaction_id: TransactionToken | None = None,
        timeout_ms: int | None = None,
    ) -> Future[None]:
        """Run one statement that produces no rows."""
        ...

    @abstractmethod
    def select(
        self,
        sql: str,
        column_types: Sequence[ColumnTypeTag],
        transaction_id: TransactionToken | None = None,
        timeout_ms: int | None = None,
    ) -> Future[list[Row]]:
        """Run a query and decode each row with the declared column types."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Shut the lane down and release the connection."""
        ...
