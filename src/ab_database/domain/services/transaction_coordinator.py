"""Transaction Coordinator for token-scoped transactions.

This module owns the notion of "the current transaction" for the single
connection the wrapper holds:
- At most one transaction is open at a time
- Each transaction is identified by a token issued from a counter that
  only moves forward (rolled-back tokens are never reused)
- Every data-accessing operation presents a token that is validated
  against the open transaction before the connection is touched

Token validation truth table:

    open transaction | supplied token | result
    -----------------+----------------+--------
    none             | none           | valid (plain autocommit operation)
    none             | any            | WrongTransactionIdError
    T                | none           | WrongTransactionIdError
    T                | other than T   | WrongTransactionIdError
    T                | T              | valid

Invariant:
    ``current_token is not None`` if and only if the engine is outside
    autocommit mode. ``check_autocommit`` reports a violation instead of
    repairing it.

Thread Safety:
    None. The coordinator is driven from the serialization lane only.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ab_database.domain.errors import (
    CannotBeginTransactionError,
    CannotCommitError,
    CannotRollbackError,
    NoTransactionInProgressError,
    OtherTransactionAlreadyInProgressError,
    TransactionIdInconsistencyError,
    WrongTransactionIdError,
)
from ab_database.domain.value_objects import FIRST_TRANSACTION_TOKEN, TransactionToken
from ab_database.ports.outbound.connection import ConnectionHandle, EngineError


logger = logging.getLogger(__name__)


def token_matches(
    current: TransactionToken | None, supplied: TransactionToken | None
) -> bool:
    """Return True if ``supplied`` may operate given the open transaction."""
    if current is None:
        return supplied is None
    return supplied is not None and supplied == current


@dataclass
class TransactionStats:
    """Statistics for transaction monitoring."""

    started_total: int = 0
    committed_total: int = 0
    rolled_back_total: int = 0
    failed_total: int = 0


class TransactionCoordinator:
    """Issues transaction tokens and brackets them with BEGIN/COMMIT/ROLLBACK.

    Usage:
        coordinator = TransactionCoordinator(connection)
        token = coordinator.start()
        coordinator.validate(token)
        coordinator.finish(token, commit=True)
    """

    def __init__(self, connection: ConnectionHandle) -> None:
        """Initialize the coordinator.

        Args:
            connection: The connection transactions are issued against.
        """
        self._connection = connection
        self._current_token: TransactionToken | None = None
        self._next_token: TransactionToken = FIRST_TRANSACTION_TOKEN
        self._stats = TransactionStats()

    @property
    def current_token(self) -> TransactionToken | None:
        """Token of the open transaction, or None in autocommit mode."""
        return self._current_token

    @property
    def next_token(self) -> TransactionToken:
        """Token the next successful ``start`` will issue."""
        return self._next_token

    @property
    def in_transaction(self) -> bool:
        return self._current_token is not None

    def is_valid(self, supplied: TransactionToken | None) -> bool:
        """Check a caller-supplied token without raising."""
        return token_matches(self._current_token, supplied)

    def validate(self, supplied: TransactionToken | None) -> None:
        """Validate a caller-supplied token against the open transaction.

        Raises:
            WrongTransactionIdError: If the token does not match.
        """
        if not self.is_valid(supplied):
            raise WrongTransactionIdError(self._current_token, supplied)

    def start(self) -> TransactionToken:
        """Open a transaction and return its token.

        Raises:
            OtherTransactionAlreadyInProgressError: If a transaction is open.
            CannotBeginTransactionError: If the engine rejects BEGIN.
        """
        if self._current_token is not None:
            raise OtherTransactionAlreadyInProgressError(self._current_token)

        try:
            self._connection.execute_immediate("BEGIN TRANSACTION")
        except EngineError as e:
            self._stats.failed_total += 1
            raise CannotBeginTransactionError(e.message) from e

        token = self._next_token
        self._current_token = token
        self._next_token = TransactionToken(token + 1)
        self._stats.started_total += 1

        logger.debug("Transaction %d started", token)
        return token

    def finish(self, token: TransactionToken, commit: bool) -> None:
        """Commit or roll back the open transaction.

        On an engine failure the token is cleared only if the engine has
        already left the transaction (SQLite may roll back on its own);
        otherwise it stays so the caller can retry ``finish``.

        Args:
            token: Token of the open transaction.
            commit: True to COMMIT, False to ROLLBACK.

        Raises:
            NoTransactionInProgressError: If no transaction is open.
            WrongTransactionIdError: If the token does not match.
            CannotCommitError: If the engine rejects COMMIT.
            CannotRollbackError: If the engine rejects ROLLBACK.
        """
        if self._current_token is None:
            raise NoTransactionInProgressError()

        self.validate(token)

        if commit:
            statement, error_class = "COMMIT", CannotCommitError
        else:
            statement, error_class = "ROLLBACK", CannotRollbackError

        try:
            self._connection.execute_immediate(statement)
        except EngineError as e:
            self._stats.failed_total += 1
            self._release_if_engine_left()
            raise error_class(e.message) from e

        self._current_token = None
        if commit:
            self._stats.committed_total += 1
        else:
            self._stats.rolled_back_total += 1

        logger.debug(
            "Transaction %d %s", token, "committed" if commit else "rolled back"
        )

    def check_autocommit(self) -> TransactionToken | None:
        """Return the open token after checking it against the engine.

        Raises:
            TransactionIdInconsistencyError: If the engine's autocommit flag
                contradicts the token state.
        """
        engine_autocommit = self._connection.is_autocommit()
        if engine_autocommit == (self._current_token is not None):
            raise TransactionIdInconsistencyError(self._current_token, engine_autocommit)
        return self._current_token

    def get_stats(self) -> TransactionStats:
        """Return a copy of the transaction statistics."""
        return TransactionStats(
            started_total=self._stats.started_total,
            committed_total=self._stats.committed_total,
            rolled_back_total=self._stats.rolled_back_total,
            failed_total=self._stats.failed_total,
        )

    def _release_if_engine_left(self) -> None:
        if self._connection.is_autocommit():
            logger.warning(
                "Engine left transaction %s after a failed finish; releasing token",
                self._current_token,
            )
            self._current_token = None
