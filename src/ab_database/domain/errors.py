"""Error taxonomy for the database wrapper.

Every failure an operation can report is an ``ABDatabaseError`` subclass
with a stable ``code`` used by the action and REST layers. Errors are
raised inside the serialization lane and delivered to callers through
the operation's future.

Hierarchy::

    ABDatabaseError
    ├── CannotOpenDatabaseError
    ├── DatabaseNotOpenedError
    ├── StatementError
    │   ├── CannotPrepareError
    │   ├── CannotExecuteError
    │   └── CannotFinalizeError
    ├── TransactionError
    │   ├── CannotBeginTransactionError
    │   ├── CannotCommitError
    │   ├── CannotRollbackError
    │   ├── NoTransactionInProgressError
    │   ├── TransactionIdInconsistencyError
    │   └── TransactionConflictError        (retry-eligible)
    │       ├── OtherTransactionAlreadyInProgressError
    │       └── WrongTransactionIdError
    └── InvalidArgumentError
        ├── UnknownColumnTypeError
        ├── MalformedArgumentError
        └── UnknownActionError
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ab_database.domain.value_objects.identifiers import TransactionToken


class ABDatabaseError(Exception):
    """Base class for all database wrapper errors."""

    code = "database_error"


class CannotOpenDatabaseError(ABDatabaseError):
    """Raised when the backing database file cannot be opened."""

    code = "cannot_open_database"

    def __init__(self, message: str = "cannot open database") -> None:
        super().__init__(message)


class DatabaseNotOpenedError(ABDatabaseError):
    """Raised when an operation needs the connection but it is closed."""

    code = "database_not_opened"

    def __init__(self, message: str = "database not opened") -> None:
        super().__init__(message)


class StatementError(ABDatabaseError):
    """A prepared-statement lifecycle failure carrying engine diagnostics."""

    code = "statement_error"
    label = "statement error"

    def __init__(self, message: str) -> None:
        super().__init__(f"{self.label}: {message}")
        self.message = message


class CannotPrepareError(StatementError):
    code = "cannot_prepare"
    label = "cannot prepare"


class CannotExecuteError(StatementError):
    code = "cannot_execute"
    label = "cannot execute"


class CannotFinalizeError(StatementError):
    code = "cannot_finalize"
    label = "cannot finalize"


class TransactionError(ABDatabaseError):
    """Base class for transaction lifecycle and token policy failures."""

    code = "transaction_error"


class _EngineTransactionError(TransactionError):
    label = "transaction error"

    def __init__(self, message: str | None = None) -> None:
        text = self.label if not message else f"{self.label}: {message}"
        super().__init__(text)
        self.message = message


class CannotBeginTransactionError(_EngineTransactionError):
    code = "cannot_begin_transaction"
    label = "cannot begin transaction"


class CannotCommitError(_EngineTransactionError):
    code = "cannot_commit"
    label = "cannot commit"


class CannotRollbackError(_EngineTransactionError):
    code = "cannot_rollback"
    label = "cannot rollback"


class NoTransactionInProgressError(TransactionError):
    """Raised when finishing while no transaction is open."""

    code = "no_transaction_in_progress"

    def __init__(self) -> None:
        super().__init__("no transaction in progress")


class TransactionIdInconsistencyError(TransactionError):
    """The wrapper's token state contradicts the engine's autocommit flag.

    Never expected in normal operation; it flags a programming or
    concurrency bug and is reported rather than corrected.
    """

    code = "transaction_id_inconsistency"

    def __init__(
        self, current_token: TransactionToken | None, engine_autocommit: bool
    ) -> None:
        super().__init__(
            f"transaction id inconsistency(current={current_token}, "
            f"engine_autocommit={engine_autocommit})"
        )
        self.current_token = current_token
        self.engine_autocommit = engine_autocommit


class TransactionConflictError(TransactionError):
    """An operation collided with the transaction state.

    Only this family is eligible for the single deferred retry.
    """

    code = "transaction_conflict"


class OtherTransactionAlreadyInProgressError(TransactionConflictError):
    code = "other_transaction_already_in_progress"

    def __init__(self, current_token: TransactionToken) -> None:
        super().__init__(f"other transaction already in progress({current_token})")
        self.current_token = current_token


class WrongTransactionIdError(TransactionConflictError):
    code = "wrong_transaction_id"

    def __init__(
        self,
        current_token: TransactionToken | None,
        supplied_token: TransactionToken | None,
    ) -> None:
        super().__init__(
            f"wrong transaction id(current={current_token}, supplied={supplied_token})"
        )
        self.current_token = current_token
        self.supplied_token = supplied_token


class InvalidArgumentError(ABDatabaseError):
    """Caller input rejected at the action boundary."""

    code = "invalid_argument"


class UnknownColumnTypeError(InvalidArgumentError):
    code = "unknown_column_type"

    def __init__(self, tag: Any) -> None:
        super().__init__(f"unknown column type: {tag!r}")
        self.tag = tag


class MalformedArgumentError(InvalidArgumentError):
    code = "malformed_argument"


class UnknownActionError(InvalidArgumentError):
    code = "unknown_action"

    def __init__(self, action: str) -> None:
        super().__init__(f"unknown action: {action}")
        self.action = action
