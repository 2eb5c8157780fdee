"""Connection Handle port for the embedded database engine.

This outbound port defines the contract for the single native database
handle the wrapper owns, and for the transient prepared statements it
hands out.

The connection handle is responsible for:
- Opening and closing the backing file exactly once
- Preparing SQL text into a steppable statement
- Running transaction-control statements (BEGIN, COMMIT, ROLLBACK)
- Reporting the engine's own autocommit flag

It has no concurrency logic of its own; callers serialize access.
"""

from __future__ import annotations

from abc import abstractmethod
from enum import Enum, auto
from pathlib import Path
from typing import Protocol


class StepResult(Enum):
    """Outcome of advancing a prepared statement by one step."""

    ROW = auto()
    """A result row is available through the column accessors."""

    DONE = auto()
    """The statement ran to completion."""


class EngineError(Exception):
    """Raised by connection adapters when the engine reports a failure.

    Carries the engine's diagnostic text so the wrapper can surface it
    verbatim inside its own typed errors.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class PreparedStatement(Protocol):
    """Protocol for one prepared statement.

    A statement is created per call and must be finalized before the call
    returns, on success and error paths alike.

    Column accessors read the row produced by the last ``step()`` that
    returned ``StepResult.ROW``. Indexes past the end of the row read as
    null, matching the engine's behaviour for out-of-range columns.
    """

    @abstractmethod
    def step(self) -> StepResult:
        """Advance to the next row or to completion.

        Raises:
            EngineError: If the engine fails while stepping.
        """
        ...

    @abstractmethod
    def column_count(self) -> int:
        """Return the number of result columns."""
        ...

    @abstractmethod
    def column_is_null(self, index: int) -> bool:
        """Return True if the cell holds SQL NULL."""
        ...

    @abstractmethod
    def column_int(self, index: int) -> int:
        """Read the cell as a 32-bit signed integer."""
        ...

    @abstractmethod
    def column_int64(self, index: int) -> int:
        """Read the cell as a 64-bit signed integer."""
        ...

    @abstractmethod
    def column_double(self, index: int) -> float:
        """Read the cell as a 64-bit float."""
        ...

    @abstractmethod
    def column_text(self, index: int) -> str | None:
        """Read the cell as UTF-8 text.

        Returns:
            The text, or None when the cell is null or not valid UTF-8.
        """
        ...

    @abstractmethod
    def finalize(self) -> None:
        """Release the statement.

        Raises:
            EngineError: If the engine reports a failure while releasing.
        """
        ...


class ConnectionHandle(Protocol):
    """Protocol for the single native database handle.

    Thread Safety:
        None. All calls must come from the serialization lane.
    """

    @property
    @abstractmethod
    def path(self) -> Path:
        """Return the location of the backing file."""
        ...

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """Return True while the native handle is held."""
        ...

    @abstractmethod
    def open(self) -> bool:
        """Create or open the backing file.

        Returns:
            True on success. On failure the handle stays closed.
        """
        ...

    @abstractmethod
    def close(self) -> None:
        """Release the native handle. Idempotent."""
        ...

    @abstractmethod
    def prepare(self, sql: str) -> PreparedStatement:
        """Prepare SQL text into a statement.

        Raises:
            DatabaseNotOpenedError: If the handle is closed.
            EngineError: If the engine cannot prepare the text.
        """
        ...

    @abstractmethod
    def execute_immediate(self, sql: str) -> None:
        """Run a statement that produces no rows (BEGIN, COMMIT, ROLLBACK).

        Raises:
            DatabaseNotOpenedError: If the handle is closed.
            EngineError: If the engine rejects the statement.
        """
        ...

    @abstractmethod
    def is_autocommit(self) -> bool:
        """Return the engine's autocommit flag (True when no transaction is open).

        Raises:
            DatabaseNotOpenedError: If the handle is closed.
        """
        ...
