"""Core identifiers and small value objects for the database wrapper.

Transaction tokens use NewType so that a token is never confused with an
ordinary integer (row counts, column indexes) at type-check time.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NewType


TransactionToken = NewType("TransactionToken", int)
"""Identifier of one open transaction. Strictly increasing, never reused."""

FIRST_TRANSACTION_TOKEN = TransactionToken(0)


@dataclass(frozen=True, slots=True)
class ColumnInfo:
    """One column of a table, as reported by ``PRAGMA TABLE_INFO``.

    Attributes:
        name: Column name
        type: Declared type text (may be empty; SQLite allows untyped columns)
        not_null: Whether the column carries a NOT NULL constraint

    Example:
        >>> ColumnInfo("id", "INTEGER", True).to_dict()
        {'name': 'id', 'type': 'INTEGER', 'notNull': True}
    """

    name: str
    type: str
    not_null: bool

    def to_dict(self) -> dict[str, Any]:
        """Encode for the JSON-facing action layer."""
        return {"name": self.name, "type": self.type, "notNull": self.not_null}
