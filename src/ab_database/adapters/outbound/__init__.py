"""Outbound adapters - implementations of outbound ports.

These adapters implement external dependencies, here the SQLite
connection behind the ConnectionHandle port.
"""

from ab_database.adapters.outbound.sqlite_connection import (
    SQLiteConnection,
    SQLiteStatement,
)

__all__ = [
    "SQLiteConnection",
    "SQLiteStatement",
]
