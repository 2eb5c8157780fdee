"""Adapters layer - concrete implementations of port interfaces.

Adapters provide the actual implementations:
- Inbound adapters: Turn named actions and HTTP requests into operations
- Outbound adapters: Implement the connection handle over SQLite
"""

from ab_database.adapters.outbound import (
    SQLiteConnection,
    SQLiteStatement,
)

__all__ = [
    # Outbound adapters
    "SQLiteConnection",
    "SQLiteStatement",
]
