"""Inbound ports - API contracts for the database wrapper.

Inbound ports define the interfaces that clients and upper layers
use to interact with the serialized connection.
"""

from ab_database.ports.inbound.database import Database, Row

__all__ = [
    "Database",
    "Row",
]
