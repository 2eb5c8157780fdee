"""Ports layer - interface definitions following Hexagonal Architecture.

Ports are abstract interfaces (protocols) that define contracts:
- Inbound ports: APIs offered to clients (Database)
- Outbound ports: Dependencies on external systems (ConnectionHandle)

Adapters implement these ports with concrete functionality.
"""

from ab_database.ports.inbound import Database, Row
from ab_database.ports.outbound import (
    ConnectionHandle,
    EngineError,
    PreparedStatement,
    StepResult,
)

__all__ = [
    # Inbound ports
    "Database",
    "Row",
    # Outbound ports
    "ConnectionHandle",
    "EngineError",
    "PreparedStatement",
    "StepResult",
]
