"""Outbound ports - interfaces for external dependencies.

Outbound ports define contracts for the systems the wrapper depends on,
which here is the one embedded database engine handle.
"""

from ab_database.ports.outbound.connection import (
    ConnectionHandle,
    EngineError,
    PreparedStatement,
    StepResult,
)

__all__ = [
    "ConnectionHandle",
    "EngineError",
    "PreparedStatement",
    "StepResult",
]
