"""Application layer for the database wrapper.

The application layer drives the connection through the domain
services on a single serialization lane.

Exports:
    Database:
        - ABDatabase: Facade offering the asynchronous operation surface
        - create_database: Build and open the SQLite-backed default
    Lane:
        - SerializationQueue: One-worker lane all operations run on
        - RetryScheduler: Single deferred retry of conflicting operations
    Executor:
        - StatementExecutor: Prepare, step and finalize statements
"""

from ab_database.application.database import ABDatabase, create_database
from ab_database.application.executor import StatementExecutor
from ab_database.application.retry import RetryScheduler
from ab_database.application.serial_queue import SerializationQueue

__all__ = [
    "ABDatabase",
    "create_database",
    "StatementExecutor",
    "RetryScheduler",
    "SerializationQueue",
]
