"""Retry Scheduler - single deferred re-attempt of conflicting operations.

When an operation fails with a TransactionConflictError (a transaction
is already open, or the supplied token does not match) and the caller
gave a positive ``timeout_ms``, the operation is not failed. Instead a
timer fires after ``timeout_ms`` milliseconds and re-submits the same
operation to the lane with a zero budget, so it is re-validated against
whatever transaction is open at that moment and fails for good if it
still conflicts. There is never a second retry.

The timer runs outside the lane: the lane keeps serving other work
while the deferred operation waits, and the caller is never blocked.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future
from typing import Any, Callable, TypeVar

from ab_database.application.serial_queue import SerializationQueue
from ab_database.domain.errors import (
    DatabaseNotOpenedError,
    TransactionConflictError,
)
from ab_database.infrastructure.logging import get_logger
from ab_database.infrastructure.metrics import MetricsRegistry

T = TypeVar("T")

logger = get_logger(__name__)


class RetryScheduler:
    """Runs operations on the lane with an optional single deferred retry.

    Usage:
        scheduler = RetryScheduler(lane, metrics)
        future = scheduler.submit("start_transaction", coordinator.start, timeout_ms=500)
    """

    def __init__(self, lane: SerializationQueue, metrics: MetricsRegistry) -> None:
        """Initialize the scheduler.

        Args:
            lane: The lane operations run on.
            metrics: Registry for conflict and retry counters.
        """
        self._lane = lane
        self._metrics = metrics
        self._lock = threading.Lock()
        self._pending: dict[object, tuple[threading.Timer, Future[Any]]] = {}
        self._closed = False

    @property
    def pending_count(self) -> int:
        """Number of deferred operations waiting on their timer."""
        with self._lock:
            return len(self._pending)

    def submit(
        self,
        name: str,
        operation: Callable[[], T],
        timeout_ms: int = 0,
        **log_context: Any,
    ) -> Future[T]:
        """Queue an operation on the lane.

        Args:
            name: Operation name for logs and metrics.
            operation: Zero-argument callable run on the lane.
            timeout_ms: Delay before the single retry; <= 0 disables it.
            **log_context: Extra fields logged if the operation conflicts.

        Returns:
            A future resolving to the operation's final outcome.
        """
        outer: Future[T] = Future()
        try:
            self._lane.submit(self._attempt, name, operation, timeout_ms, outer, True, log_context)
        except DatabaseNotOpenedError as e:
            outer.set_exception(e)
        return outer

    def cancel_pending(self) -> int:
        """Stop all waiting timers and fail their operations.

        Returns:
            The number of deferred operations that were failed.
        """
        with self._lock:
            self._closed = True
            pending = list(self._pending.values())
            self._pending.clear()
            self._metrics.retries_pending.set(0)

        for timer, outer in pending:
            timer.cancel()
            if not outer.done():
                outer.set_exception(DatabaseNotOpenedError())
        return len(pending)

    def _attempt(
        self,
        name: str,
        operation: Callable[[], T],
        timeout_ms: int,
        outer: Future[T],
        first: bool,
        log_context: dict[str, Any],
    ) -> None:
        # once running on the lane the operation can no longer be cancelled
        if first and not outer.set_running_or_notify_cancel():
            return

        try:
            result = operation()
        except TransactionConflictError as e:
            self._metrics.conflicts_total.labels(operation=name).inc()
            if timeout_ms > 0 and self._defer(name, operation, timeout_ms, outer, log_context):
                return
            logger.warning(
                "operation_conflict", operation=name, error=str(e), **log_context
            )
            outer.set_exception(e)
        except Exception as e:
            outer.set_exception(e)
        else:
            outer.set_result(result)

    def _defer(
        self,
        name: str,
        operation: Callable[[], T],
        timeout_ms: int,
        outer: Future[T],
        log_context: dict[str, Any],
    ) -> bool:
        key = object()
        timer = threading.Timer(
            timeout_ms / 1000.0,
            self._fire,
            args=(key, name, operation, outer, log_context),
        )
        timer.daemon = True

        with self._lock:
            if self._closed:
                return False
            self._pending[key] = (timer, outer)
            self._metrics.retries_pending.set(len(self._pending))

        self._metrics.retries_total.labels(operation=name).inc()
        logger.debug(
            "operation_deferred", operation=name, timeout_ms=timeout_ms, **log_context
        )
        timer.start()
        return True

    def _fire(
        self,
        key: object,
        name: str,
        operation: Callable[[], T],
        outer: Future[T],
        log_context: dict[str, Any],
    ) -> None:
        with self._lock:
            if self._pending.pop(key, None) is None:
                return
            self._metrics.retries_pending.set(len(self._pending))

        try:
            self._lane.submit(self._attempt, name, operation, 0, outer, False, log_context)
        except DatabaseNotOpenedError as e:
            outer.set_exception(e)
