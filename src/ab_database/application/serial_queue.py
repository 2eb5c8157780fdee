"""Serialization Queue - the single lane every operation runs on.

All work against the connection handle is submitted here and executed
by one worker thread, in submission order. At most one operation
touches the connection at any moment, and each operation's effects are
complete before the next one starts.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, TypeVar

from ab_database.domain.errors import DatabaseNotOpenedError

T = TypeVar("T")


class SerializationQueue:
    """A one-worker executor acting as the mutual-exclusion lane.

    Usage:
        lane = SerializationQueue()
        future = lane.submit(connection.open)
        assert future.result()
        lane.shutdown()

    Thread Safety:
        ``submit`` may be called from any thread. Submitted callables run
        one at a time on the lane thread.
    """

    def __init__(self, thread_name_prefix: str = "ab-database") -> None:
        """Initialize the lane.

        Args:
            thread_name_prefix: Name prefix for the worker thread.
        """
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix=thread_name_prefix
        )
        self._lock = threading.Lock()
        self._closed = False
        self._lane_thread: threading.Thread | None = None

    @property
    def is_closed(self) -> bool:
        return self._closed

    def submit(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> Future[T]:
        """Queue a callable on the lane.

        Returns:
            A future resolving to the callable's result or exception.

        Raises:
            DatabaseNotOpenedError: If the lane has been shut down.
        """
        with self._lock:
            if self._closed:
                raise DatabaseNotOpenedError("database lane is shut down")
            return self._executor.submit(self._run, fn, args, kwargs)

    def in_lane(self) -> bool:
        """Return True when called from the lane thread itself."""
        return threading.current_thread() is self._lane_thread

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work; optionally wait for queued work to drain."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._executor.shutdown(wait=wait)

    def _run(self, fn: Callable[..., T], args: tuple, kwargs: dict) -> T:
        self._lane_thread = threading.current_thread()
        return fn(*args, **kwargs)
