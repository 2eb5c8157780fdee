"""Prometheus metrics for the database wrapper."""

from __future__ import annotations

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    Info,
    start_http_server,
    REGISTRY,
    CollectorRegistry,
)


class MetricsRegistry:
    """Registry of all database wrapper metrics."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        """Initialize metrics registry."""
        self._registry = registry or REGISTRY

        # Transaction metrics
        self.transactions_total = Counter(
            "ab_database_transactions_total",
            "Total number of transaction lifecycle events",
            ["status"],  # begin, commit, rollback, failed
            registry=self._registry,
        )

        self.transactions_active = Gauge(
            "ab_database_transactions_active",
            "Whether a transaction token is currently outstanding",
            registry=self._registry,
        )

        # Query metrics
        self.query_latency_seconds = Histogram(
            "ab_database_query_latency_seconds",
            "Time an operation spends inside the serialization lane",
            ["query_type"],  # execute, select, table_names, table_column_infos
            buckets=(0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 5.0),
            registry=self._registry,
        )

        self.queries_total = Counter(
            "ab_database_queries_total",
            "Total number of statements run against the connection",
            ["query_type", "status"],  # status: success, error
            registry=self._registry,
        )

        # Conflict / retry metrics
        self.conflicts_total = Counter(
            "ab_database_conflicts_total",
            "Operations rejected because of a transaction token conflict",
            ["operation"],
            registry=self._registry,
        )

        self.retries_total = Counter(
            "ab_database_retries_total",
            "Operations deferred for a single retry",
            ["operation"],
            registry=self._registry,
        )

        self.retries_pending = Gauge(
            "ab_database_retries_pending",
            "Deferred operations waiting on their timer",
            registry=self._registry,
        )

        # Server info
        self.info = Info(
            "ab_database",
            "Database wrapper information",
            registry=self._registry,
        )

    @property
    def registry(self) -> CollectorRegistry:
        """The collector registry the metrics are registered with."""
        return self._registry


# Global metrics registry
_metrics: MetricsRegistry | None = None


def setup_metrics(port: int = 8001, registry: CollectorRegistry | None = None) -> MetricsRegistry:
    """
    Set up Prometheus metrics server.

    Args:
        port: Port for the metrics HTTP server
        registry: Optional custom registry

    Returns:
        The metrics registry
    """
    global _metrics
    _metrics = MetricsRegistry(registry)

    from ab_database import __version__
    _metrics.info.info({
        "version": __version__,
    })

    start_http_server(port, registry=registry or REGISTRY)

    return _metrics


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsRegistry()
    return _metrics
