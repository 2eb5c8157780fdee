"""Infrastructure layer - cross-cutting concerns."""

from ab_database.infrastructure.config import (
    Config,
    StorageUnavailableError,
    get_config,
)
from ab_database.infrastructure.logging import setup_logging, get_logger
from ab_database.infrastructure.metrics import setup_metrics, get_metrics, MetricsRegistry
from ab_database.infrastructure.tracing import (
    setup_tracing,
    get_tracer,
    trace_span,
    operation_span,
)

__all__ = [
    "Config",
    "StorageUnavailableError",
    "get_config",
    "setup_logging",
    "get_logger",
    "setup_metrics",
    "get_metrics",
    "MetricsRegistry",
    "setup_tracing",
    "get_tracer",
    "trace_span",
    "operation_span",
]
