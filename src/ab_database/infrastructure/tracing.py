"""OpenTelemetry tracing for lane operations.

Every operation the lane runs gets one span named
``ab_database.<operation>`` (``ab_database.select``,
``ab_database.commit``, ...). Spans carry the OpenTelemetry database
attributes ``db.system`` and, for caller SQL, ``db.statement``, plus
``ab_database.transaction_id`` when the call was scoped to a token.
A retried operation produces one span per attempt.

Without ``setup_tracing`` the global no-op provider is used, so spans
cost nothing in tests and embedded use.
"""

from __future__ import annotations

from contextlib import AbstractContextManager, contextmanager
from typing import Any, Generator

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter


_tracer: trace.Tracer | None = None


def setup_tracing(
    service_name: str = "ab_database",
    otlp_endpoint: str | None = None,
    console_export: bool = False,
) -> trace.Tracer:
    """
    Set up OpenTelemetry tracing.

    Args:
        service_name: Name of the service for tracing
        otlp_endpoint: OTLP collector endpoint (e.g., "http://localhost:4317")
        console_export: Whether to also export to console (for debugging)

    Returns:
        Configured tracer instance
    """
    global _tracer

    from ab_database import __version__

    resource = Resource.create(
        {
            "service.name": service_name,
            "service.version": __version__,
        }
    )

    provider = TracerProvider(resource=resource)

    if otlp_endpoint:
        otlp_exporter = OTLPSpanExporter(endpoint=otlp_endpoint, insecure=True)
        provider.add_span_processor(BatchSpanProcessor(otlp_exporter))

    if console_export:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)

    _tracer = trace.get_tracer(service_name)

    return _tracer


def get_tracer() -> trace.Tracer:
    """Get the global tracer instance."""
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer("ab_database")
    return _tracer


@contextmanager
def trace_span(
    name: str,
    attributes: dict[str, Any] | None = None,
) -> Generator[trace.Span, None, None]:
    """
    Context manager for creating a trace span.

    Attributes whose value is None are dropped; span attributes cannot
    hold nulls.

    Args:
        name: Name of the span
        attributes: Optional attributes to add to the span

    Yields:
        The created span
    """
    tracer = get_tracer()
    with tracer.start_as_current_span(name) as span:
        if attributes:
            for key, value in attributes.items():
                if value is not None:
                    span.set_attribute(key, value)
        yield span


def operation_span(
    operation: str,
    transaction_id: int | None = None,
    sql: str | None = None,
    **attributes: Any,
) -> AbstractContextManager[trace.Span]:
    """Open the span for one lane operation.

    Args:
        operation: Operation name, e.g. ``"select"`` or ``"rollback"``.
        transaction_id: Token the call was scoped to, if any.
        sql: Caller SQL, recorded as ``db.statement``.
        **attributes: Extra ``ab_database.*`` attributes.
    """
    span_attributes: dict[str, Any] = {
        "db.system": "sqlite",
        "db.statement": sql,
        "ab_database.transaction_id": transaction_id,
    }
    for key, value in attributes.items():
        span_attributes[f"ab_database.{key}"] = value
    return trace_span(f"ab_database.{operation}", span_attributes)
