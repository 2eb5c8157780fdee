"""Unit tests for logging, metrics and tracing setup."""

from __future__ import annotations

import io
import json
import logging
from typing import Generator

import pytest
import structlog
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from ab_database.application import ABDatabase
from ab_database.infrastructure import tracing
from ab_database.infrastructure.logging import get_logger, setup_logging
from ab_database.infrastructure.metrics import MetricsRegistry
from ab_database.infrastructure.tracing import operation_span, trace_span


@pytest.fixture
def restore_logging() -> Generator[None, None, None]:
    """Undo global logging configuration after a test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    structlog.reset_defaults()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.mark.unit
@pytest.mark.usefixtures("restore_logging")
class TestLogging:
    """Tests for structlog setup."""

    def test_json_output(self) -> None:
        stream = io.StringIO()
        setup_logging("INFO", "json", stream=stream)

        get_logger("test", component="lane").info("operation_conflict", sql="SELECT 1")

        event = json.loads(stream.getvalue().strip().splitlines()[-1])
        assert event["event"] == "operation_conflict"
        assert event["sql"] == "SELECT 1"
        assert event["component"] == "lane"
        assert event["level"] == "info"
        assert "timestamp" in event

    def test_level_filtering(self) -> None:
        stream = io.StringIO()
        setup_logging("WARNING", "json", stream=stream)

        logger = get_logger("test")
        logger.info("hidden")
        logger.warning("shown")

        output = stream.getvalue()
        assert "hidden" not in output
        assert "shown" in output

    def test_console_output(self) -> None:
        stream = io.StringIO()
        setup_logging("DEBUG", "console", stream=stream)

        get_logger("test").debug("database_opened", path="/tmp/x.sqlite")

        assert "database_opened" in stream.getvalue()

    def test_stdlib_loggers_share_stream(self) -> None:
        stream = io.StringIO()
        setup_logging("INFO", "json", stream=stream)

        logging.getLogger("ab_database.adapters").info("Opened database %s", "x.sqlite")

        assert "Opened database x.sqlite" in stream.getvalue()


@pytest.mark.unit
class TestMetricsRegistry:
    """Tests for the injectable metrics registry."""

    def test_counters_are_isolated_per_registry(
        self, metrics_registry: MetricsRegistry
    ) -> None:
        metrics_registry.conflicts_total.labels(operation="execute").inc()
        metrics_registry.retries_pending.set(2)

        registry = metrics_registry.registry
        assert registry.get_sample_value(
            "ab_database_conflicts_total", {"operation": "execute"}
        ) == 1.0
        assert registry.get_sample_value("ab_database_retries_pending") == 2.0


@pytest.mark.unit
class TestTracing:
    """Tests for trace_span."""

    def test_span_skips_none_attributes(self) -> None:
        with trace_span("ab_database.test", {"token": None, "sql": "SELECT 1"}) as span:
            assert span is not None

    def test_span_propagates_errors(self) -> None:
        with pytest.raises(ValueError):
            with trace_span("ab_database.test"):
                raise ValueError("boom")


@pytest.fixture
def span_exporter(monkeypatch: pytest.MonkeyPatch) -> InMemorySpanExporter:
    """Route spans to an in-memory exporter."""
    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    monkeypatch.setattr(tracing, "_tracer", provider.get_tracer("ab_database.test"))
    return exporter


@pytest.mark.unit
class TestOperationSpan:
    """Tests for lane operation spans."""

    def test_query_span_attributes(self, span_exporter: InMemorySpanExporter) -> None:
        with operation_span("select", transaction_id=3, sql="SELECT a FROM t"):
            pass

        (span,) = span_exporter.get_finished_spans()
        assert span.name == "ab_database.select"
        assert span.attributes["db.system"] == "sqlite"
        assert span.attributes["db.statement"] == "SELECT a FROM t"
        assert span.attributes["ab_database.transaction_id"] == 3

    def test_autocommit_span_has_no_token(
        self, span_exporter: InMemorySpanExporter
    ) -> None:
        with operation_span("table_column_infos", table="notes"):
            pass

        (span,) = span_exporter.get_finished_spans()
        assert span.attributes["ab_database.table"] == "notes"
        assert "ab_database.transaction_id" not in span.attributes
        assert "db.statement" not in span.attributes

    def test_database_operations_emit_spans(
        self, span_exporter: InMemorySpanExporter, database: ABDatabase
    ) -> None:
        database.execute("CREATE TABLE t (a INT)").result(timeout=5)
        token = database.start_transaction().result(timeout=5)
        database.finish_transaction(token, commit=False).result(timeout=5)

        names = [span.name for span in span_exporter.get_finished_spans()]
        assert names == [
            "ab_database.execute",
            "ab_database.start_transaction",
            "ab_database.rollback",
        ]
