"""Pytest configuration and fixtures for ab_database tests."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Generator

import pytest
from prometheus_client import CollectorRegistry

from ab_database.adapters.outbound import SQLiteConnection
from ab_database.application import ABDatabase, create_database
from ab_database.infrastructure.config import Config, LaneConfig, StorageConfig
from ab_database.infrastructure.metrics import MetricsRegistry


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_config(temp_dir: Path) -> Config:
    """Provide a test configuration storing the database in a temp directory."""
    return Config(
        storage=StorageConfig(
            data_dir=temp_dir / "data",
            file_name="test.sqlite",
            busy_timeout_seconds=0.5,
        ),
        lane=LaneConfig(
            thread_name_prefix="ab-database-test",
            default_timeout_ms=0,
        ),
    )


@pytest.fixture
def metrics_registry() -> MetricsRegistry:
    """Provide a fresh metrics registry for each test."""
    # Use a separate registry to avoid conflicts between tests
    registry = CollectorRegistry(auto_describe=True)
    return MetricsRegistry(registry=registry)


@pytest.fixture
def connection(temp_dir: Path) -> Generator[SQLiteConnection, None, None]:
    """Provide an open SQLite connection handle."""
    conn = SQLiteConnection(temp_dir / "handle.sqlite")
    assert conn.open()
    yield conn
    conn.close()


@pytest.fixture
def database(
    test_config: Config, metrics_registry: MetricsRegistry
) -> Generator[ABDatabase, None, None]:
    """Provide an open database backed by a temp file."""
    db = create_database(test_config, metrics=metrics_registry)
    yield db
    db.close()


# Markers for test categories
def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "property: Property-style table tests")
    config.addinivalue_line("markers", "slow: Slow tests")
