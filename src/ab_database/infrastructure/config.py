"""Configuration management for the database wrapper."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from platformdirs import user_data_dir
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageUnavailableError(RuntimeError):
    """Raised when the storage directory cannot be resolved or created.

    This is the only fatal startup condition: without a storage path
    there is nothing to open.
    """


class StorageConfig(BaseModel):
    """Storage configuration."""

    app_name: str = Field(default="ab-database", min_length=1, description="Application name")
    data_dir: Path | None = Field(
        default=None,
        description="Directory holding the database file (per-user data dir if unset)",
    )
    file_name: str = Field(
        default="ab-database.sqlite", min_length=1, description="Database file name"
    )
    busy_timeout_seconds: float = Field(
        default=5.0, ge=0.0, description="How long SQLite waits on a locked file"
    )

    def resolve_data_dir(self) -> Path:
        """Return the configured data directory or the per-user default."""
        if self.data_dir is not None:
            return self.data_dir
        return Path(user_data_dir(self.app_name, appauthor=False))


class LaneConfig(BaseModel):
    """Serialization lane configuration."""

    thread_name_prefix: str = Field(
        default="ab-database", min_length=1, description="Worker thread name prefix"
    )
    default_timeout_ms: int = Field(
        default=0, ge=0, description="Retry budget used when a caller supplies none"
    )


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, ge=1, le=65535, description="REST API port")
    metrics_port: int = Field(default=8001, ge=1, le=65535, description="Prometheus metrics port")


class ObservabilityConfig(BaseModel):
    """Observability configuration."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Log level"
    )
    log_format: Literal["json", "console"] = Field(default="json", description="Log format")
    otel_endpoint: str | None = Field(
        default=None, description="OpenTelemetry collector endpoint"
    )
    otel_service_name: str = Field(default="ab_database", description="Service name for tracing")


class Config(BaseSettings):
    """Main configuration for the database wrapper."""

    model_config = SettingsConfigDict(
        env_prefix="AB_DATABASE_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    storage: StorageConfig = Field(default_factory=StorageConfig)
    lane: LaneConfig = Field(default_factory=LaneConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    def ensure_directories(self) -> None:
        """Ensure the data directory exists.

        Raises:
            StorageUnavailableError: If the directory cannot be created.
        """
        data_dir = self.storage.resolve_data_dir()
        try:
            data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageUnavailableError(
                f"Cannot create storage directory {data_dir}: {e}"
            ) from e

    def database_path(self) -> Path:
        """Resolve the database file path, creating its directory if needed."""
        self.ensure_directories()
        return self.storage.resolve_data_dir() / self.storage.file_name


@lru_cache
def get_config() -> Config:
    """Get the global configuration instance."""
    return Config()
