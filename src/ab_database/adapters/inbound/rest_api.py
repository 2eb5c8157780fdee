"""REST API adapter for the database wrapper.

This module exposes the action dispatch table over HTTP with FastAPI.

Endpoints:
    POST /actions/{action} - Run one action; the body is its JSON argument object
    GET /health - Health check
    GET /stats - Database statistics

Status codes:
    200 - The action ran. ``success`` is false for database errors, with
          ``error`` holding the error code.
    400 - Malformed arguments or an unknown column type
    404 - Unknown action
    503 - Database not open

Usage:
    from ab_database.adapters.inbound.rest_api import create_app
    from ab_database.application import create_database

    db = create_database()
    app = create_app(db)
    # Run with uvicorn: uvicorn app:app --host 127.0.0.1 --port 8000
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from ab_database import __version__
from ab_database.adapters.inbound.dispatch import ActionDispatcher
from ab_database.domain.errors import (
    ABDatabaseError,
    InvalidArgumentError,
    UnknownActionError,
)
from ab_database.infrastructure.logging import get_logger

if TYPE_CHECKING:
    from ab_database.application import ABDatabase

logger = get_logger(__name__)


class ActionResponse(BaseModel):
    """Response model for an action."""

    success: bool = Field(..., description="Whether the action succeeded")
    result: Any = Field(None, description="JSON-encoded action result")
    error: str | None = Field(None, description="Error code when the action failed")
    message: str = Field("", description="Error message when the action failed")


class StatsResponse(BaseModel):
    """Response model for database statistics."""

    open: bool = Field(..., description="Whether the database is open")
    path: str = Field(..., description="Database file path")
    current_token: int | None = Field(None, description="Token of the open transaction")
    next_token: int = Field(..., description="Token the next transaction will receive")
    pending_retries: int = Field(0, description="Deferred retries waiting on their timer")
    transactions: dict[str, int] = Field(default_factory=dict, description="Transaction stats")


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str = Field(..., description="Health status")
    version: str = Field(..., description="API version")


def create_app(db: ABDatabase) -> FastAPI:
    """Create a FastAPI application for the database.

    Args:
        db: An open database.

    Returns:
        A configured FastAPI application.
    """
    dispatcher = ActionDispatcher(db)

    app = FastAPI(
        title="AB Database API",
        description="Serialized, transaction-scoped access to a SQLite database",
        version=__version__,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(
            status="healthy" if db.is_open else "unhealthy",
            version=__version__,
        )

    @app.get("/stats", response_model=StatsResponse, tags=["Stats"])
    async def get_stats() -> StatsResponse:
        """Get database statistics."""
        if not db.is_open:
            raise HTTPException(status_code=503, detail="Database not open")
        return StatsResponse(**db.get_stats())

    @app.get("/actions", tags=["Actions"])
    async def list_actions() -> list[str]:
        """List supported action names."""
        return dispatcher.actions

    @app.post("/actions/{action}", response_model=ActionResponse, tags=["Actions"])
    async def run_action(action: str, request: Request) -> ActionResponse:
        """Run one action.

        Args:
            action: Action name, e.g. ``querySelect``.
            request: The request; its body is validated against the action's
                argument model.

        Returns:
            The action outcome.
        """
        if not db.is_open:
            raise HTTPException(status_code=503, detail="Database not open")

        body = await request.body()
        try:
            result = await asyncio.wrap_future(dispatcher.dispatch(action, body))
        except UnknownActionError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except InvalidArgumentError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except ABDatabaseError as e:
            return ActionResponse(success=False, error=e.code, message=str(e))

        return ActionResponse(success=True, result=result)

    return app


def run_server(
    db: ABDatabase,
    host: str = "127.0.0.1",
    port: int = 8000,
) -> None:
    """Run the REST API server.

    Args:
        db: The database.
        host: Host to bind to.
        port: Port to bind to.
    """
    import uvicorn

    app = create_app(db)
    uvicorn.run(app, host=host, port=port)


def main() -> None:
    """Serve the configured database until interrupted."""
    from ab_database.application import create_database
    from ab_database.infrastructure import (
        get_config,
        setup_logging,
        setup_metrics,
        setup_tracing,
    )

    config = get_config()
    setup_logging(config.observability.log_level, config.observability.log_format)
    setup_tracing(
        config.observability.otel_service_name,
        otlp_endpoint=config.observability.otel_endpoint,
    )
    metrics = setup_metrics(config.server.metrics_port)

    with create_database(config, metrics=metrics) as db:
        logger.info("server_starting", path=str(db.path), port=config.server.port)
        run_server(db, host=config.server.host, port=config.server.port)


if __name__ == "__main__":
    main()
