"""
Application lifecycle management.

Handles startup (client initialization) and shutdown (cleanup) events
for proper resource management.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from analysis_proxy.clients import UpstreamClient
from analysis_proxy.logging import LOGGER_NAME, get_logger, setup_logging

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from fastapi import FastAPI

    from analysis_proxy.config import Settings


def create_upstream_client(settings: Settings) -> UpstreamClient:
    """Build the upstream client from validated settings."""
    upstream = settings.upstream
    return UpstreamClient(
        base_url=upstream.base_url,
        analyze_path=upstream.analyze_path,
        token=upstream.token,
        timeout=upstream.timeout_seconds,
        connect_timeout=upstream.connect_timeout_seconds,
        max_request_bytes=upstream.max_request_bytes,
        max_response_bytes=upstream.max_response_bytes,
        expose_error_details=settings.is_development,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Manage application lifecycle.

    Startup:
    - Initialize logging
    - Create the upstream HTTP client
    - Log startup information

    Shutdown:
    - Log shutdown with uptime
    - Close the HTTP client
    """
    # === STARTUP ===
    state = app.state.runtime
    settings = state.settings

    setup_logging(settings.server.log_level, LOGGER_NAME)
    logger = get_logger()

    logger.info(
        "Service starting",
        extra={
            "service": settings.service.name,
            "version": settings.service.version,
            "environment": settings.service.environment,
            "host": settings.server.host,
            "port": settings.server.port,
        },
    )

    state.upstream_client = create_upstream_client(settings)

    logger.info(
        "Upstream client initialized",
        extra={
            "upstream_url": state.upstream_client.analyze_url,
            "timeout": settings.upstream.timeout_seconds,
            "rate_limit": settings.rate_limit.limit_string,
            "cors_origins": settings.server.cors_origins,
        },
    )

    logger.info("Service ready to accept requests")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info(
        "Service shutting down",
        extra={
            "uptime_seconds": state.uptime_seconds,
            "uptime": state.uptime_formatted,
        },
    )

    await state.upstream_client.close()
    state.upstream_client = None

    logger.info("Service shutdown complete")
