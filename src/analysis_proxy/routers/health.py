"""
Health check and connectivity test endpoints.

Neither endpoint contacts the upstream service.
"""

from __future__ import annotations

from datetime import UTC, datetime

from fastapi import APIRouter, Request

from analysis_proxy.core.state import get_app_state
from analysis_proxy.schemas import ConnectivityResponse, HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """
    Report that the proxy process is up.

    Returns:
        Fixed "ok" status with server time and uptime
    """
    state = get_app_state(request)
    settings = state.settings

    return HealthResponse(
        status="ok",
        timestamp=datetime.now(UTC).isoformat(),
        service=settings.service.name,
        version=settings.service.version,
        uptime_seconds=round(state.uptime_seconds, 3),
    )


@router.get("/test", response_model=ConnectivityResponse)
async def connectivity_test() -> ConnectivityResponse:
    """Fixed confirmation payload for browser-side connectivity checks."""
    return ConnectivityResponse(message="Proxy is working", status="ok")
