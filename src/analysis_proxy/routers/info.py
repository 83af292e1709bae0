"""
Service information endpoint.

Exposes service configuration with secrets redacted.
"""

from __future__ import annotations

from fastapi import APIRouter, Request

from analysis_proxy.config import get_safe_config
from analysis_proxy.core.state import get_app_state
from analysis_proxy.schemas import InfoResponse, LimitsInfo, UpstreamInfo

router = APIRouter()


@router.get("/info", response_model=InfoResponse)
async def get_info(request: Request) -> InfoResponse:
    """
    Get service information and configuration.

    Returns:
        Service metadata, forwarding target, limits and redacted config
    """
    state = get_app_state(request)
    settings = state.settings

    return InfoResponse(
        service=settings.service.name,
        version=settings.service.version,
        environment=settings.service.environment,
        uptime=state.uptime_formatted,
        upstream=UpstreamInfo(
            url=f"{settings.upstream.base_url}{settings.upstream.analyze_path}",
            timeout_seconds=settings.upstream.timeout_seconds,
        ),
        limits=LimitsInfo(
            analyze_rate_limit=settings.rate_limit.limit_string,
            max_upload_bytes=settings.uploads.max_file_bytes,
        ),
        config=get_safe_config(settings),
    )
