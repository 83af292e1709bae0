"""
Pydantic response models for the analysis proxy API.

The /analyze success body is the upstream's raw bytes and has no model.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Response model for GET /health endpoint."""

    status: Literal["ok"]
    """Always "ok" while the process is serving requests."""

    timestamp: str
    """Current server time, ISO-8601 in UTC."""

    service: str
    """Service name."""

    version: str
    """Service version."""

    uptime_seconds: float
    """Seconds since application startup."""


class ConnectivityResponse(BaseModel):
    """Response model for GET /test endpoint."""

    message: str
    status: Literal["ok"]


class UpstreamInfo(BaseModel):
    """Upstream forwarding target for /info endpoint."""

    url: str
    timeout_seconds: float


class LimitsInfo(BaseModel):
    """Request limits for /info endpoint."""

    analyze_rate_limit: str
    max_upload_bytes: int


class InfoResponse(BaseModel):
    """Response model for GET /info endpoint."""

    service: str
    """Service name."""

    version: str
    """Service version."""

    environment: str
    """Deployment environment (development or production)."""

    uptime: str
    """Human-readable uptime."""

    upstream: UpstreamInfo
    """Where /analyze forwards to."""

    limits: LimitsInfo
    """Rate and size limits."""

    config: dict[str, Any]
    """Full configuration with sensitive values redacted."""


class ErrorResponse(BaseModel):
    """Standard error response model."""

    error: str
    """Machine-readable error code."""

    message: str
    """Human-readable error description."""

    details: dict[str, Any]
    """Additional error context."""
