"""
Application state management.

Tracks runtime state like uptime, and stores the upstream HTTP client.
One AppState belongs to one FastAPI application instance.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fastapi import FastAPI
    from starlette.requests import Request

    from analysis_proxy.clients import UpstreamClient
    from analysis_proxy.config import Settings


@dataclass
class AppState:
    """
    Runtime application state.

    Attributes:
        settings: Validated configuration the app was built with
        start_time: When the application started (UTC)
        _upstream_client: HTTP client for the inference service (internal)
    """

    settings: Settings
    start_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    _upstream_client: UpstreamClient | None = field(default=None, repr=False)

    @property
    def upstream_client(self) -> UpstreamClient:
        """Get the upstream client. Raises RuntimeError if not initialized."""
        if self._upstream_client is None:
            raise RuntimeError("Upstream client not initialized")
        return self._upstream_client

    @upstream_client.setter
    def upstream_client(self, value: UpstreamClient | None) -> None:
        """Set the upstream client."""
        self._upstream_client = value

    @property
    def uptime_seconds(self) -> float:
        """Calculate uptime in seconds."""
        now = datetime.now(UTC)
        delta = now - self.start_time
        return delta.total_seconds()

    @property
    def uptime_formatted(self) -> str:
        """
        Format uptime as human-readable string.

        Returns:
            String like "2d 3h 15m 42s" or "15m 42s"
        """
        seconds = int(self.uptime_seconds)
        days, remainder = divmod(seconds, 86400)
        hours, remainder = divmod(remainder, 3600)
        minutes, secs = divmod(remainder, 60)

        parts = []
        if days > 0:
            parts.append(f"{days}d")
        if hours > 0:
            parts.append(f"{hours}h")
        if minutes > 0:
            parts.append(f"{minutes}m")
        parts.append(f"{secs}s")

        return " ".join(parts)


def init_app_state(app: FastAPI, settings: Settings) -> AppState:
    """Attach a fresh AppState to the application."""
    state = AppState(settings=settings)
    app.state.runtime = state
    return state


def get_app_state(request: Request) -> AppState:
    """
    Get the state of the application serving this request.

    Raises:
        RuntimeError: If the application was built without state
    """
    state: AppState | None = getattr(request.app.state, "runtime", None)
    if state is None:
        raise RuntimeError("Application state not initialized")
    return state
