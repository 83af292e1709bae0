"""
Per-client request rate limiting for the forwarding route.

Counters live in process memory with a fixed-window strategy. A fresh
limiter is built for every application instance, so tests never share
counters.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from slowapi import Limiter

if TYPE_CHECKING:
    from collections.abc import Callable

    from starlette.requests import Request

    from analysis_proxy.config import RateLimitConfig


UNKNOWN_CLIENT = "unknown"


def client_identifier(request: Request, trust_proxy: bool) -> str:
    """
    Derive the rate-limit key for a request.

    Precedence:
    1. First non-empty X-Forwarded-For entry, only when trust_proxy is set
    2. Socket peer address
    3. The literal "unknown"

    Args:
        request: Incoming request
        trust_proxy: Whether a reverse proxy in front of us sets X-Forwarded-For

    Returns:
        Client identifier string
    """
    if trust_proxy:
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            for entry in forwarded_for.split(","):
                candidate = entry.strip()
                if candidate:
                    return candidate

    if request.client and request.client.host:
        return request.client.host

    return UNKNOWN_CLIENT


def build_key_func(trust_proxy: bool) -> Callable[[Request], str]:
    """Bind the proxy trust setting into a slowapi key function."""

    def key_func(request: Request) -> str:
        return client_identifier(request, trust_proxy)

    return key_func


def create_limiter(config: RateLimitConfig) -> Limiter:
    """
    Build an in-memory fixed-window limiter.

    No default limits are set: only routes decorated with
    ``limiter.limit(config.limit_string)`` are counted.
    """
    return Limiter(
        key_func=build_key_func(config.trust_proxy),
        strategy="fixed-window",
        storage_uri="memory://",
        headers_enabled=False,
    )
