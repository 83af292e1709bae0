"""
FastAPI application factory.

Creates and configures the FastAPI application instance.
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from analysis_proxy.config import Settings, get_settings
from analysis_proxy.core.exceptions import (
    UnhandledExceptionMiddleware,
    register_exception_handlers,
)
from analysis_proxy.core.lifespan import lifespan
from analysis_proxy.core.rate_limit import create_limiter
from analysis_proxy.core.security import SecurityHeadersMiddleware
from analysis_proxy.core.state import init_app_state
from analysis_proxy.routers import analyze, health, info

CORS_METHODS = ["GET", "POST", "OPTIONS"]
CORS_HEADERS = ["Content-Type", "Authorization"]


def resolve_cors_origins(settings: Settings) -> list[str]:
    """
    Origins allowed to call the proxy from a browser.

    Development mode is permissive; otherwise only the configured list
    (YAML plus ALLOWED_ORIGINS) is allowed, matched exactly.
    """
    if settings.is_development:
        return ["*"]
    return list(settings.server.cors_origins)


# nosemgrep: no-default-parameter-values (settings are loaded from config when omitted)
def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        settings: Explicit settings (tests); loaded from config when None

    Returns:
        Configured FastAPI instance
    """
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title=f"{settings.service.name} Service",
        description="Upload proxy for the image analysis Space",
        version=settings.service.version,
        lifespan=lifespan,
    )

    init_app_state(app, settings)

    # Process-wide counters for this app instance only
    limiter = create_limiter(settings.rate_limit)
    app.state.limiter = limiter

    # Middleware added last runs first: security headers wrap CORS, which
    # wraps the boundary that turns unexpected errors into a JSON 500
    app.add_middleware(UnhandledExceptionMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=resolve_cors_origins(settings),
        allow_credentials=False,
        allow_methods=CORS_METHODS,
        allow_headers=CORS_HEADERS,
    )
    app.add_middleware(SecurityHeadersMiddleware)

    register_exception_handlers(app)

    app.include_router(health.router, tags=["Operations"])
    app.include_router(info.router, tags=["Operations"])
    app.include_router(
        analyze.create_router(limiter, settings.rate_limit.limit_string),
        tags=["Analysis"],
    )

    return app
