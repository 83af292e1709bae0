"""
Custom exception handlers for consistent error responses.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.middleware.base import BaseHTTPMiddleware

from analysis_proxy.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable, Coroutine
    from typing import Any

    from fastapi import FastAPI, Request
    from starlette.middleware.base import RequestResponseEndpoint
    from starlette.requests import Request as StarletteRequest
    from starlette.responses import Response

    # nosemgrep: no-module-level-constants (type alias for static type checking only)
    ExceptionHandler = Callable[
        [StarletteRequest, Exception],
        Coroutine[Any, Any, JSONResponse],
    ]


class ServiceError(Exception):
    """
    Base exception for service errors.

    Attributes:
        error: Machine-readable error code
        message: Human-readable description
        status_code: HTTP status code
        details: Additional context
    """

    # nosemgrep: no-default-parameter-values (optional details for exceptions)
    def __init__(
        self,
        error: str,
        message: str,
        status_code: int,
        details: dict[str, object] | None = None,
    ) -> None:
        self.error = error
        self.message = message
        self.status_code = status_code
        if details is None:
            self.details: dict[str, object] = {}
        else:
            self.details = details
        super().__init__(message)


class UpstreamError(ServiceError):
    """
    Exception for upstream inference service failures.

    Raised when the upstream call times out, the upstream answers with a
    non-2xx status, or the upstream cannot be reached at all.
    """


async def service_error_handler(
    request: Request,
    exc: ServiceError,
) -> JSONResponse:
    """Handle ServiceError exceptions."""
    logger = get_logger()
    logger.warning(
        "Service error",
        extra={
            "error_code": exc.error,
            "error_message": exc.message,
            "status_code": exc.status_code,
            "details": exc.details,
            "path": str(request.url.path),
        },
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.error,
            "message": exc.message,
            "details": exc.details,
        },
    )


async def rate_limit_exceeded_handler(
    request: Request,
    exc: RateLimitExceeded,
) -> JSONResponse:
    """Reject a request that exhausted its rate-limit window."""
    logger = get_logger()
    logger.warning(
        "Rate limit exceeded",
        extra={
            "limit": str(exc.detail),
            "path": str(request.url.path),
            "client": request.client.host if request.client else None,
        },
    )
    return JSONResponse(
        status_code=429,
        content={
            "error": "rate_limited",
            "message": "Too many requests, please try again later.",
            "details": {"limit": str(exc.detail)},
        },
    )


async def unhandled_exception_handler(
    request: Request,
    _exc: Exception,
) -> JSONResponse:
    """
    Handle unexpected exceptions.

    Logs full traceback but returns sanitized error to client.
    """
    logger = get_logger()
    logger.exception(
        "Unhandled exception",
        extra={
            "path": str(request.url.path),
            "method": request.method,
        },
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_error",
            "message": "Internal server error",
            "details": {},
        },
    )


class UnhandledExceptionMiddleware(BaseHTTPMiddleware):
    """
    Turn unexpected exceptions into the generic 500 inside the middleware stack.

    Installed innermost so CORS and security headers still decorate the
    response. The handler registered for Exception only sees failures raised
    by the middleware themselves.
    """

    async def dispatch(
        self,
        request: StarletteRequest,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:  # noqa: BLE001 - last-resort boundary, logged with traceback
            return await unhandled_exception_handler(request, exc)


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers on the app."""
    # Cast to expected FastAPI handler type - our more specific signature is compatible
    app.add_exception_handler(
        ServiceError,
        cast("ExceptionHandler", service_error_handler),
    )
    app.add_exception_handler(
        RateLimitExceeded,
        cast("ExceptionHandler", rate_limit_exceeded_handler),
    )
    app.add_exception_handler(Exception, unhandled_exception_handler)
