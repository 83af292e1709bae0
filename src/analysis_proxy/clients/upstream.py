"""
Client for the upstream inference service.

Forwards a single image upload as multipart/form-data with a bearer
credential. Exactly one attempt is made per call: no retries, no caching.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Any

import httpx

from analysis_proxy.core.exceptions import UpstreamError
from analysis_proxy.logging import get_logger

DEFAULT_CONTENT_TYPE = "application/octet-stream"
DEFAULT_FILENAME = "upload"

TIMEOUT_MESSAGE = "Analysis timeout - the AI model took too long to respond"


@dataclass(frozen=True)
class ImageUpload:
    """An uploaded file exactly as the browser declared it."""

    filename: str
    content: bytes
    content_type: str

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class UpstreamResponse:
    """A successful upstream reply, kept as raw bytes for verbatim relay."""

    status_code: int
    content: bytes
    content_type: str


class UpstreamClient:
    """
    Client for the upstream ``/analyze`` endpoint.

    Failure classification:
    - timeout (connect/read/write/pool or overall deadline): 504
    - upstream answered with a non-2xx status: same status, raw body in details
    - anything else at the transport level: 500
    """

    def __init__(
        self,
        base_url: str,
        analyze_path: str,
        token: str,
        timeout: float,
        connect_timeout: float,
        max_request_bytes: int,
        max_response_bytes: int,
        expose_error_details: bool,
    ) -> None:
        """
        Initialize the upstream client.

        Args:
            base_url: Upstream base URL (e.g., "https://user-space.hf.space")
            analyze_path: Path of the analysis endpoint on the upstream
            token: Bearer credential injected into every call
            timeout: Overall deadline for one call, in seconds
            connect_timeout: Connection establishment timeout, in seconds
            max_request_bytes: Ceiling for the outbound body
            max_response_bytes: Ceiling for the upstream response body
            expose_error_details: Include transport error text in error details
        """
        self.base_url = base_url
        self.analyze_path = analyze_path
        self.timeout = timeout
        self.max_request_bytes = max_request_bytes
        self.max_response_bytes = max_response_bytes
        self.expose_error_details = expose_error_details
        self._token = token

        self.client = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout, connect=min(connect_timeout, timeout)),
            follow_redirects=True,
        )

    @property
    def analyze_url(self) -> str:
        """Full URL of the upstream analysis endpoint."""
        return f"{self.base_url}{self.analyze_path}"

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    def _build_request(self, image: ImageUpload, context_json: str | None) -> httpx.Request:
        files = {"image": (image.filename, image.content, image.content_type)}
        data = {"context_json": context_json} if context_json else None
        return self.client.build_request(
            "POST",
            self.analyze_path,
            files=files,
            data=data,
            headers={"Authorization": f"Bearer {self._token}"},
        )

    async def _read_limited(self, response: httpx.Response) -> bytes:
        """Read a streamed body, failing once it exceeds the response ceiling."""
        declared = response.headers.get("content-length")
        if declared is not None and declared.isdigit() and int(declared) > self.max_response_bytes:
            raise self._transport_error(
                f"Upstream response of {declared} bytes exceeds {self.max_response_bytes} bytes"
            )

        chunks: list[bytes] = []
        received = 0
        async for chunk in response.aiter_bytes():
            received += len(chunk)
            if received > self.max_response_bytes:
                raise self._transport_error(
                    f"Upstream response exceeds {self.max_response_bytes} bytes"
                )
            chunks.append(chunk)
        return b"".join(chunks)

    def _transport_error(self, reason: str) -> UpstreamError:
        details: dict[str, object] = {}
        if self.expose_error_details:
            details["reason"] = reason
        return UpstreamError(
            error="internal_error",
            message="Internal server error",
            status_code=500,
            details=details,
        )

    def _timeout_error(self) -> UpstreamError:
        return UpstreamError(
            error="upstream_timeout",
            message=TIMEOUT_MESSAGE,
            status_code=504,
            details={"timeout_seconds": self.timeout},
        )

    @staticmethod
    def _decode_error_body(content: bytes) -> Any:
        """Upstream error payload as JSON when possible, otherwise as text."""
        try:
            return json.loads(content)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return content.decode("utf-8", errors="replace")

    async def _exchange(self, request: httpx.Request) -> tuple[httpx.Response, bytes]:
        response = await self.client.send(request, stream=True)
        try:
            body = await self._read_limited(response)
        finally:
            await response.aclose()
        return response, body

    async def analyze(self, image: ImageUpload, context_json: str | None) -> UpstreamResponse:
        """
        Forward one image to the upstream analysis endpoint.

        Args:
            image: Uploaded file to forward verbatim
            context_json: Opaque JSON text forwarded unchanged when non-empty

        Returns:
            Raw upstream success body and content type

        Raises:
            UpstreamError: On timeout, upstream error status, or transport failure
        """
        logger = get_logger()

        outbound_size = image.size + (len(context_json.encode("utf-8")) if context_json else 0)
        if outbound_size > self.max_request_bytes:
            raise self._transport_error(
                f"Outbound payload of {outbound_size} bytes exceeds {self.max_request_bytes} bytes"
            )

        request = self._build_request(image, context_json)

        try:
            async with asyncio.timeout(self.timeout):
                response, body = await self._exchange(request)
        except (httpx.TimeoutException, TimeoutError) as e:
            logger.warning(
                "Upstream timeout",
                extra={"url": self.analyze_url, "timeout": self.timeout},
            )
            raise self._timeout_error() from e
        except httpx.HTTPError as e:
            logger.error(
                "Upstream request failed",
                extra={
                    "url": self.analyze_url,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )
            raise self._transport_error(f"{type(e).__name__}: {e}") from e

        if not response.is_success:
            payload = self._decode_error_body(body)
            logger.warning(
                "Upstream returned error status",
                extra={"url": self.analyze_url, "status_code": response.status_code},
            )
            raise UpstreamError(
                error="upstream_error",
                message="Analysis service error",
                status_code=response.status_code,
                details={"status_code": response.status_code, "response": payload},
            )

        content_type = response.headers.get("content-type", "application/json")
        return UpstreamResponse(
            status_code=response.status_code,
            content=body,
            content_type=content_type,
        )
