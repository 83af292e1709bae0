"""Fixtures for client unit tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from analysis_proxy.clients import ImageUpload, UpstreamClient
from tests.factories import UPSTREAM_TOKEN, UPSTREAM_URL, create_test_image

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator


@pytest.fixture
async def upstream_client() -> AsyncGenerator[UpstreamClient, None]:
    """UpstreamClient pointed at the respx-stubbed upstream."""
    client = UpstreamClient(
        base_url=UPSTREAM_URL,
        analyze_path="/analyze",
        token=UPSTREAM_TOKEN,
        timeout=5.0,
        connect_timeout=1.0,
        max_request_bytes=1024 * 1024,
        max_response_bytes=1024,
        expose_error_details=False,
    )
    yield client
    await client.close()


@pytest.fixture
def image_upload() -> ImageUpload:
    """A PNG upload as a browser would declare it."""
    return ImageUpload(
        filename="lesion.png",
        content=create_test_image(16, 16, "green", "PNG"),
        content_type="image/png",
    )
