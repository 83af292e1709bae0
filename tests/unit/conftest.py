"""
Shared fixtures for unit tests.

The upstream inference service is stubbed at the httpx transport level
with respx, so no test touches the network.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
import respx
import yaml
from fastapi.testclient import TestClient

from analysis_proxy.app import create_app
from tests.factories import UPSTREAM_URL, create_config_dict, create_settings, create_test_image

if TYPE_CHECKING:
    from collections.abc import Generator

    from analysis_proxy.config import Settings


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Reset settings cache before and after each test."""
    from analysis_proxy.config import clear_settings_cache  # noqa: PLC0415

    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def test_config_file() -> Generator[Path, None, None]:
    """Create a temporary config file and point CONFIG_PATH at it."""
    with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
        yaml.safe_dump(create_config_dict(), f)
        config_path = Path(f.name)

    old_config_path = os.environ.get("CONFIG_PATH")
    os.environ["CONFIG_PATH"] = str(config_path)

    yield config_path

    if old_config_path:
        os.environ["CONFIG_PATH"] = old_config_path
    else:
        os.environ.pop("CONFIG_PATH", None)

    config_path.unlink(missing_ok=True)


@pytest.fixture
def settings() -> Settings:
    """Default validated settings (production mode, 50 requests / 15 minutes)."""
    return create_settings()


@pytest.fixture
def upstream() -> Generator[respx.MockRouter, None, None]:
    """
    Stub of the upstream inference service.

    Any request to a route the test did not register fails the test.
    """
    with respx.mock(base_url=UPSTREAM_URL, assert_all_called=False) as router:
        yield router


@pytest.fixture
def test_client(
    settings: Settings,
    upstream: respx.MockRouter,  # noqa: ARG001 - fixture needed for side effects
) -> Generator[TestClient, None, None]:
    """Create a test client for a fresh app (fresh rate-limit counters)."""
    app = create_app(settings)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def sample_image() -> bytes:
    """Small PNG image."""
    return create_test_image(32, 32, "blue", "PNG")
