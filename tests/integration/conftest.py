"""
Shared fixtures for integration tests.

Integration tests use the real application built from a YAML config file
plus environment overrides, exactly as in production, with HTTP-level
mocking of the upstream inference service.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
import respx
import yaml
from fastapi.testclient import TestClient

from analysis_proxy.app import create_app
from analysis_proxy.config import clear_settings_cache
from tests.factories import UPSTREAM_URL, create_config_dict, create_test_image

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


ENV_TOKEN = "hf_token_from_environment"
ENV_ORIGIN = "https://env-origin.example.com"


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """YAML config with a placeholder token that the environment replaces."""
    config = create_config_dict(upstream={"token": "placeholder"})
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(config))
    return path


@pytest.fixture
def upstream() -> Iterator[respx.MockRouter]:
    """Stub of the upstream inference service; unregistered calls fail the test."""
    with respx.mock(base_url=UPSTREAM_URL, assert_all_called=False) as router:
        yield router


@pytest.fixture
def client(
    config_file: Path,
    upstream: respx.MockRouter,  # noqa: ARG001 - fixture needed for side effects
    monkeypatch: pytest.MonkeyPatch,
) -> Iterator[TestClient]:
    """
    Test client for the application loaded through get_settings().

    Uses context manager to trigger lifespan events (client initialization).
    """
    monkeypatch.setenv("CONFIG_PATH", str(config_file))
    monkeypatch.setenv("HF_TOKEN", ENV_TOKEN)
    monkeypatch.setenv("ALLOWED_ORIGINS", ENV_ORIGIN)
    monkeypatch.delenv("HF_SPACE_URL", raising=False)
    monkeypatch.delenv("ENVIRONMENT", raising=False)

    clear_settings_cache()
    app = create_app()
    with TestClient(app) as test_client:
        yield test_client
    clear_settings_cache()


@pytest.fixture
def sample_image() -> bytes:
    """Small JPEG image."""
    return create_test_image(48, 48, "red", "JPEG")
