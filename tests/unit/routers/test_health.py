"""Tests for health, connectivity test and info endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

import pytest

from analysis_proxy.config import REDACTION_MARKER
from tests.factories import UPSTREAM_ANALYZE_URL, UPSTREAM_TOKEN

if TYPE_CHECKING:
    import respx
    from fastapi.testclient import TestClient


@pytest.mark.unit
class TestHealthEndpoint:
    """Tests for GET /health endpoint."""

    def test_health_returns_ok(self, test_client: TestClient) -> None:
        """Health check reports ok with a parseable timestamp."""
        response = test_client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert datetime.fromisoformat(data["timestamp"]).tzinfo is not None
        assert data["service"] == "analysis-proxy"
        assert data["version"] == "0.1.0"
        assert data["uptime_seconds"] >= 0

    def test_health_does_not_contact_upstream(
        self,
        test_client: TestClient,
        upstream: respx.MockRouter,
    ) -> None:
        """Health is answered locally."""
        route = upstream.route()

        test_client.get("/health")

        assert route.called is False

    def test_health_has_security_headers(self, test_client: TestClient) -> None:
        """Every response carries the security header set."""
        response = test_client.get("/health")

        assert response.headers["x-content-type-options"] == "nosniff"
        assert response.headers["x-frame-options"] == "SAMEORIGIN"
        assert response.headers["referrer-policy"] == "no-referrer"


@pytest.mark.unit
class TestConnectivityEndpoint:
    """Tests for GET /test endpoint."""

    def test_returns_fixed_confirmation(self, test_client: TestClient) -> None:
        """Connectivity test payload is fixed."""
        response = test_client.get("/test")

        assert response.status_code == 200
        assert response.json() == {"message": "Proxy is working", "status": "ok"}


@pytest.mark.unit
class TestInfoEndpoint:
    """Tests for GET /info endpoint."""

    def test_info_returns_service_metadata(self, test_client: TestClient) -> None:
        """Info exposes identity, target and limits."""
        response = test_client.get("/info")

        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "analysis-proxy"
        assert data["environment"] == "production"
        assert data["upstream"]["url"] == UPSTREAM_ANALYZE_URL
        assert data["upstream"]["timeout_seconds"] == 120.0
        assert data["limits"]["analyze_rate_limit"] == "50/15 minutes"
        assert data["limits"]["max_upload_bytes"] == 50 * 1024 * 1024

    def test_info_redacts_token(self, test_client: TestClient) -> None:
        """The bearer token never leaves the process."""
        response = test_client.get("/info")

        assert response.json()["config"]["upstream"]["token"] == REDACTION_MARKER
        assert UPSTREAM_TOKEN not in response.text
