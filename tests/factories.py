"""
Test data factories for generating test fixtures.

Provides reusable functions for creating test images, settings and
multipart inspection helpers with consistent, predictable outputs.
"""

from __future__ import annotations

import copy
import re
from io import BytesIO
from typing import TYPE_CHECKING, Any

from PIL import Image

from analysis_proxy.config import Settings

if TYPE_CHECKING:
    import httpx

UPSTREAM_URL = "http://upstream.test"
UPSTREAM_ANALYZE_URL = f"{UPSTREAM_URL}/analyze"
UPSTREAM_TOKEN = "hf_test_token"
ALLOWED_ORIGIN = "https://app.example.com"

BASE_CONFIG: dict[str, Any] = {
    "service": {
        "name": "analysis-proxy",
        "version": "0.1.0",
        "environment": "production",
    },
    "upstream": {
        "base_url": UPSTREAM_URL,
        "analyze_path": "/analyze",
        "token": UPSTREAM_TOKEN,
        "timeout_seconds": 120.0,
        "connect_timeout_seconds": 10.0,
        "max_request_bytes": 100 * 1024 * 1024,
        "max_response_bytes": 100 * 1024 * 1024,
    },
    "uploads": {
        "max_file_bytes": 50 * 1024 * 1024,
    },
    "rate_limit": {
        "max_requests": 50,
        "window_minutes": 15,
        "trust_proxy": False,
    },
    "server": {
        "host": "0.0.0.0",
        "port": 3000,
        "log_level": "info",
        "cors_origins": [ALLOWED_ORIGIN],
    },
}


def create_config_dict(**sections: dict[str, Any]) -> dict[str, Any]:
    """
    Build a complete raw configuration, overriding keys per section.

    Example:
        create_config_dict(rate_limit={"max_requests": 2})
    """
    config = copy.deepcopy(BASE_CONFIG)
    for section, values in sections.items():
        config[section].update(values)
    return config


def create_settings(**sections: dict[str, Any]) -> Settings:
    """Build validated Settings with per-section overrides."""
    return Settings(**create_config_dict(**sections))


def create_test_image(
    width: int = 64,
    height: int = 64,
    color: str = "red",
    format: str = "PNG",
) -> bytes:
    """
    Create a test image as bytes.

    Args:
        width: Image width in pixels
        height: Image height in pixels
        color: Fill color (any PIL color name)
        format: Image format (JPEG, PNG, WEBP)

    Returns:
        Raw image bytes
    """
    image = Image.new("RGB", (width, height), color=color)
    buffer = BytesIO()
    image.save(buffer, format=format)
    return buffer.getvalue()


_DISPOSITION_PARAM = re.compile(rb'(\w+)="([^"]*)"')


def parse_multipart(request: httpx.Request) -> dict[str, dict[str, Any]]:
    """
    Split a captured multipart request into its parts.

    Returns:
        Mapping of part name to {"filename", "content_type", "data"}
    """
    body = request.read()
    content_type = request.headers["content-type"]
    boundary = content_type.split("boundary=", 1)[1].strip('"').encode("ascii")

    parts: dict[str, dict[str, Any]] = {}
    for raw_part in body.split(b"--" + boundary):
        if not raw_part.strip() or raw_part.strip() == b"--":
            continue
        head, _, data = raw_part.lstrip(b"\r\n").partition(b"\r\n\r\n")
        if data.endswith(b"\r\n"):
            data = data[:-2]

        headers: dict[str, str] = {}
        for line in head.split(b"\r\n"):
            name, _, value = line.partition(b":")
            headers[name.decode().strip().lower()] = value.decode().strip()

        params = {
            key.decode(): value.decode()
            for key, value in _DISPOSITION_PARAM.findall(
                headers["content-disposition"].encode()
            )
        }
        parts[params["name"]] = {
            "filename": params.get("filename"),
            "content_type": headers.get("content-type"),
            "data": data,
        }

    return parts
