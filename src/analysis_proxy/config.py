"""
Configuration management for the analysis proxy.

Loads configuration from YAML with ZERO defaults.
Every value must be explicitly specified or startup fails.
A small set of environment variables (deployment secrets and knobs)
override the YAML values before validation.
"""

from __future__ import annotations

import os
import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class ServiceConfig(BaseModel):
    """Service identity configuration."""

    model_config = ConfigDict(extra="forbid")

    name: str
    version: str
    environment: Literal["development", "production"]


class UpstreamConfig(BaseModel):
    """Upstream inference service location, credential and transfer limits."""

    model_config = ConfigDict(extra="forbid")

    base_url: str = Field(..., min_length=1)
    analyze_path: str
    token: str = Field(..., min_length=1)
    timeout_seconds: float = Field(..., gt=0)
    connect_timeout_seconds: float = Field(..., gt=0)
    max_request_bytes: int = Field(..., gt=0)
    max_response_bytes: int = Field(..., gt=0)

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("analyze_path")
    @classmethod
    def ensure_leading_slash(cls, value: str) -> str:
        if not value.startswith("/"):
            return f"/{value}"
        return value


class UploadsConfig(BaseModel):
    """Inbound upload limits."""

    model_config = ConfigDict(extra="forbid")

    max_file_bytes: int = Field(..., gt=0)


class RateLimitConfig(BaseModel):
    """Fixed-window rate limit applied to the forwarding route."""

    model_config = ConfigDict(extra="forbid")

    max_requests: int = Field(..., gt=0)
    window_minutes: int = Field(..., gt=0)
    trust_proxy: bool

    @property
    def limit_string(self) -> str:
        """Limit expressed in the notation understood by slowapi."""
        return f"{self.max_requests}/{self.window_minutes} minutes"


class ServerConfig(BaseModel):
    """HTTP server configuration."""

    model_config = ConfigDict(extra="forbid")

    host: str
    port: int
    log_level: str
    cors_origins: list[str]


class Settings(BaseModel):
    """
    Root configuration container.

    All fields are REQUIRED. No defaults exist.
    Missing fields cause immediate startup failure.

    Usage:
        from analysis_proxy.config import get_settings
        settings = get_settings()
    """

    model_config = ConfigDict(extra="forbid")

    service: ServiceConfig
    upstream: UpstreamConfig
    uploads: UploadsConfig
    rate_limit: RateLimitConfig
    server: ServerConfig

    @property
    def is_development(self) -> bool:
        return self.service.environment == "development"


class ConfigurationError(Exception):
    """Raised when configuration is invalid or missing."""

    pass


def load_yaml_config(config_path: Path) -> dict[str, Any]:
    """
    Load and parse YAML configuration file.

    Args:
        config_path: Path to config.yaml

    Returns:
        Parsed configuration dictionary

    Raises:
        ConfigurationError: If file is missing, empty, or invalid
    """
    if not config_path.exists():
        raise ConfigurationError(
            f"Configuration file not found: {config_path}\n"
            f"Expected location: {config_path.absolute()}\n"
            f"Create the file or set CONFIG_PATH environment variable."
        )

    try:
        with config_path.open() as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    if config is None:
        raise ConfigurationError(
            f"Configuration file is empty: {config_path}\n"
            f"All configuration values must be explicitly specified."
        )

    if not isinstance(config, dict):
        raise ConfigurationError(
            f"Configuration must be a YAML mapping, got {type(config).__name__}"
        )

    return config


def get_config_path() -> Path:
    """
    Determine configuration file path.

    Uses CONFIG_PATH environment variable if set, otherwise defaults
    to ./config.yaml relative to working directory.
    """
    config_path_str = os.environ.get("CONFIG_PATH")
    if config_path_str is None:
        config_path_str = "config.yaml"
    return Path(config_path_str)


def parse_origin_list(raw: str) -> list[str]:
    """Split a comma-separated origin list, dropping blanks."""
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def apply_environment_overrides(
    config: dict[str, Any],
    environ: dict[str, str],
) -> dict[str, Any]:
    """
    Overlay deployment environment variables onto parsed YAML.

    HF_SPACE_URL, HF_TOKEN, PORT, ENVIRONMENT and LOG_LEVEL replace their
    YAML counterparts. ALLOWED_ORIGINS is appended to server.cors_origins.
    Sections missing from the YAML are left missing so validation reports them.

    Args:
        config: Parsed YAML configuration (not modified)
        environ: Environment mapping to read overrides from

    Returns:
        New configuration dictionary with overrides applied
    """
    result = {
        key: dict(value) if isinstance(value, dict) else value for key, value in config.items()
    }

    overrides = (
        ("HF_SPACE_URL", "upstream", "base_url"),
        ("HF_TOKEN", "upstream", "token"),
        ("PORT", "server", "port"),
        ("ENVIRONMENT", "service", "environment"),
        ("LOG_LEVEL", "server", "log_level"),
    )
    for env_name, section, key in overrides:
        value = environ.get(env_name)
        if value is None or not isinstance(result.get(section), dict):
            continue
        result[section][key] = value

    extra_origins = environ.get("ALLOWED_ORIGINS")
    server = result.get("server")
    if extra_origins and isinstance(server, dict):
        configured = list(server.get("cors_origins") or [])
        for origin in parse_origin_list(extra_origins):
            if origin not in configured:
                configured.append(origin)
        server["cors_origins"] = configured

    return result


@lru_cache
def get_settings() -> Settings:
    """
    Load and validate configuration.

    Cached to ensure single instance across application.
    Called once at startup - fails fast on invalid config.

    Returns:
        Validated Settings instance

    Raises:
        ConfigurationError: Config file missing or invalid
    """
    config_path = get_config_path()
    yaml_config = load_yaml_config(config_path)
    yaml_config = apply_environment_overrides(yaml_config, dict(os.environ))

    try:
        return Settings(**yaml_config)
    except ValidationError as e:
        raise ConfigurationError(
            f"Configuration validation failed: {e}\n"
            f"All configuration values must be explicitly specified.\n"
            f"No default values are allowed."
        ) from e


def clear_settings_cache() -> None:
    """Clear the settings cache. Used in testing."""
    get_settings.cache_clear()


# Keywords that indicate sensitive data (case-insensitive)
SENSITIVE_KEYWORDS: frozenset[str] = frozenset(
    {
        "key",
        "secret",
        "pass",
        "password",
        "token",
        "credential",
        "auth",
        "api_key",
        "apikey",
        "private",
        "bearer",
    }
)

_SENSITIVE_PATTERN = re.compile(
    r"(" + "|".join(re.escape(kw) for kw in SENSITIVE_KEYWORDS) + r")",
    re.IGNORECASE,
)


def is_sensitive_key(key: str) -> bool:
    """
    Check if a configuration key contains sensitive keywords.

    Args:
        key: Configuration key name

    Returns:
        True if the key likely contains sensitive data
    """
    return bool(_SENSITIVE_PATTERN.search(key))


REDACTION_MARKER: str = "[REDACTED]"


def redact_sensitive_values(
    data: dict[str, Any],
    redaction_marker: str,
) -> dict[str, Any]:
    """
    Recursively redact sensitive values from configuration.

    Used by /info endpoint to safely expose configuration.

    Args:
        data: Configuration dictionary
        redaction_marker: String to replace sensitive values

    Returns:
        New dictionary with sensitive values redacted
    """
    result: dict[str, Any] = {}

    for key, value in data.items():
        if is_sensitive_key(key):
            result[key] = redaction_marker
        elif isinstance(value, dict):
            result[key] = redact_sensitive_values(value, redaction_marker)
        elif isinstance(value, list):
            result[key] = [
                redact_sensitive_values(item, redaction_marker) if isinstance(item, dict) else item
                for item in value
            ]
        else:
            result[key] = value

    return result


def get_safe_config(settings: Settings) -> dict[str, Any]:
    """
    Get configuration with sensitive values redacted.

    Returns:
        Configuration dictionary safe for logging/API exposure
    """
    return redact_sensitive_values(settings.model_dump(), REDACTION_MARKER)
