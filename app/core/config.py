"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Nested BaseSettings don't inherit env_file, so populate os.environ up front.
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    api_key_required: bool = Field(
        True,
        description="Whether API key authentication is required for link management",
    )
    api_keys: str | None = Field(
        None,
        description="Comma-separated list of valid API keys for authentication",
    )
    public_url: str | None = Field(
        "http://localhost:3000",
        description="Public app URL used to build short links; also allowed for CORS",
    )
    short_code_length: int = Field(
        8,
        description="Length of randomly generated short codes",
        ge=4,
        le=32,
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class RateLimitSettings(BaseSettings):
    """Request admission limits shared by every rate limiter backend."""

    enabled: bool = Field(
        True,
        description="Enable rate limiting on API routes",
    )
    max_requests: int = Field(
        10,
        description="Maximum number of requests allowed per window (per client)",
        ge=1,
    )
    window_seconds: int = Field(
        60,
        description="Fixed window size in seconds",
        ge=1,
    )
    sweep_interval_seconds: float = Field(
        300.0,
        description="How often the in-memory limiter evicts expired entries",
        gt=0,
    )
    include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* headers when throttling",
    )

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )


class RemoteStoreSettings(BaseSettings):
    """Upstash Redis REST connection. Both url and token select the remote limiter."""

    url: str | None = Field(
        None,
        description="Upstash Redis REST endpoint",
    )
    token: str | None = Field(
        None,
        description="Bearer token for the Upstash REST API",
    )
    timeout_seconds: float = Field(
        2.0,
        description="Timeout applied to each store round trip",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="UPSTASH_REDIS_REST_",
        case_sensitive=False,
    )

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.token)


class CorsSettings(BaseSettings):
    """CORS allow-list configuration."""

    dev_origins: str = Field(
        "http://localhost:3000,http://localhost:3001",
        description="Comma-separated local development origins",
    )
    max_age_seconds: int = Field(
        86400,
        description="Preflight cache duration sent as Access-Control-Max-Age",
        ge=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="CORS_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: json or plain")
    output: str = Field("stdout", description="Log destination: stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(0, description="Rotate the log file after this many bytes (0 disables)")
    backup_count: int = Field(5, description="Rotated log files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to read and propagate the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are malformed.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=AppSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    remote_store: RemoteStoreSettings = Field(default_factory=RemoteStoreSettings)
    cors: CorsSettings = Field(default_factory=CorsSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance, handed to create_app() at startup.
settings = Settings()
