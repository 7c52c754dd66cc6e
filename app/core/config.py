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

# Map environments to their respective .env files (relative to PROJECT_ROOT)
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


# Nested BaseSettings don't inherit env_file, so populate os.environ up front
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    max_body_kb: int = Field(
        100,
        description="Maximum JSON request body size in kilobytes",
        ge=1,
    )
    max_content_body_kb: int = Field(
        1024,
        description="Maximum JSON body size for requests carrying rich-text content",
        ge=1,
    )
    cache_ttl_seconds: int = Field(
        60,
        description="TTL for cached list queries (projects, users)",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class AuthSettings(BaseSettings):
    """Session authentication configuration."""

    local_dev: bool = Field(
        False,
        description="Resolve missing sessions to a local developer account (development only)",
    )
    local_dev_email: str = Field(
        "local@khmer-note.dev",
        description="Email of the local developer account",
    )
    session_cookie_names: str = Field(
        "authjs.session-token,__Secure-authjs.session-token",
        description="Comma-separated cookie names that may carry the session token",
    )

    model_config = SettingsConfigDict(
        env_prefix="AUTH_",
        case_sensitive=False,
    )


class RateLimitSettings(BaseSettings):
    """Rate limiter configuration."""

    enabled: bool = Field(
        True,
        description="Enable per-endpoint rate limiting",
    )
    backend: str = Field(
        "memory",
        description="Counter store: 'memory' (per process) or 'redis' (shared)",
    )
    redis_url: str | None = Field(
        None,
        description="Redis connection URL, required when backend is 'redis'",
    )
    cleanup_interval_seconds: int = Field(
        60,
        description="Minimum interval between sweeps of expired in-memory entries",
        ge=1,
    )
    include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers when throttling",
    )
    ip_screening: bool = Field(
        True,
        description="Screen /api requests per IP: blocklist, automated agents and the global IP budget",
    )
    block_automated_agents: bool = Field(
        True,
        description="Reject /api requests from scripted clients and scanners by User-Agent",
    )
    suspicious_threshold: int = Field(
        3,
        description="Screening violations after which an IP is temporarily blocked",
        ge=1,
    )
    block_seconds: int = Field(
        300,
        description="How long a blocked IP stays blocked",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )


class StorageSettings(BaseSettings):
    """Blob storage configuration for uploads."""

    upload_dir: str = Field(
        "uploads",
        description="Directory where uploaded blobs are written",
    )
    public_base_url: str = Field(
        "/uploads",
        description="URL prefix under which uploaded blobs are served",
    )
    max_upload_size_mb: int = Field(
        10,
        description="Maximum upload size in megabytes",
        ge=1,
    )
    add_random_suffix: bool = Field(
        True,
        description="Append a random suffix to stored pathnames to avoid collisions",
    )

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="'json' or 'plain'")
    output: str = Field("stdout", description="'stdout' or 'file'")
    file_path: str | None = Field(None, description="Log file path when output is 'file'")
    max_bytes: int = Field(0, description="Rotate the log file at this size (0 disables rotation)")
    backup_count: int = Field(5, description="Number of rotated files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to accept and echo the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are invalid.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=AppSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
settings = Settings()
