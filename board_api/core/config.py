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

# Select the .env file for the current environment
_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file and os.getenv("TESTING") != "true":
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


class AppSettings(BaseSettings):
    """Admission pipeline configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    max_message_chars: int = Field(
        2000,
        description="Maximum message length in characters after trimming",
        ge=1,
    )

    rate_limit_enabled: bool = Field(
        True,
        description="Enable per-client submission rate limiting",
    )
    rate_limit_requests: int = Field(
        10,
        description="Maximum number of accepted submissions per window (per client address)",
        ge=1,
    )
    rate_limit_window_seconds: float = Field(
        60.0,
        description="Fixed window size in seconds, anchored at the first submission of the window",
        gt=0,
    )
    rate_limit_min_interval_seconds: float = Field(
        2.0,
        description="Minimum delay between two accepted submissions from one client address",
        ge=0,
    )

    client_ip_header: str = Field(
        "CF-Connecting-IP",
        description="Header set by the trusted reverse proxy with the client address",
    )
    forwarded_for_header: str = Field(
        "X-Forwarded-For",
        description="Comma-separated forwarded-for header; the first entry is used",
    )

    background_workers: int = Field(
        2,
        description="Number of background workers running notification dispatch",
        ge=1,
    )
    background_queue_size: int = Field(
        1000,
        description="Maximum number of pending background jobs before new ones are dropped",
        ge=1,
    )
    background_drain_timeout_seconds: float = Field(
        10.0,
        description="How long shutdown waits for pending background jobs before cancelling them",
        ge=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class StoreSettings(BaseSettings):
    """Message store configuration.

    The ``memory`` backend keeps everything in process and is meant for local
    development and tests. ``supabase`` talks to the PostgREST API.
    """

    backend: str = Field(
        "memory",
        description="Store backend name (memory, supabase)",
    )
    supabase_url: str | None = Field(
        None,
        description="Supabase project URL (required for the supabase backend)",
    )
    supabase_secret_key: str | None = Field(
        None,
        description="Supabase service key used server-side (required for the supabase backend)",
    )
    timeout_seconds: float = Field(
        10.0,
        description="Request timeout in seconds",
    )

    model_config = SettingsConfigDict(
        env_prefix="STORE_",
        case_sensitive=False,
    )


class NotifySettings(BaseSettings):
    """Operator notification channels.

    Every channel is optional; a channel missing any of its values is skipped.
    """

    tg_token: str | None = Field(
        None,
        description="Telegram bot token",
    )
    tg_chat_id: str | None = Field(
        None,
        description="Telegram chat (user or channel) id receiving notifications",
    )
    resend_key: str | None = Field(
        None,
        description="Resend API key",
    )
    email_to: str | None = Field(
        None,
        description="Notification recipient address",
    )
    email_from: str | None = Field(
        None,
        description="Sender address verified in Resend (e.g. notify@yourdomain.com)",
    )
    timeout_seconds: float = Field(
        10.0,
        description="Per-channel delivery timeout in seconds",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="NOTIFY_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: json or plain")
    output: str = Field("stdout", description="Log output: stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file after this many bytes (0 disables rotation)",
    )
    backup_count: int = Field(5, description="Number of rotated files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header carrying the request correlation id",
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
    store: StoreSettings = Field(default_factory=StoreSettings)
    notify: NotifySettings = Field(default_factory=NotifySettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
