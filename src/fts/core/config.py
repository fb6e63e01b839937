# fts/core/config.py
"""
Central configuration for the function HTTP runtime.

Environment variables (prefixed with ``FTS_``) override defaults.
"""
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven settings with sensible defaults."""

    model_config = SettingsConfigDict(env_prefix="FTS_", env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"
    debug: bool = Field(
        default=False,
        description="Pretty-print JSON responses and include tracebacks in errors",
    )

    # Request handling
    body_size_limit: int = Field(
        default=100 * 1024 * 1024,
        description="Maximum accepted request body size in bytes",
    )
    application_error_status: int = Field(
        default=403,
        description="Status used when the target function raises",
    )

    # CORS
    cors_allow_methods: list[str] = Field(
        default_factory=lambda: ["GET", "POST", "OPTIONS", "HEAD"]
    )
    cors_allow_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Outbound calls
    client_timeout: float = Field(default=30.0, description="HTTP client timeout (s)")


settings = Settings()
