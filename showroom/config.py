from __future__ import annotations

import sys
from functools import lru_cache
from typing import Any

from loguru import logger
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from rich.console import Console

console = Console(stderr=True)
log = logger.bind(module="config")

DEFAULT_API_HEADERS: dict[str, str] = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}

# Backend routes consumed by the site.
ENDPOINTS: dict[str, dict[str, str]] = {
    "auth": {
        "login": "/auth/login",
        "profile": "/auth/me",
        "logout": "/auth/logout",
        "register": "/auth/register",
    },
}


class Settings(BaseSettings):
    """Centralised application configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    app_name: str = Field(default="Showroom", alias="APP_NAME")
    environment: str = Field(default="development", alias="APP_ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    api_base_url: str = Field(default="https://api.example.com", alias="API_BASE_URL")
    api_timeout_ms: int = Field(default=15000, alias="API_TIMEOUT")
    api_default_headers: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_API_HEADERS),
        alias="API_DEFAULT_HEADERS",
    )

    # Retry is off unless more than one attempt is configured.
    api_retry_max_attempts: int = Field(default=1, alias="API_RETRY_MAX_ATTEMPTS")
    api_retry_backoff_seconds: float = Field(default=0.5, alias="API_RETRY_BACKOFF_SECONDS")

    @field_validator("api_base_url")
    @classmethod
    def _require_base_url(cls, value: str) -> str:
        value = (value or "").strip()
        if not value:
            raise ValueError("API_BASE_URL must be non-empty.")
        return value

    @field_validator("api_timeout_ms")
    @classmethod
    def _positive_timeout(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("API_TIMEOUT must be a positive number of milliseconds.")
        return value

    @property
    def api_timeout_seconds(self) -> float:
        return self.api_timeout_ms / 1000.0

    def export_safe(self) -> dict[str, Any]:
        """Return non-sensitive settings for debugging/logging."""
        return {
            "app_name": self.app_name,
            "environment": self.environment,
            "api_base_url": self.api_base_url,
            "api_timeout_ms": self.api_timeout_ms,
            "api_default_headers": sorted(self.api_default_headers),
            "api_retry_max_attempts": self.api_retry_max_attempts,
        }


@lru_cache
def get_settings() -> Settings:
    """Load and cache application settings."""
    settings = Settings()
    console.log(
        f"[bold green]Loaded settings[/] env={settings.environment!r} "
        f"api_base_url={settings.api_base_url!r}",
    )
    log.info("Settings initialised: {}", settings.export_safe())
    return settings


def configure_logging(level: str | None = None) -> None:
    """Route Loguru output to stderr at the configured level."""

    resolved = (level or get_settings().log_level or "INFO").upper()
    logger.remove()
    logger.add(
        sys.stderr,
        level=resolved,
        backtrace=False,
        diagnose=False,
    )
    log.info("Logging initialised at level {}", resolved)
