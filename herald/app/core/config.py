"""
Environment configuration — single source of truth for all settings.

Uses pydantic-settings for type-safe config with .env file support.
Every channel is optional: a channel whose credentials are absent is
simply not built (see notify.factory).

Usage:
    from herald.app.core.config import settings
    print(settings.BARK_SERVER_URL)
"""

from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING, List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from herald.app.notify.models import RetryPolicy


class Settings(BaseSettings):
    """
    Application-wide settings loaded from environment variables or .env file.

    Precedence: env var > .env file > default value
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ── Application ──
    APP_NAME: str = "Herald Notification Dispatch"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"  # development | staging | production
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"  # DEBUG | INFO | WARNING | ERROR | CRITICAL

    # ── Retry envelope (0 → built-in default) ──
    NOTIFY_TIMEOUT_SECONDS: float = 0.0  # 0 → 30s
    NOTIFY_RETRY_COUNT: int = 0  # extra attempts beyond the first
    NOTIFY_RETRY_INTERVAL_SECONDS: float = 0.0  # 0 → 2s
    NOTIFY_DISPATCH_MODE: str = "parallel"  # sequential | parallel

    # ── Bark push ──
    BARK_SERVER_URL: str = "https://api.day.app"
    BARK_KEY: Optional[str] = None
    BARK_SOUND: str = ""
    BARK_ICON: str = ""
    BARK_GROUP: str = ""
    BARK_URL: str = ""

    # ── Barker push (self-hosted, no default server) ──
    BARKER_SERVER_URL: Optional[str] = None
    BARKER_KEY: Optional[str] = None

    # ── SMTP email ──
    SMTP_PROVIDER: str = "custom"  # qq | outlook | gmail | custom
    SMTP_HOST: str = ""
    SMTP_PORT: int = 0  # 0 → provider preset
    SMTP_USE_TLS: bool = False
    SMTP_USE_SSL: bool = False
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_FROM: str = ""
    SMTP_TO: List[str] = []
    SMTP_CC: List[str] = []
    SMTP_BCC: List[str] = []

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    def retry_policy(self) -> "RetryPolicy":
        """Retry policy shared by every channel built from these settings."""
        from herald.app.notify.models import RetryPolicy

        return RetryPolicy(
            timeout_seconds=self.NOTIFY_TIMEOUT_SECONDS,
            retry_count=self.NOTIFY_RETRY_COUNT,
            retry_interval_seconds=self.NOTIFY_RETRY_INTERVAL_SECONDS,
        )


@lru_cache()
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()


settings = get_settings()
