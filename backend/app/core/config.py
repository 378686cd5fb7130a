"""
Environment configuration — single source of truth for all settings.

Uses pydantic-settings for type-safe config with .env file support.
All values have sensible defaults for local development.

All durations are in milliseconds.

Usage:
    from backend.app.core.config import settings
    print(settings.HOLD_DURATION_MS)
"""

from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


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
    APP_NAME: str = "SafeHive SOS"
    APP_VERSION: str = "1.0.0"
    APP_BRAND: str = "SAFEHIVE"  # signature line of the emergency message
    ENVIRONMENT: str = "development"  # development | staging | production
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"  # DEBUG | INFO | WARNING | ERROR | CRITICAL

    # ── Server ──
    HOST: str = "127.0.0.1"
    PORT: int = 8000
    RELOAD: bool = True

    # ── CORS ──
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]
    CORS_ALLOW_ALL: bool = False

    # ── Hold-to-trigger gesture ──
    HOLD_DURATION_MS: int = 3000
    HOLD_TICK_MS: int = 50
    SUCCESS_DISPLAY_MS: int = 3000

    # ── Geolocation ──
    LOCATION_SOURCE: str = "client"  # client | static | none
    LOCATION_TIMEOUT_MS: int = 10000
    LOCATION_MAX_AGE_MS: int = 0  # 0 = never accept a cached fix
    LOCATION_HIGH_ACCURACY: bool = True
    DEVICE_LATITUDE: Optional[float] = None  # used by LOCATION_SOURCE=static
    DEVICE_LONGITUDE: Optional[float] = None

    # ── Dispatch staggering ──
    CONTACT_STAGGER_MS: int = 4000  # gap between consecutive contacts
    MESSAGE_OFFSET_MS: int = 2000  # call → message gap for one contact
    CHANNEL_PROVIDER: str = "simulation"  # simulation | browser

    # ── Links ──
    MAP_BASE_URL: str = "https://www.google.com/maps"
    MESSAGING_BASE_URL: str = "https://wa.me"

    # ── Limits ──
    MAX_CONTACTS: int = 5
    EVENT_HISTORY_LIMIT: int = 50
    EVENT_HISTORY_KEY: str = "sos_history"

    # ── Storage ──
    STORE_BACKEND: str = "memory"  # memory | redis
    REDIS_URL: str = "redis://localhost:6379/0"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"


@lru_cache()
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()


settings = get_settings()
