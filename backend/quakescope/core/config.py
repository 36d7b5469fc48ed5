"""
Environment configuration — single source of truth for all settings.

Uses pydantic-settings for type-safe config with .env file support.
All values have sensible defaults for local development.

Usage:
    from backend.quakescope.core.config import settings
    print(settings.USGS_QUERY_URL)
"""

from __future__ import annotations

from functools import lru_cache
from typing import List

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
    APP_NAME: str = "QuakeScope"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"  # development | staging | production
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"  # DEBUG | INFO | WARNING | ERROR | CRITICAL

    # ── CORS ──
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://localhost:8000",
    ]
    CORS_ALLOW_ALL: bool = True  # False in production

    # ── USGS feed ──
    USGS_FEED_BASE: str = "https://earthquake.usgs.gov/earthquakes/feed/v1.0/summary"
    USGS_QUERY_URL: str = "https://earthquake.usgs.gov/fdsnws/event/1/query"
    USGS_TIMEOUT_SECONDS: float = 30.0

    # ── Chunked fetch ──
    CHUNK_PACING_SECONDS: float = 0.3  # delay between sequential chunk requests
    RANGE_QUERY_LIMIT: int = 10000  # result ceiling per chunk request
    MAX_RANGE_MONTHS: int = 5  # custom ranges are clamped to this span

    # ── Proximity ──
    REGIONAL_RADIUS_KM: float = 500.0
    REGIONAL_LIMIT: int = 200
    NEAREST_LIMIT: int = 10

    # ── Filter defaults ──
    DEFAULT_MIN_MAGNITUDE: float = 2.0
    DEFAULT_MAX_COUNT: int = 1000

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
