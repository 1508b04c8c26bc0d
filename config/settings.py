"""
config/settings.py
Application settings loaded from environment variables.
Uses Pydantic BaseSettings for validation and type safety.
"""

from datetime import date
from decimal import Decimal
from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Application ──────────────────────────────────────────
    APP_NAME: str = "Iftar Sponsorship Calendar"
    APP_ENV: str = "development"
    APP_VERSION: str = "2.0.0"
    DEBUG: bool = False
    SECRET_KEY: str
    API_PREFIX: str = "/api/v1"

    # ── Server ───────────────────────────────────────────────
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    WORKERS: int = 2

    # ── Database ─────────────────────────────────────────────
    DATABASE_URL: str = "sqlite+aiosqlite:///./iftar_calendar.db"
    DATABASE_POOL_SIZE: int = 10
    DATABASE_MAX_OVERFLOW: int = 20
    DATABASE_POOL_TIMEOUT: int = 30

    # ── Redis (optional, rate limiting only) ─────────────────
    REDIS_URL: str = ""

    # ── Admin auth ───────────────────────────────────────────
    ADMIN_USERNAME: str = "calendar_admin"
    ADMIN_PASSWORD: str = ""
    ADMIN_PASSWORD_HASH: Optional[str] = None   # passlib pbkdf2_sha256 hash, wins over ADMIN_PASSWORD
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ADMIN_SESSION_EXPIRE_HOURS: int = 24

    # ── Celery ───────────────────────────────────────────────
    CELERY_BROKER_URL: str = "redis://localhost:6379/1"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/2"
    SESSION_SWEEP_INTERVAL_SECONDS: int = 3600

    # ── Frontend / CORS ──────────────────────────────────────
    ALLOWED_ORIGINS: str = "http://localhost:3000"

    # ── Rate Limiting ────────────────────────────────────────
    RATE_LIMIT_UNAUTH_PER_MINUTE: int = 100

    # ── Business Config: pricing ─────────────────────────────
    WEEKDAY_FOOD_AMOUNT: Decimal = Decimal("1400")
    WEEKDAY_CLEANING_AMOUNT: Decimal = Decimal("100")
    WEEKDAY_DESCRIPTION: str = "Iftar Sponsorship: $1,500 ($1,400 Food + $100 Cleanup)"
    WEEKEND_FOOD_AMOUNT: Decimal = Decimal("1400")
    WEEKEND_CLEANING_AMOUNT: Decimal = Decimal("100")
    WEEKEND_DESCRIPTION: str = "Iftar Sponsorship: $1,500 ($1,400 Food + $100 Cleanup)"
    LAST_TEN_NIGHTS_FOOD_AMOUNT: Decimal = Decimal("1400")
    LAST_TEN_NIGHTS_CLEANING_AMOUNT: Decimal = Decimal("100")
    LAST_TEN_NIGHTS_DESCRIPTION: str = "Iftar Sponsorship: $1,500 ($1,400 Food + $100 Cleanup)"
    LAST_TEN_NIGHTS_DATES: str = "2026-03-10,2026-03-12,2026-03-14,2026-03-16,2026-03-18"

    # ── Business Config: capacity & calendar ─────────────────
    WEEKDAY_GUESTS: int = 100
    WEEKEND_GUESTS: int = 100
    ORG_SPONSOR_LABEL: str = "HMCC - Heathrow Muslim Community Center"
    ZELLE_EMAIL: str = "Hmccoppexp@yahoo.com"
    CALENDAR_YEAR: int = 2026
    RELIGIOUS_YEAR: int = 1447
    SEED_CALENDAR_ON_STARTUP: bool = True

    @property
    def allowed_origins_list(self) -> List[str]:
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",")]

    @property
    def last_ten_nights_list(self) -> List[date]:
        return [
            date.fromisoformat(d.strip())
            for d in self.LAST_TEN_NIGHTS_DATES.split(",")
            if d.strip()
        ]

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()


settings = get_settings()
