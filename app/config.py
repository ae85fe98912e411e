# =============================================================================
# app/config.py - Settings
# =============================================================================
# Environment configuration shared by the API, the Celery worker and the
# scripts. Values come from the process environment, then .env.
#
#   from app.config import settings
#   settings.TIMEZONE
#
# Studio-level knobs that the tutor edits at runtime (rates, reminder days,
# group session capacity) live in the tutor_settings table, not here; the
# DEFAULT_* values below are only the fallback when that row is missing.
# =============================================================================

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=True,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Supabase
    # -------------------------------------------------------------------------

    SUPABASE_URL: str = Field(..., description="https://<project>.supabase.co")
    SUPABASE_SERVICE_KEY: str = Field(..., description="service_role key; the API enforces access itself")
    SUPABASE_JWT_SECRET: str = Field(..., description="Legacy HS256 secret for access tokens")

    # -------------------------------------------------------------------------
    # Redis (Celery broker, results, socket events)
    # -------------------------------------------------------------------------

    REDIS_URL: str = "redis://localhost:6379/0"

    # -------------------------------------------------------------------------
    # Email (Resend)
    # -------------------------------------------------------------------------

    RESEND_API_KEY: str = Field(default="", description="Empty disables outgoing email")
    EMAIL_FROM: str = "Love to Learn Academy <noreply@app.lovetolearn.site>"
    APP_URL: str = Field(default="https://app.lovetolearn.site", description="Client app URL used in email links")

    # -------------------------------------------------------------------------
    # Studio
    # -------------------------------------------------------------------------

    TIMEZONE: str = Field(
        default="America/Los_Angeles",
        description="Studio timezone: email times, recurring wall-clock times, beat schedule"
    )
    DEFAULT_RATE: float = Field(default=45.0, gt=0)
    DEFAULT_BASE_DURATION: int = Field(default=60, gt=0, description="Minutes covered by DEFAULT_RATE")
    RECURRING_HORIZON_DAYS: int = Field(default=365, ge=7, le=730)
    MAX_UPLOAD_SIZE_MB: int = Field(default=5, ge=1, le=50, description="Family import CSV limit")

    # -------------------------------------------------------------------------
    # Runtime
    # -------------------------------------------------------------------------

    ENVIRONMENT: Literal["development", "staging", "production"] = "development"
    DEBUG: bool = False
    CORS_ORIGINS: str = Field(default="http://localhost:8081", description="Comma-separated")

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def max_upload_size_bytes(self) -> int:
        return self.MAX_UPLOAD_SIZE_MB * 1024 * 1024

    @property
    def email_enabled(self) -> bool:
        return bool(self.RESEND_API_KEY)

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
