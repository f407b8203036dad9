"""Configuration management using pydantic-settings."""

from datetime import time
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
    )

    # Close configuration
    close_api_key: str = Field(alias="CLOSE_API_KEY")
    close_api_base: str = Field(default="https://api.close.com/api/v1", alias="CLOSE_API_BASE")
    source_field_id: str = Field(alias="SOURCE_FIELD_ID")
    source_tag: str = Field(default="Lead-Maggy", alias="SOURCE_TAG")
    request_timeout: float = Field(default=10.0, alias="REQUEST_TIMEOUT")
    max_attempts: int = Field(default=3, ge=1, alias="MAX_ATTEMPTS")
    enrich_concurrency: int | None = Field(default=None, ge=1, alias="ENRICH_CONCURRENCY")

    # Google configuration
    google_service_account_path: Path = Field(alias="GOOGLE_SERVICE_ACCOUNT_PATH")
    google_sheet_id: str | None = Field(default=None, alias="GOOGLE_SHEET_ID")
    admin_email: str | None = Field(default=None, alias="ADMIN_EMAIL")
    share_with_link: bool = Field(default=False, alias="SHARE_WITH_LINK")

    # Scheduling
    schedule_time: time = Field(default=time(6, 0), alias="SCHEDULE_TIME")
    schedule_timezone: str = Field(default="Europe/London", alias="SCHEDULE_TIMEZONE")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
