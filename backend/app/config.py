"""Typed settings configuration - single source of truth."""

from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = "sqlite+aiosqlite:///./trips.db"

    # Allocation
    default_nights: int = 2
    default_home_base: str = "Home"

    # Activity edit surface
    undo_ttl_seconds: float = 5.0
    slot_start_hour: int = 9
    slot_spacing_minutes: int = 120
    slot_latest_hour: int = 22

    # Enrichment (activities)
    openai_api_key: SecretStr | None = None
    openai_model: str = "gpt-4o-mini"
    enrichment_max_activities: int = 12

    # Enrichment (images)
    image_search_url: str = "https://api.unsplash.com/search/photos"
    image_search_key: str = ""

    # Timeouts (seconds)
    http_timeout_seconds: float = 4.0


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
