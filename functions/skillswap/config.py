"""
Configuration and settings for the SkillSwap API.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    api_prefix: str = Field(default="/api")

    # Database (Postgres expected; any SQLAlchemy URL works)
    database_url: Optional[str] = Field(default=None, alias="DATABASE_URL")

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False, alias="SKILLSWAP_USE_IN_MEMORY_BACKENDS"
    )
    seed_demo_data: bool = Field(default=True, alias="SKILLSWAP_SEED_DEMO_DATA")

    # Sessions
    session_secret: Optional[str] = Field(default=None, alias="SESSION_SECRET")
    session_cookie: str = Field(default="skillswap_session", alias="SESSION_COOKIE")
    session_max_age: int = Field(default=24 * 60 * 60, alias="SESSION_MAX_AGE")
    session_https_only: bool = Field(default=False, alias="SESSION_HTTPS_ONLY")

    # Observability
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
