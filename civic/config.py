"""
Configuration and settings for the civic backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    port: int = Field(default=3000)
    api_prefix: str = Field(default="/api")
    # Advertised in the generated API docs.
    api_base_url: str = Field(default="http://localhost:3000")

    # Database (Postgres expected)
    database_url: Optional[str] = Field(default=None)

    # Bearer tokens
    jwt_secret: str = Field(default="change-me")
    jwt_expires_hours: int = Field(default=24 * 7, ge=1)

    # X (Twitter) recent search
    x_api_key: Optional[str] = Field(default=None)
    x_api_url: str = Field(default="https://api.twitter.com/2/tweets/search/recent")
    x_search_query: str = Field(default="#AbiaState -is:retweet")
    x_max_results: int = Field(default=10, ge=10, le=100)
    x_max_pages: int = Field(default=1, ge=1)
    x_retention_limit: int = Field(default=1000, ge=1)

    # Background sync
    x_sync_enabled: bool = Field(default=False)
    x_sync_interval_seconds: float = Field(default=600, gt=0)

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
