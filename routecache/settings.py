from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Hosting providers define upper-case names (``STRAVA_CLIENT_ID``), so
    # matching is case-insensitive.
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    api_key: str
    strava_client_id: str
    strava_client_secret: str
    strava_verify_token: str
    upstash_redis_rest_url: str
    upstash_redis_rest_token: str
    strava_webhook_url: Optional[str] = None
    strava_api_base_url: str = "https://www.strava.com/api/v3"
    strava_token_url: str = "https://www.strava.com/api/v3/oauth/token"
    strava_page_size: int = 200
    strava_max_attempts: int = 5
    log_level: str = "INFO"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
