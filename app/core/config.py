from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration, read from the environment or a local .env file."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    APP_NAME: str = "farm-market-messaging"
    LOG_LEVEL: str = "INFO"

    # --- MongoDB ---
    MONGODB_URI: str = "mongodb://localhost:27017"
    MONGODB_DB: str = "onlyfarmers"

    # --- Redis (optional realtime fan-out) ---
    REDIS_URL: Optional[str] = None

    # --- Messaging ---
    MESSAGE_MAX_LENGTH: int = 2000
    USER_CACHE_TTL_SECONDS: int = 300


@lru_cache
def get_settings() -> Settings:
    return Settings()
