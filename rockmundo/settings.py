"""
Runtime settings using Pydantic Settings.

Game-balance numbers live in rockmundo.config; this module only covers
deployment knobs (backend location, credentials, logging).
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from ROCKMUNDO_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="ROCKMUNDO_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # "memory" keeps everything in-process, "rest" talks to the hosted backend
    store: str = "memory"

    # Hosted backend
    backend_url: str = "http://localhost:54321"
    service_role_key: Optional[str] = None
    request_timeout: float = 10.0

    log_level: str = "INFO"

    # Fixed seed for reproducible rolls; None draws fresh randomness
    rng_seed: Optional[int] = None


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
