"""
Centralized configuration for the PredictX client.

All settings are loaded from environment variables with sensible defaults.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "PredictX Client"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"

    # Backend
    api_base_url: str = Field(
        default="http://localhost:5280/api/v1",
        validation_alias=AliasChoices("API_BASE_URL", "NEXT_PUBLIC_API_BASE_URL"),
    )
    request_timeout: float = 30.0  # seconds

    # Session persistence
    session_storage_prefix: str = "predictx"
    session_file: Path = Path.home() / ".predictx" / "session.json"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
