"""Application configuration using pydantic-settings."""

from functools import lru_cache
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "AIS Feed Ingest"
    environment: Literal["development", "testing", "staging", "production"] = "development"
    log_level: str = "INFO"

    # AISStream upstream
    aisstream_api_key: str = ""
    aisstream_url: str = "wss://stream.aisstream.io/v0/stream"
    connect_timeout_seconds: float = 10.0
    reconnect_max_attempts: int = 5
    reconnect_base_delay_ms: int = 1000

    # Regional rotation
    region_duration_ms: int = 4 * 60 * 60 * 1000
    auto_rotate: bool = True
    reset_dwell_on_focus: bool = True
    regions_file: Optional[str] = None

    # Operational status log
    status_log_interval_seconds: float = 300.0


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
