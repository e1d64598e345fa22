"""
Application settings and configuration.
"""

from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=False, extra="ignore"
    )

    # Application
    app_name: str = "Triage Engine"
    app_version: str = "1.0.0"
    debug: bool = False

    # Session store
    state_db_path: str = "triage_state.db"
    store_timeout: float = Field(default=5.0, gt=0)

    # Triage policy
    triage_policy_path: str = "config/triage_policy.sample.json"
    collecting_exchange_limit: int = Field(default=3, ge=1)

    # Fact extractor
    openai_api_key: Optional[str] = None
    extractor_model: str = "gpt-4o-mini"
    extractor_timeout: float = Field(default=8.0, gt=0)

    # Booking handoff
    booking_api_base: Optional[str] = None
    booking_api_token: Optional[str] = None
    booking_api_timeout: float = 10.0

    # Logging
    log_level: str = "INFO"
    event_log_path: str = "triage_event_log.jsonl"


def get_settings() -> Settings:
    """Get application settings instance."""
    return Settings()
