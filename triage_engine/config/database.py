"""
Session store configuration.
"""

from pydantic import BaseModel

from .settings import Settings


class DatabaseConfig(BaseModel):
    """Session store configuration settings."""

    state_db_path: str = "triage_state.db"
    connection_timeout: float = 5.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "DatabaseConfig":
        return cls(
            state_db_path=settings.state_db_path,
            connection_timeout=settings.store_timeout,
        )
