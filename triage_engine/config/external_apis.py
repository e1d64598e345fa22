"""
External API configuration.
"""

from typing import Optional
from pydantic import BaseModel

from .settings import Settings


class ExternalAPIConfig(BaseModel):
    """External collaborator configuration settings."""

    # OpenAI-backed fact extractor
    openai_api_key: Optional[str] = None
    extractor_model: str = "gpt-4o-mini"
    extractor_timeout: float = 8.0

    # Appointment booking API
    booking_api_base: Optional[str] = None
    booking_api_token: Optional[str] = None
    booking_api_timeout: float = 10.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "ExternalAPIConfig":
        return cls(
            openai_api_key=settings.openai_api_key,
            extractor_model=settings.extractor_model,
            extractor_timeout=settings.extractor_timeout,
            booking_api_base=settings.booking_api_base,
            booking_api_token=settings.booking_api_token,
            booking_api_timeout=settings.booking_api_timeout,
        )

    def get_appointments_url(self) -> Optional[str]:
        """Get the appointment creation URL if the booking API is configured."""
        if not self.booking_api_base:
            return None
        return f"{self.booking_api_base.rstrip('/')}/appointments"

    def is_booking_api_configured(self) -> bool:
        """Check if the booking API is properly configured."""
        return bool(self.booking_api_base)

    def is_openai_configured(self) -> bool:
        """Check if OpenAI API is properly configured."""
        return bool(self.openai_api_key)
