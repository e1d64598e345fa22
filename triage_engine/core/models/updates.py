"""
Models for candidate updates proposed by a fact extractor.
"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from ..enums import Gender


class PatientInfoUpdate(BaseModel):
    """Partial patient info; only non-null fields are applied."""

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = None
    age: Optional[int] = Field(default=None, ge=0, le=150)
    gender: Optional[Gender] = None


class BookingRequestUpdate(BaseModel):
    """Partial booking request; merged key-by-key."""

    model_config = ConfigDict(extra="forbid")

    hospital_id: Optional[str] = None
    department_id: Optional[str] = None
    doctor_id: Optional[str] = None
    preferred_time: Optional[str] = None


class ExtractedUpdate(BaseModel):
    """Sparse update extracted from one user message."""

    model_config = ConfigDict(extra="forbid")

    patient_info: Optional[PatientInfoUpdate] = None
    symptoms: Optional[List[str]] = None
    risk_factors: Optional[List[str]] = None
    duration: Optional[str] = None

    booking_intent: Optional[bool] = None
    booking_request: Optional[BookingRequestUpdate] = None
    booking_location: Optional[str] = None
    booking_date: Optional[str] = None

    summary: Optional[str] = None

    def is_empty(self) -> bool:
        """Check if the update carries no information at all."""
        return not any(self.model_dump(exclude_none=True).values())
