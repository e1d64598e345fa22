"""
Triage and booking decision models.
"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from ..enums import RiskLevel


class TriageAssessment(BaseModel):
    """Outcome of a triage policy evaluation."""

    model_config = ConfigDict(extra="forbid")

    department: str
    department_id: Optional[str] = None
    risk_level: RiskLevel = RiskLevel.NORMAL
    reason: str
    confidence: float = Field(ge=0.0, le=1.0)


class BookingResolution(BaseModel):
    """Whether a booking request is complete enough to hand off."""

    model_config = ConfigDict(extra="forbid")

    ready: bool
    missing_fields: List[str] = Field(default_factory=list)
