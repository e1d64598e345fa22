"""
Core data models for the triage engine.
"""

from .conversation import (
    BOOKING_FIELD_NAMES,
    BookingRequest,
    ConversationRecord,
    PatientInfo,
)
from .updates import BookingRequestUpdate, ExtractedUpdate, PatientInfoUpdate
from .directive import Directive
from .triage import BookingResolution, TriageAssessment

__all__ = [
    "BOOKING_FIELD_NAMES",
    "BookingRequest",
    "ConversationRecord",
    "PatientInfo",
    "BookingRequestUpdate",
    "ExtractedUpdate",
    "PatientInfoUpdate",
    "Directive",
    "BookingResolution",
    "TriageAssessment",
]
