"""
Enums for the triage engine.
"""

from .conversation import Phase, PHASE_TRANSITIONS, EventKind, PromptKind
from .triage import RiskLevel, Gender, BookingStatus

__all__ = [
    "Phase",
    "PHASE_TRANSITIONS",
    "EventKind",
    "PromptKind",
    "RiskLevel",
    "Gender",
    "BookingStatus",
]
