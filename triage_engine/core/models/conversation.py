"""
Conversation record models.
"""

from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from ..enums import BookingStatus, Gender, Phase, RiskLevel


def now_iso() -> str:
    """Get current UTC datetime in ISO format."""
    return datetime.now(timezone.utc).isoformat()


def _coerce_enums(obj):
    """Recursively convert Enums to raw values for JSON serialization."""
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, dict):
        return {k: _coerce_enums(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_coerce_enums(v) for v in obj]
    return obj


@dataclass
class PatientInfo:
    """Who the patient is; each field stays None until known."""

    name: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[Gender] = None


# Wire names used in directives for missing booking fields
BOOKING_FIELD_NAMES: Dict[str, str] = {
    "hospital_id": "hospitalId",
    "department_id": "departmentId",
    "doctor_id": "doctorId",
    "preferred_time": "preferredTime",
}


@dataclass
class BookingRequest:
    """Booking details, filled incrementally as the user provides them."""

    hospital_id: Optional[str] = None
    department_id: Optional[str] = None
    doctor_id: Optional[str] = None
    preferred_time: Optional[str] = None
    status: BookingStatus = BookingStatus.PENDING


@dataclass
class ConversationRecord:
    """Persisted structured state of one triage conversation."""

    session_id: str
    user_id: Optional[str] = None
    summary: str = ""

    # Flow
    phase: Phase = Phase.GREETING
    phase_exchanges: int = 0  # messages seen in the current collecting phase

    # What we know about the patient
    patient_info: PatientInfo = field(default_factory=PatientInfo)
    symptoms: List[str] = field(default_factory=list)
    duration: Optional[str] = None
    risk_factors: List[str] = field(default_factory=list)

    # Triage outcome
    department: Optional[str] = None
    department_id: Optional[str] = None
    triage_locked: bool = False
    triage_reason: Optional[str] = None
    risk_level: RiskLevel = RiskLevel.NORMAL
    retriage_count: int = 0
    reassessment_baseline: Optional[int] = None  # symptom count when triage was released

    # Booking
    booking_intent: bool = False
    booking_on_hold: bool = False  # user declined the confirmation prompt
    booking_request: BookingRequest = field(default_factory=BookingRequest)
    booking_location: Optional[str] = None
    booking_date: Optional[str] = None

    # Bookkeeping
    created_at: str = field(default_factory=now_iso)
    last_updated_at: str = field(default_factory=now_iso)
    version: int = 0

    def locked_fields(self) -> Dict[str, Any]:
        """The part of the record frozen by a triage lock."""
        return {
            "triage_locked": self.triage_locked,
            "department": self.department,
            "risk_level": self.risk_level,
        }

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready representation with enums reduced to raw values."""
        return _coerce_enums(asdict(self))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConversationRecord":
        """Rebuild a record from :meth:`to_dict` output."""
        data = dict(data)
        known = {f.name for f in fields(cls)}
        data = {k: v for k, v in data.items() if k in known}

        patient = dict(data.get("patient_info") or {})
        if patient.get("gender"):
            patient["gender"] = Gender(patient["gender"])
        data["patient_info"] = PatientInfo(**patient)

        booking = dict(data.get("booking_request") or {})
        booking["status"] = BookingStatus(booking.get("status") or BookingStatus.PENDING)
        data["booking_request"] = BookingRequest(**booking)

        try:
            data["phase"] = Phase(data.get("phase") or Phase.GREETING)
        except ValueError:
            # unknown phases stay raw; the state machine rejects them
            pass
        data["risk_level"] = RiskLevel(data.get("risk_level") or RiskLevel.NORMAL)
        data["symptoms"] = list(data.get("symptoms") or [])
        data["risk_factors"] = list(data.get("risk_factors") or [])
        return cls(**data)
