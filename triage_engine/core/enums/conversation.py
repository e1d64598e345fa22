"""
Conversation-flow enums.
"""

from enum import Enum
from typing import Dict, List


class Phase(str, Enum):
    """Enumeration of the conversation phases."""

    GREETING = "GREETING"
    COLLECTING_SYMPTOMS = "COLLECTING_SYMPTOMS"
    TRIAGE_DEPARTMENT = "TRIAGE_DEPARTMENT"
    BACK_TO_TRIAGE = "BACK_TO_TRIAGE"
    BOOKING_OPTIONS = "BOOKING_OPTIONS"
    CONFIRM_BOOKING = "CONFIRM_BOOKING"
    DONE = "DONE"

    @property
    def is_terminal(self) -> bool:
        return self is Phase.DONE

    @property
    def is_collecting(self) -> bool:
        """Phases in which symptoms are still being gathered."""
        return self in (Phase.COLLECTING_SYMPTOMS, Phase.BACK_TO_TRIAGE)


# Map of allowed transitions in the conversation flow
PHASE_TRANSITIONS: Dict[Phase, List[Phase]] = {
    Phase.GREETING: [Phase.COLLECTING_SYMPTOMS],
    Phase.COLLECTING_SYMPTOMS: [Phase.TRIAGE_DEPARTMENT],
    Phase.TRIAGE_DEPARTMENT: [Phase.BACK_TO_TRIAGE, Phase.BOOKING_OPTIONS],
    Phase.BACK_TO_TRIAGE: [Phase.TRIAGE_DEPARTMENT],
    Phase.BOOKING_OPTIONS: [Phase.CONFIRM_BOOKING],
    Phase.CONFIRM_BOOKING: [Phase.BOOKING_OPTIONS, Phase.DONE],
    Phase.DONE: [],
}


class EventKind(str, Enum):
    """What triggered a call to ``advance``."""

    MESSAGE = "message"
    RESUME = "resume"
    CONFIRM_BOOKING = "confirm_booking"
    CANCEL_BOOKING = "cancel_booking"
    REQUEST_RETRIAGE = "request_retriage"


class PromptKind(str, Enum):
    """What the presentation layer should ask or show next."""

    ASK_SYMPTOMS = "ask_symptoms"
    ASK_DURATION = "ask_duration"
    ASK_MORE_SYMPTOMS = "ask_more_symptoms"
    ASK_BOOKING_INTENT = "ask_booking_intent"
    ASK_BOOKING_DETAILS = "ask_booking_details"
    CONFIRM_BOOKING = "confirm_booking"
    BOOKING_CONFIRMED = "booking_confirmed"
    EMERGENCY_NOTICE = "emergency_notice"
    TRY_AGAIN = "try_again"
