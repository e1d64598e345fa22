"""
Session-related exceptions.
"""

from typing import Optional


class TriageEngineError(Exception):
    """Base exception for triage engine errors."""
    pass


class InvalidSessionState(TriageEngineError):
    """Exception raised when an event arrives for a terminal or unknown phase."""

    def __init__(self, session_id: str, phase: Optional[str] = None):
        self.session_id = session_id
        self.phase = phase
        if phase:
            message = f"Session '{session_id}' cannot accept events in phase {phase}"
        else:
            message = f"Session '{session_id}' is in an unknown phase"
        super().__init__(message)


class ConcurrentUpdateConflict(TriageEngineError):
    """Exception raised when a conditional write keeps losing the race."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Concurrent update conflict for session '{session_id}'")
