"""
Custom exceptions for the triage engine.
"""

from .session import (
    TriageEngineError,
    InvalidSessionState,
    ConcurrentUpdateConflict,
)
from .store import StoreUnavailable
from .external import ExternalAPIError, ExtractorTimeout

__all__ = [
    "TriageEngineError",
    "InvalidSessionState",
    "ConcurrentUpdateConflict",
    "StoreUnavailable",
    "ExternalAPIError",
    "ExtractorTimeout",
]
