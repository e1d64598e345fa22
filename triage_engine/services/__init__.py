"""
Service layer for the triage engine.
"""

from .triage import TriagePolicy
from .booking import BookingIntentResolver, BookingAPIClient
from .store import SessionStore, SQLiteSessionStore
from .extraction import FactExtractor, KeywordFactExtractor, AgentFactExtractor
from .conversation import ConversationStateMachine, TriageEngine, build_engine

__all__ = [
    "TriagePolicy",
    "BookingIntentResolver",
    "BookingAPIClient",
    "SessionStore",
    "SQLiteSessionStore",
    "FactExtractor",
    "KeywordFactExtractor",
    "AgentFactExtractor",
    "ConversationStateMachine",
    "TriageEngine",
    "build_engine",
]
