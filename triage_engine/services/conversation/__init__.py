"""
Conversation flow module.
"""

from .state_machine import ConversationStateMachine
from .engine import TriageEngine, build_engine

__all__ = [
    "ConversationStateMachine",
    "TriageEngine",
    "build_engine",
]
