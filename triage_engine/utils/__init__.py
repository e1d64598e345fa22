"""
Utility modules for the triage engine.
"""

from .text import normalize_token, normalize_tokens, contains_token
from .logging import get_logger, configure_logging
from .event_log import (
    log_event,
    read_events,
    set_log_path,
    get_log_path,
    set_turn_id,
    new_turn_id,
)

__all__ = [
    "normalize_token",
    "normalize_tokens",
    "contains_token",
    "get_logger",
    "configure_logging",
    "log_event",
    "set_log_path",
    "get_log_path",
    "set_turn_id",
    "new_turn_id",
    "read_events",
]
