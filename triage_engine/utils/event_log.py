"""
Structured JSONL event log.

Every state-machine decision (merges, phase transitions, triage locks and
releases, write conflicts) is appended as one JSON object per line. Events
written during one engine call share a turn id held in a context variable,
so concurrent sessions never mix their turn ids.
"""

import contextvars
import json
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

# Path to the log file; can be overridden via EVENT_LOG_PATH env var or set_log_path.
_LOG_PATH = Path(os.environ.get("EVENT_LOG_PATH", "triage_event_log.jsonl"))

# Keys every entry carries; payloads may not override them
_RESERVED_KEYS = frozenset({"ts", "turn_id", "event"})

_current_turn_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "triage_turn_id", default=None
)


def set_log_path(path: Union[str, Path]) -> None:
    """Override the log file path (useful for tests)."""
    global _LOG_PATH
    _LOG_PATH = Path(path)


def get_log_path() -> Path:
    return _LOG_PATH


def set_turn_id(turn_id: Optional[str]) -> None:
    """Set the turn id attached to subsequent events in this context."""
    _current_turn_id.set(turn_id)


def new_turn_id() -> str:
    """Start a new turn in the current context and return its id."""
    turn_id = uuid.uuid4().hex
    _current_turn_id.set(turn_id)
    return turn_id


def log_event(event: str, data: Dict[str, Any], *, turn_id: Optional[str] = None) -> None:
    """Append ``event`` with its ``data`` payload as one JSON line.

    Enum members in ``data`` are written as their raw values. ``turn_id``
    defaults to the one set for the current context. Raises ``ValueError``
    if ``data`` uses one of the entry keys (``ts``, ``turn_id``, ``event``).
    """
    clashing = _RESERVED_KEYS.intersection(data)
    if clashing:
        raise ValueError(f"event payload uses reserved keys: {sorted(clashing)}")
    entry = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "turn_id": turn_id if turn_id is not None else _current_turn_id.get(),
        "event": event,
        **data,
    }
    _LOG_PATH.parent.mkdir(parents=True, exist_ok=True)
    with _LOG_PATH.open("a", encoding="utf-8") as f:
        f.write(json.dumps(entry, ensure_ascii=False, default=_raw_value))
        f.write("\n")


def read_events(path: Optional[Union[str, Path]] = None) -> List[Dict[str, Any]]:
    """Load all events from ``path`` (default: the current log file)."""
    log_path = Path(path) if path is not None else _LOG_PATH
    if not log_path.exists():
        return []
    with log_path.open("r", encoding="utf-8") as f:
        return [json.loads(line) for line in f if line.strip()]


def _raw_value(obj: Any) -> Any:
    value = getattr(obj, "value", None)
    if value is not None:
        return value
    return str(obj)
