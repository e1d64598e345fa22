"""
Session store module.
"""

from .base import SessionStore
from .sqlite import SQLiteSessionStore

__all__ = ["SessionStore", "SQLiteSessionStore"]
