"""
Session store exceptions.
"""

from .session import TriageEngineError


class StoreUnavailable(TriageEngineError):
    """Exception raised when the session store cannot be reached."""
    pass
