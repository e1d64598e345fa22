"""
External collaborator exceptions.
"""

from .session import TriageEngineError


class ExternalAPIError(TriageEngineError):
    """Base exception for external API errors."""
    pass


class ExtractorTimeout(ExternalAPIError):
    """Exception raised when the fact extractor does not answer in time."""
    pass
