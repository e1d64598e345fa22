"""
Triage policy module.
"""

from .policy import TriagePolicy

__all__ = ["TriagePolicy"]
