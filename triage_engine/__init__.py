"""
Triage conversation engine for the hospital booking assistant.
"""

__version__ = "1.0.0"
