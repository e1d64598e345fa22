"""
HTTP API for the triage engine.
"""

from .app import create_app

__all__ = ["create_app"]
