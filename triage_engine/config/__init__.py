"""
Configuration management for the triage engine.
"""

from .settings import Settings, get_settings
from .database import DatabaseConfig
from .external_apis import ExternalAPIConfig
from .policy import DepartmentRule, TriagePolicyConfig

__all__ = [
    "Settings",
    "get_settings",
    "DatabaseConfig",
    "ExternalAPIConfig",
    "DepartmentRule",
    "TriagePolicyConfig",
]
