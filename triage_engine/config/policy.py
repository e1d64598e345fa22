"""
Triage policy configuration.

The symptom-to-department table and the lock threshold are deployment
inputs: they are loaded from a JSON file rather than compiled into the
engine.
"""

import json
from pathlib import Path
from typing import List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..utils.text import normalize_token


class DepartmentRule(BaseModel):
    """Symptom tokens that point to one department."""

    model_config = ConfigDict(extra="forbid")

    name: str
    department_id: Optional[str] = None
    tokens: List[str] = Field(default_factory=list)

    @field_validator("tokens")
    @classmethod
    def _normalize_tokens(cls, value: List[str]) -> List[str]:
        return [t for t in (normalize_token(v) for v in value) if t]


class TriagePolicyConfig(BaseModel):
    """Rule table and thresholds used by :class:`TriagePolicy`."""

    model_config = ConfigDict(extra="forbid")

    confidence_threshold: float = Field(ge=0.0, le=1.0)
    emergency_tokens: List[str] = Field(default_factory=list)
    urgent_tokens: List[str] = Field(default_factory=list)

    # Order is the tie-break priority
    departments: List[DepartmentRule] = Field(default_factory=list)

    emergency_department: DepartmentRule
    fallback_department: DepartmentRule

    pediatric_department: Optional[DepartmentRule] = None
    pediatric_age_limit: Optional[int] = Field(default=None, ge=0)

    @field_validator("emergency_tokens", "urgent_tokens")
    @classmethod
    def _normalize_tokens(cls, value: List[str]) -> List[str]:
        return [t for t in (normalize_token(v) for v in value) if t]

    @model_validator(mode="after")
    def _check_departments(self) -> "TriagePolicyConfig":
        names = [rule.name for rule in self.departments]
        if len(names) != len(set(names)):
            raise ValueError("Department names must be unique")
        if (self.pediatric_department is None) != (self.pediatric_age_limit is None):
            raise ValueError(
                "pediatric_department and pediatric_age_limit must be set together"
            )
        return self

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "TriagePolicyConfig":
        """Load the policy table from a JSON file."""
        with Path(path).open("r", encoding="utf-8") as f:
            return cls.model_validate(json.load(f))
