"""
Outbound directive model consumed by the presentation layer.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

from ..enums import Phase, PromptKind, RiskLevel


class Directive(BaseModel):
    """Structured instruction describing what to ask or show next."""

    model_config = ConfigDict(extra="forbid")

    phase: Optional[Phase] = None
    prompt_kind: PromptKind
    missing_fields: List[str] = Field(default_factory=list)
    department: Optional[str] = None
    risk_level: Optional[RiskLevel] = None
    prompt_params: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def try_again(cls, phase: Optional[Phase] = None) -> "Directive":
        """Directive returned when a request failed and should be retried."""
        return cls(phase=phase, prompt_kind=PromptKind.TRY_AGAIN)
