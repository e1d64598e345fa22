"""
Rule-based triage policy.

Maps a symptom / risk-factor set to a department and a risk level. The
policy is pure: the same inputs always produce the same assessment.
"""

from typing import Iterable, List, Optional, Tuple

from ...config.policy import DepartmentRule, TriagePolicyConfig
from ...core.enums import RiskLevel
from ...core.models import PatientInfo, TriageAssessment
from ...utils.text import contains_token, normalize_tokens


def _matches(symptom: str, token: str) -> bool:
    return symptom == token or contains_token(symptom, token)


def _first_match(values: Iterable[str], tokens: Iterable[str]) -> Optional[str]:
    for value in values:
        for token in tokens:
            if _matches(value, token):
                return token
    return None


class TriagePolicy:
    """Assess symptoms against a configured rule table."""

    def __init__(self, config: TriagePolicyConfig):
        self.config = config

    @property
    def confidence_threshold(self) -> float:
        return self.config.confidence_threshold

    def is_confident(self, assessment: TriageAssessment) -> bool:
        """Return True if ``assessment`` is strong enough to lock triage."""
        return (
            assessment.risk_level is RiskLevel.EMERGENCY
            or assessment.confidence >= self.config.confidence_threshold
        )

    def has_emergency(self, symptoms: Iterable[str]) -> bool:
        return _first_match(normalize_tokens(symptoms), self.config.emergency_tokens) is not None

    def known_tokens(self) -> List[str]:
        """All symptom tokens the table knows about, most specific first."""
        tokens = set(self.config.emergency_tokens) | set(self.config.urgent_tokens)
        for rule in self._all_rules():
            tokens.update(rule.tokens)
        return sorted(tokens, key=lambda t: (-len(t), t))

    def assess(
        self,
        symptoms: Iterable[str],
        risk_factors: Iterable[str],
        patient_info: Optional[PatientInfo] = None,
    ) -> TriageAssessment:
        """Map symptoms and risk factors to a department and risk level."""
        symptoms = normalize_tokens(symptoms)
        risk_factors = normalize_tokens(risk_factors)

        # Emergency tokens short-circuit everything else
        emergency_token = _first_match(symptoms, self.config.emergency_tokens)
        if emergency_token is not None:
            rule = self.config.emergency_department
            return TriageAssessment(
                department=rule.name,
                department_id=rule.department_id,
                risk_level=RiskLevel.EMERGENCY,
                reason=f"Emergency symptom detected: {emergency_token}",
                confidence=1.0,
            )

        urgent_token = _first_match(symptoms + risk_factors, self.config.urgent_tokens)
        risk_level = RiskLevel.URGENT if urgent_token is not None else RiskLevel.NORMAL

        pediatric = self._pediatric_rule(patient_info)
        if pediatric is not None and symptoms:
            return TriageAssessment(
                department=pediatric.name,
                department_id=pediatric.department_id,
                risk_level=risk_level,
                reason=(
                    f"Patient is younger than {self.config.pediatric_age_limit}, "
                    f"routed to {pediatric.name}"
                ),
                confidence=1.0,
            )

        rule, matched = self._best_department(symptoms)
        if rule is None:
            fallback = self.config.fallback_department
            return TriageAssessment(
                department=fallback.name,
                department_id=fallback.department_id,
                risk_level=risk_level,
                reason=f"No department rule matched, defaulting to {fallback.name}",
                confidence=0.0,
            )

        reason = f"Matched {', '.join(matched)} to {rule.name}"
        if urgent_token is not None:
            reason += f"; urgent sign: {urgent_token}"
        return TriageAssessment(
            department=rule.name,
            department_id=rule.department_id,
            risk_level=risk_level,
            reason=reason,
            confidence=round(len(matched) / len(symptoms), 4),
        )

    def _best_department(
        self, symptoms: List[str]
    ) -> Tuple[Optional[DepartmentRule], List[str]]:
        best: Optional[DepartmentRule] = None
        best_matched: List[str] = []
        # Strict ">" keeps the earlier (higher priority) rule on ties
        for rule in self.config.departments:
            matched = [s for s in symptoms if any(_matches(s, t) for t in rule.tokens)]
            if len(matched) > len(best_matched):
                best, best_matched = rule, matched
        return best, best_matched

    def _pediatric_rule(self, patient_info: Optional[PatientInfo]) -> Optional[DepartmentRule]:
        limit = self.config.pediatric_age_limit
        if patient_info is None or patient_info.age is None or limit is None:
            return None
        if patient_info.age < limit:
            return self.config.pediatric_department
        return None

    def _all_rules(self) -> List[DepartmentRule]:
        rules = list(self.config.departments)
        rules.append(self.config.emergency_department)
        rules.append(self.config.fallback_department)
        if self.config.pediatric_department is not None:
            rules.append(self.config.pediatric_department)
        return rules
