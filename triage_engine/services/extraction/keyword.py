"""
Deterministic keyword-based fact extractor.

Used when no language model is configured. It only recognizes tokens the
triage table already knows, plus a handful of booking and demographic
patterns.
"""

import re
from typing import Iterable, List, Optional

from ...core.enums import Gender
from ...core.models import (
    BookingRequestUpdate,
    ConversationRecord,
    ExtractedUpdate,
    PatientInfoUpdate,
)
from ...utils.text import contains_token, normalize_token, normalize_tokens
from ..triage import TriagePolicy

DEFAULT_RISK_FACTORS = (
    "diabetes",
    "hypertension",
    "asthma",
    "smoker",
    "heart disease",
    "pregnancy",
    "immunosuppressed",
)

_BOOKING_PHRASES = (
    "book",
    "booking",
    "appointment",
    "schedule",
    "see a doctor",
    "đặt lịch",
)

_DURATION_RE = re.compile(
    r"\b(?:for|since)\s+(?:the\s+)?"
    r"(?:(?:\d+|a few|a couple of|a|an|one|two|three|four|five|few|several|couple of)\s+)?"
    r"(?:minutes?|hours?|days?|weeks?|months?|years?|yesterday|this morning|last night)\b"
)
_AGE_RE = re.compile(r"\b(\d{1,3})\s*(?:years?\s*old|y/?o|tuổi)\b|\baged?\s+(\d{1,3})\b")
_GENDER_RE = re.compile(r"\b(male|female|man|woman|boy|girl)\b")
_NAME_RE = re.compile(r"\bmy name is\s+([^\W\d_][\w'-]*(?:\s+[^\W\d_][\w'-]*)?)", re.UNICODE)
_HOSPITAL_RE = re.compile(r"\bhospital\s+(?:id\s+)?([a-z]*\d[\w-]*)", re.IGNORECASE)
_DOCTOR_RE = re.compile(r"\b(?:doctor|dr\.?)\s+(?:id\s+)?([a-z]*\d[\w-]*)", re.IGNORECASE)
_DEPARTMENT_ID_RE = re.compile(r"\bdepartment\s+id\s+([a-z0-9][\w-]*)", re.IGNORECASE)
_TIME_RE = re.compile(r"\b(\d{4}-\d{2}-\d{2}(?:[ T]\d{1,2}:\d{2})?)\b", re.IGNORECASE)
_CITY_RE = re.compile(r"\bin\s+([a-z][a-z .'-]{1,40}?)\s+(?:city|hospital)\b")


class KeywordFactExtractor:
    """Spot known symptom tokens and booking fields in raw text."""

    def __init__(
        self,
        symptom_tokens: Iterable[str],
        risk_factor_tokens: Iterable[str] = DEFAULT_RISK_FACTORS,
    ):
        # Longest first so "chest pain" wins over "pain"
        self.symptom_tokens = sorted(normalize_tokens(symptom_tokens), key=lambda t: (-len(t), t))
        self.risk_factor_tokens = normalize_tokens(risk_factor_tokens)

    @classmethod
    def from_policy(cls, policy: TriagePolicy, **kwargs) -> "KeywordFactExtractor":
        return cls(policy.known_tokens(), **kwargs)

    async def extract(self, raw_text: str, current: ConversationRecord) -> ExtractedUpdate:
        text = normalize_token(raw_text)
        if not text:
            return ExtractedUpdate()

        symptoms = self._find_tokens(text, self.symptom_tokens)
        risk_factors = [
            t for t in self._find_tokens(text, self.risk_factor_tokens) if t not in symptoms
        ]
        booking = self._booking_request(raw_text)

        return ExtractedUpdate(
            patient_info=self._patient_info(raw_text, text),
            symptoms=symptoms or None,
            risk_factors=risk_factors or None,
            duration=self._duration(text),
            booking_intent=True if any(contains_token(text, p) for p in _BOOKING_PHRASES) else None,
            booking_request=booking,
            booking_location=self._city(text),
        )

    def _find_tokens(self, text: str, tokens: List[str]) -> List[str]:
        found: List[str] = []
        for token in tokens:
            if any(token in longer for longer in found):
                continue
            if contains_token(text, token):
                found.append(token)
        return found

    def _duration(self, text: str) -> Optional[str]:
        match = _DURATION_RE.search(text)
        return match.group(0) if match else None

    def _patient_info(self, raw_text: str, text: str) -> Optional[PatientInfoUpdate]:
        age = None
        match = _AGE_RE.search(text)
        if match:
            age = int(match.group(1) or match.group(2))
            if age > 150:
                age = None

        gender = None
        match = _GENDER_RE.search(text)
        if match:
            gender = Gender.from_string(match.group(1))
            if gender is Gender.UNKNOWN:
                gender = None

        name = None
        match = _NAME_RE.search(raw_text.strip().lower())
        if match:
            # Recover original casing from the raw text
            start, end = match.span(1)
            name = raw_text.strip()[start:end]

        if age is None and gender is None and name is None:
            return None
        return PatientInfoUpdate(name=name, age=age, gender=gender)

    def _booking_request(self, raw_text: str) -> Optional[BookingRequestUpdate]:
        fields = {}
        for key, pattern in (
            ("hospital_id", _HOSPITAL_RE),
            ("doctor_id", _DOCTOR_RE),
            ("department_id", _DEPARTMENT_ID_RE),
            ("preferred_time", _TIME_RE),
        ):
            match = pattern.search(raw_text)
            if match:
                fields[key] = match.group(1)
        if not fields:
            return None
        return BookingRequestUpdate(**fields)

    def _city(self, text: str) -> Optional[str]:
        match = _CITY_RE.search(text)
        return match.group(1).strip() if match else None
