"""
Text normalization helpers for symptom and risk-factor tokens.
"""

import re
import unicodedata
from typing import Iterable, List


def normalize_token(text: str) -> str:
    """Normalize a token for matching: NFC, trimmed, lowercase, single spaces."""
    if not isinstance(text, str):
        text = str(text or "")

    text = unicodedata.normalize("NFC", text).strip()
    text = text.strip(" .,;:!?\"'")
    return re.sub(r"\s+", " ", text).lower()


def normalize_tokens(values: Iterable[str]) -> List[str]:
    """Normalize and deduplicate tokens, keeping first-seen order."""
    seen: List[str] = []
    for value in values or []:
        token = normalize_token(value)
        if token and token not in seen:
            seen.append(token)
    return seen


def contains_token(text: str, token: str) -> bool:
    """Check if ``token`` appears in ``text`` on word boundaries."""
    if not text or not token:
        return False
    pattern = r"(?<!\w)" + re.escape(token) + r"(?!\w)"
    return re.search(pattern, normalize_token(text)) is not None
