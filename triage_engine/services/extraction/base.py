"""
Fact extractor contract.
"""

from typing import Protocol

from ...core.models import ConversationRecord, ExtractedUpdate


class FactExtractor(Protocol):
    """Turn raw user text into a sparse structured update."""

    async def extract(self, raw_text: str, current: ConversationRecord) -> ExtractedUpdate:
        ...
