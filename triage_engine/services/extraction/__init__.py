"""
Fact extraction module.
"""

from .base import FactExtractor
from .keyword import KeywordFactExtractor
from .agent import AgentFactExtractor

__all__ = [
    "FactExtractor",
    "KeywordFactExtractor",
    "AgentFactExtractor",
]
