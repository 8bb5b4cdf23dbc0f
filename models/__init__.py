"""
Models package for search and answer value objects.
"""

from .search_types import (
    AnswerValidation,
    CachedEntry,
    DocumentContent,
    QueryIntent,
    QueryType,
    SearchHit,
    SearchResult,
    SearchStep,
    StepName,
    SynthesisResult,
)

__all__ = [
    "AnswerValidation",
    "CachedEntry",
    "DocumentContent",
    "QueryIntent",
    "QueryType",
    "SearchHit",
    "SearchResult",
    "SearchStep",
    "StepName",
    "SynthesisResult",
]
