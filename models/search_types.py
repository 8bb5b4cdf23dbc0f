from dataclasses import dataclass, field
from enum import Enum
from typing import Any

HIERARCHY_LEVELS = ("lvl0", "lvl1", "lvl2", "lvl3", "lvl4", "lvl5")


class QueryType(str, Enum):
    HOW_TO = "how-to"
    CONCEPT = "concept"
    TROUBLESHOOTING = "troubleshooting"
    API_REFERENCE = "api-reference"
    GENERAL = "general"


class StepName(str, Enum):
    ANALYZING = "analyzing"
    SEARCHING = "searching"
    RETRIEVING = "retrieving"
    SYNTHESIZING = "synthesizing"
    COMPLETE = "complete"


@dataclass(frozen=True)
class QueryIntent:
    search_queries: tuple[str, ...]
    query_type: QueryType | None = None
    explanation: str | None = None
    is_fallback: bool = False

    def __post_init__(self):
        if not self.search_queries:
            raise ValueError("QueryIntent requires at least one search query")
        object.__setattr__(self, "search_queries", tuple(self.search_queries))

    def to_dict(self) -> dict[str, Any]:
        return {
            "searchQueries": list(self.search_queries),
            "queryType": self.query_type.value if self.query_type else None,
            "explanation": self.explanation,
            "isFallback": self.is_fallback,
        }


def _highlight_value(node: Any) -> str | None:
    if isinstance(node, dict):
        value = node.get("value")
        return value if isinstance(value, str) else None
    return None


@dataclass(frozen=True)
class SearchHit:
    """Raw record returned by the search index. Read-only input to extraction."""

    url: str
    hierarchy: dict[str, str | None] = field(default_factory=dict)
    content: str | None = None
    highlighted: str | None = None
    snippet: str | None = None
    highlighted_hierarchy: dict[str, str] = field(default_factory=dict)
    ranking: dict[str, Any] = field(default_factory=dict)
    doc_type: str | None = None

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "SearchHit":
        """Parse a DocSearch-style index record."""
        hierarchy_raw = record.get("hierarchy") or {}
        hierarchy = {
            level: hierarchy_raw.get(level) if isinstance(hierarchy_raw.get(level), str) else None
            for level in HIERARCHY_LEVELS
        }

        highlight_result = record.get("_highlightResult") or {}
        snippet_result = record.get("_snippetResult") or {}

        highlighted_hierarchy = {}
        for level, node in (highlight_result.get("hierarchy") or {}).items():
            value = _highlight_value(node)
            if value:
                highlighted_hierarchy[level] = value

        content = record.get("content")
        return cls(
            url=str(record.get("url") or ""),
            hierarchy=hierarchy,
            content=content if isinstance(content, str) else None,
            highlighted=_highlight_value(highlight_result.get("content")),
            snippet=_highlight_value(snippet_result.get("content")),
            highlighted_hierarchy=highlighted_hierarchy,
            ranking=dict(record.get("_rankingInfo") or {}),
            doc_type=record.get("type") if isinstance(record.get("type"), str) else None,
        )

    def levels(self) -> list[tuple[int, str]]:
        """Non-empty hierarchy levels from most general to most specific."""
        return [
            (depth, value)
            for depth, level in enumerate(HIERARCHY_LEVELS)
            if (value := self.hierarchy.get(level))
        ]


@dataclass(frozen=True)
class DocumentContent:
    url: str
    title: str
    content: str
    relevance_score: float = 0.0
    hit: SearchHit | None = field(default=None, repr=False, compare=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "title": self.title,
            "content": self.content,
            "relevanceScore": self.relevance_score,
        }


@dataclass(frozen=True)
class CachedEntry:
    response: Any
    timestamp: float
    query_analysis: Any = None
    documents: tuple[DocumentContent, ...] | None = None


@dataclass(frozen=True)
class SearchStep:
    step: StepName
    message: str
    progress: float
    details: dict[str, Any] | None = None

    def __post_init__(self):
        object.__setattr__(self, "progress", min(100.0, max(0.0, float(self.progress))))


@dataclass(frozen=True)
class AnswerValidation:
    confidence: str | None = None
    is_not_found: bool = False
    has_sources: bool = False
    warnings: tuple[str, ...] = ()

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "AnswerValidation":
        warnings = payload.get("warnings") or []
        return cls(
            confidence=payload.get("confidence"),
            is_not_found=bool(payload.get("isNotFound", False)),
            has_sources=bool(payload.get("hasSources", False)),
            warnings=tuple(str(w) for w in warnings if w),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "confidence": self.confidence,
            "isNotFound": self.is_not_found,
            "hasSources": self.has_sources,
            "warnings": list(self.warnings),
        }


@dataclass(frozen=True)
class SynthesisResult:
    answer: str
    validation: AnswerValidation | None = None
    query_analysis_meta: dict[str, Any] | None = None


@dataclass(frozen=True)
class SearchResult:
    answer: str
    documents: tuple[DocumentContent, ...]
    validation: AnswerValidation | None = None
    query_intent: QueryIntent | None = None
    query_analysis_meta: dict[str, Any] | None = None
    from_cache: bool = False
    run_id: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "answer": self.answer,
            "documents": [doc.to_dict() for doc in self.documents],
            "validation": self.validation.to_dict() if self.validation else None,
            "queryIntent": self.query_intent.to_dict() if self.query_intent else None,
            "queryAnalysis": self.query_analysis_meta,
            "fromCache": self.from_cache,
            "runId": self.run_id,
        }
