"""
QueryIntentAnalyzer - turns one question into search-query variants.

Fails soft: any provider error or malformed reply yields a deterministic
fallback built from the query itself. Only cancellation escapes.
"""

import asyncio
import re
from abc import ABC, abstractmethod
from typing import Any

from api.backend_client import KEYWORDS_ENDPOINT, BackendClient
from api.base_client import BaseCompletionClient
from models.search_types import QueryIntent, QueryType
from orchestrator.cancellation import CancellationToken
from orchestrator.errors import SearchCancelledError
from utils.logger import get_logger
from utils.prompts import KEYWORDS_SYSTEM_PROMPT, build_keywords_prompt, parse_json_array
from utils.query_normalizer import extract_keywords

logger = get_logger(__name__)

_TROUBLESHOOTING_CUES = [
    "error", "errors", "fix", "fails", "failed", "failing", "not working", "doesn't work",
    "does not work", "broken", "issue", "problem", "exception", "crash", "debug", "warning",
    "cannot", "can't", "unable to",
]
_API_CUES = [
    "api", "reference", "parameter", "parameters", "params", "method", "methods", "function",
    "signature", "props", "options", "arguments", "return type", "returns", "endpoint", "hook",
]
_HOW_TO_CUES = [
    "how to", "how do i", "how can i", "how do you", "install", "installation", "setup",
    "set up", "configure", "configuration", "tutorial", "guide", "getting started", "steps",
    "integrate", "deploy", "migrate", "add", "create", "enable",
]
_CONCEPT_CUES = [
    "what is", "what are", "why", "difference between", "explain", "overview", "concept",
    "meaning", "versus", "vs", "when should", "when to use",
]


def _contains_phrase(text: str, phrases: list[str]) -> bool:
    for phrase in phrases:
        if re.search(rf"\b{re.escape(phrase)}\b", text, re.I):
            return True
    return False


def classify_query_type(query: str) -> QueryType:
    """Classify a question from phrase cues. Deterministic, no network."""
    text = (query or "").strip()
    if not text:
        return QueryType.GENERAL
    if _contains_phrase(text, _TROUBLESHOOTING_CUES):
        return QueryType.TROUBLESHOOTING
    if _contains_phrase(text, _API_CUES):
        return QueryType.API_REFERENCE
    if _contains_phrase(text, _HOW_TO_CUES):
        return QueryType.HOW_TO
    if _contains_phrase(text, _CONCEPT_CUES):
        return QueryType.CONCEPT
    return QueryType.GENERAL


class KeywordProvider(ABC):
    """Remote source of search-query variants."""

    @abstractmethod
    async def fetch_keywords(self, query: str, max_keywords: int) -> Any:
        """Return the decoded reply; it should be a list of strings."""


class BackendKeywordProvider(KeywordProvider):
    def __init__(self, backend: BackendClient, *, system_context: str = "", timeout_s: float = 10.0):
        self.backend = backend
        self.system_context = system_context
        self.timeout_s = timeout_s

    async def fetch_keywords(self, query: str, max_keywords: int) -> Any:
        payload = {"query": query, "maxKeywords": max_keywords}
        if self.system_context:
            payload["systemContext"] = self.system_context
        data = await self.backend.post(
            KEYWORDS_ENDPOINT, payload, action="keywords", timeout_s=self.timeout_s
        )
        return data.get("keywords")


class OpenAIKeywordProvider(KeywordProvider):
    def __init__(
        self,
        client: BaseCompletionClient,
        *,
        system_context: str = "",
        timeout_s: float = 10.0,
    ):
        self.client = client
        self.system_context = system_context
        self.timeout_s = timeout_s

    async def fetch_keywords(self, query: str, max_keywords: int) -> Any:
        text = await self.client.complete(
            KEYWORDS_SYSTEM_PROMPT,
            build_keywords_prompt(query, max_keywords, self.system_context),
            temperature=0.2,
            max_tokens=200,
            timeout_s=self.timeout_s,
        )
        return parse_json_array(text)


def _clean_variants(raw: Any, max_variants: int) -> list[str]:
    if not isinstance(raw, list):
        return []
    variants = []
    for item in raw:
        if not isinstance(item, str):
            continue
        value = item.strip()
        if value and value not in variants:
            variants.append(value)
    return variants[:max_variants]


class QueryIntentAnalyzer:
    """Produces one immutable QueryIntent per orchestration run."""

    def __init__(
        self,
        provider: KeywordProvider | None,
        max_variants: int = 5,
        *,
        timeout_s: float = 10.0,
        skip_stop_words: bool = False,
    ):
        self.provider = provider
        self.max_variants = max(1, max_variants)
        self.timeout_s = timeout_s
        self.skip_stop_words = skip_stop_words

    @staticmethod
    def fallback(
        query: str, query_type: QueryType | None = None, skip_stop_words: bool = False
    ) -> QueryIntent:
        queries = [query]
        for keyword in extract_keywords(query, limit=2, skip_stop_words=skip_stop_words):
            if keyword not in queries:
                queries.append(keyword)
        return QueryIntent(
            search_queries=tuple(queries),
            query_type=query_type or classify_query_type(query),
            explanation=f'Basic search for "{query}"',
            is_fallback=True,
        )

    async def analyze(
        self,
        query: str,
        max_variants: int | None = None,
        token: CancellationToken | None = None,
    ) -> QueryIntent:
        """
        Turn a query into search-query variants.

        Args:
            query: Raw user question
            max_variants: Upper bound on variants (defaults to the analyzer's setting)
            token: Run cancellation token

        Returns:
            QueryIntent; the fallback intent on any failure

        Raises:
            SearchCancelledError: If the run was cancelled
        """
        limit = max(1, max_variants or self.max_variants)
        query_type = classify_query_type(query)

        if self.provider is None:
            return self.fallback(query, query_type, self.skip_stop_words)

        async def _call():
            return await asyncio.wait_for(
                self.provider.fetch_keywords(query, limit), timeout=self.timeout_s
            )

        try:
            if token is not None:
                raw = await token.guard(_call, "analyze")
            else:
                raw = await _call()
        except SearchCancelledError:
            raise
        except Exception as e:
            logger.warning(
                f"Intent analysis failed, using fallback keywords: {e}",
                extra={"extra_fields": {"error_type": type(e).__name__, "query": query}},
            )
            return self.fallback(query, query_type, self.skip_stop_words)

        variants = _clean_variants(raw, limit)
        if not variants:
            logger.warning(
                "Intent analysis returned no usable search queries, using fallback",
                extra={"extra_fields": {"reply_type": type(raw).__name__, "query": query}},
            )
            return self.fallback(query, query_type, self.skip_stop_words)

        logger.info(
            f"Intent analysis produced {len(variants)} search queries",
            extra={"extra_fields": {"query_type": query_type.value, "variants": variants}},
        )
        return QueryIntent(
            search_queries=tuple(variants),
            query_type=query_type,
            explanation=f"{len(variants)} search queries for a {query_type.value} question",
        )
