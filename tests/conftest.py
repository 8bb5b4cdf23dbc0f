import os

# Keep test runs from writing log files; must be set before utils.logger is imported.
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("LOG_TO_CONSOLE", "false")

import asyncio
from typing import Any

import pytest

from api.search_client import SearchIndexClient
from orchestrator.answer_synthesizer import AnswerProvider, AnswerSynthesizer
from orchestrator.cancellation import SessionRegistry
from orchestrator.content_extractor import ContentExtractor
from orchestrator.intent_analyzer import KeywordProvider, QueryIntentAnalyzer
from orchestrator.relevance_ranker import RelevanceRanker
from orchestrator.response_cache import ResponseCache
from orchestrator.search_fanout import SearchFanOut
from orchestrator.search_orchestrator import SearchOrchestrator


def make_record(
    url: str,
    *,
    lvl0: str | None = "Docs",
    lvl1: str | None = None,
    lvl2: str | None = None,
    content: str | None = None,
    highlighted: str | None = None,
    snippet: str | None = None,
    doc_type: str | None = None,
) -> dict[str, Any]:
    """DocSearch-shaped index record."""
    record: dict[str, Any] = {
        "url": url,
        "hierarchy": {
            "lvl0": lvl0,
            "lvl1": lvl1,
            "lvl2": lvl2,
            "lvl3": None,
            "lvl4": None,
            "lvl5": None,
        },
        "content": content,
    }
    if highlighted is not None:
        record["_highlightResult"] = {"content": {"value": highlighted}}
    if snippet is not None:
        record["_snippetResult"] = {"content": {"value": snippet}}
    if doc_type is not None:
        record["type"] = doc_type
    return record


class FakeSearchClient(SearchIndexClient):
    """Returns canned hits per query and records every call."""

    def __init__(self, results: dict[str, list[dict]] | None = None, default=None, errors=None):
        self.results = results or {}
        self.default = default if default is not None else []
        self.errors = errors or {}
        self.calls: list[tuple[str, str, dict]] = []
        self.delay_s = 0.0

    async def search(self, query: str, index: str, params: dict[str, Any]) -> dict[str, Any]:
        self.calls.append((query, index, params))
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        if query in self.errors:
            raise self.errors[query]
        return {"hits": self.results.get(query, self.default)}


class FakeKeywordProvider(KeywordProvider):
    def __init__(self, reply: Any = None, error: Exception | None = None):
        self.reply = reply
        self.error = error
        self.calls: list[tuple[str, int]] = []

    async def fetch_keywords(self, query: str, max_keywords: int) -> Any:
        self.calls.append((query, max_keywords))
        if self.error is not None:
            raise self.error
        return self.reply


class FakeAnswerProvider(AnswerProvider):
    def __init__(self, answer: str = "Run `npm install` as described in [Install](https://docs.example.com/install).", payload=None, error=None):
        self.answer = answer
        self.payload = payload
        self.error = error
        self.calls: list[tuple[str, list]] = []

    async def generate(self, query, documents):
        self.calls.append((query, list(documents)))
        if self.error is not None:
            raise self.error
        if self.payload is not None:
            return self.payload
        return {"answer": self.answer}


class FakeClock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def build_orchestrator(
    *,
    keywords: Any = None,
    keyword_error: Exception | None = None,
    answer_provider: AnswerProvider | None = None,
    cache: ResponseCache | None = None,
    registry: SessionRegistry | None = None,
    on_progress=None,
    enable_caching: bool = True,
) -> SearchOrchestrator:
    return SearchOrchestrator(
        analyzer=QueryIntentAnalyzer(FakeKeywordProvider(keywords, keyword_error)),
        fanout=SearchFanOut(5),
        extractor=ContentExtractor(),
        ranker=RelevanceRanker(),
        synthesizer=AnswerSynthesizer(answer_provider or FakeAnswerProvider()),
        cache=cache if cache is not None else ResponseCache(),
        session_registry=registry,
        on_progress=on_progress,
        enable_caching=enable_caching,
        enable_enhancement=False,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def mock_env(monkeypatch):
    """Fixture to mock environment variables for testing."""
    env_vars = {
        "DOCANSWER_BACKEND_URL": "https://backend.example.com",
        "SYNTHESIS_PROVIDER": "backend",
        "ALGOLIA_APP_ID": "APPID",
        "ALGOLIA_API_KEY": "search-key",
        "ALGOLIA_INDEX_NAME": "docs",
        "API_KEYS": "dev-key-1",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars
