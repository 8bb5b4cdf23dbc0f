"""
RelevanceRanker - deterministic additive scoring of candidate documents.

Seven independent factors are summed: title, content, URL path, technology
disambiguation, intent, exact/phrase bonuses and index highlight markers.
Weights live in config.ranking.RankingWeights.
"""

import re
from dataclasses import dataclass, replace
from urllib.parse import urlparse

from config.ranking import DEFAULT_WEIGHTS, RankingWeights
from models.search_types import DocumentContent, QueryType, SearchHit
from orchestrator.content_extractor import ContentExtractor
from orchestrator.intent_analyzer import classify_query_type
from utils.logger import get_logger
from utils.query_normalizer import STOP_WORDS, query_words, tokenize

logger = get_logger(__name__)


@dataclass(frozen=True)
class Technology:
    name: str
    pattern: re.Pattern
    competitors: tuple[str, ...] = ()

    def found_in(self, text: str) -> bool:
        return bool(self.pattern.search(text))


# Each pattern excludes its competing variant, so "react" never matches "react native".
TECHNOLOGIES: tuple[Technology, ...] = (
    Technology("react", re.compile(r"\breact\b(?![\s\-_]*native)", re.I), ("react-native",)),
    Technology("react-native", re.compile(r"\breact[\s\-_]*native\b", re.I), ("react",)),
    Technology("vue", re.compile(r"\bvue(?:\.?js)?\b(?![\s\-_]*native)", re.I), ("vue-native",)),
    Technology("vue-native", re.compile(r"\bvue[\s\-_]*native\b", re.I), ("vue",)),
    Technology("angular", re.compile(r"\bangular\b(?![\s\-_]*\.?js\b)", re.I), ("angularjs",)),
    Technology("angularjs", re.compile(r"\bangular[\s\-_]*\.?js\b", re.I), ("angular",)),
    Technology("java", re.compile(r"\bjava\b(?![\s\-]*script)", re.I), ("javascript",)),
    Technology("javascript", re.compile(r"\bjavascript\b", re.I), ("java",)),
    Technology("nextjs", re.compile(r"\bnext\.?js\b", re.I), ("nuxt",)),
    Technology("nuxt", re.compile(r"\bnuxt(?:\.?js)?\b", re.I), ("nextjs",)),
)
_BY_NAME = {tech.name: tech for tech in TECHNOLOGIES}

_GUIDE_CUES = (
    "guide", "tutorial", "getting-started", "getting started", "quickstart", "quick-start",
    "install", "setup", "set-up", "how-to", "walkthrough",
)
_REFERENCE_CUES = ("api", "reference", "props", "methods", "/ref/", "parameters", "options")


def detect_technologies(text: str) -> list[Technology]:
    return [tech for tech in TECHNOLOGIES if tech.found_in(text or "")]


def _has_cue(text: str, cues: tuple[str, ...]) -> bool:
    return any(cue in text for cue in cues)


class RelevanceRanker:
    """Scores and orders candidates for one query. No I/O, no randomness."""

    def __init__(self, weights: RankingWeights = DEFAULT_WEIGHTS):
        self.weights = weights

    @staticmethod
    def _words(query: str) -> list[str]:
        words = [w for w in query_words(query) if w not in STOP_WORDS]
        return words or query_words(query, min_length=1)

    def _title_score(self, document: DocumentContent, query_lc: str, words: list[str]) -> float:
        w = self.weights
        title = document.title.lower().strip()
        if title and title == query_lc:
            return w.title_exact
        if query_lc and query_lc in title:
            return w.title_contains

        if document.hit is not None and document.hit.levels():
            levels = [(depth, value.lower()) for depth, value in document.hit.levels()]
        else:
            levels = [(0, title)]

        score = 0.0
        for word in words:
            for depth, value in levels:
                if word in tokenize(value):
                    score += w.title_word * w.depth_weight(depth)
                    break
        return score

    def _content_score(self, content_lc: str, query_lc: str, words: list[str]) -> float:
        w = self.weights
        score = 0.0
        if query_lc:
            score += min(content_lc.count(query_lc), w.content_phrase_cap) * w.content_phrase
        content_words = tokenize(content_lc)
        for word in words:
            score += min(content_words.count(word), w.content_word_cap) * w.content_word
        return score

    def _url_score(self, url: str, words: list[str], techs: list[Technology]) -> float:
        w = self.weights
        path = urlparse(url).path.lower()
        score = 0.0
        path_words = tokenize(path)
        for word in words:
            if word in path_words:
                score += w.url_word
        for tech in techs:
            if tech.found_in(path.replace("/", " ")):
                score += w.url_word
        if path and not path.endswith("/") and not path.endswith("index.html"):
            score += w.url_leaf
        return score

    def _technology_score(self, candidate: str, techs: list[Technology]) -> float:
        w = self.weights
        score = 0.0
        for tech in techs:
            if tech.found_in(candidate):
                score += w.tech_match
            elif any(_BY_NAME[name].found_in(candidate) for name in tech.competitors):
                score += w.tech_mismatch
        return score

    def _intent_score(self, document: DocumentContent, query_type: QueryType) -> float:
        w = self.weights
        doc_type = (document.hit.doc_type or "") if document.hit is not None else ""
        meta = f"{document.url} {document.title} {doc_type}".lower()
        if query_type == QueryType.HOW_TO and _has_cue(meta, _GUIDE_CUES):
            return w.intent_guide
        if query_type == QueryType.API_REFERENCE and _has_cue(meta, _REFERENCE_CUES):
            return w.intent_api
        return 0.0

    def _exact_score(self, document: DocumentContent, query_lc: str, serialized: str) -> float:
        w = self.weights
        score = 0.0
        if query_lc and document.title.lower().strip() == query_lc:
            score += w.exact_title

        query_tokens = tokenize(query_lc)
        if query_tokens and f" {' '.join(query_tokens)} " in f" {' '.join(tokenize(serialized))} ":
            score += w.phrase

        serialized_words = set(tokenize(serialized))
        if query_tokens and all(token in serialized_words for token in query_tokens):
            score += w.all_words
        return score

    def _highlight_score(self, hit: SearchHit | None) -> float:
        if hit is None:
            return 0.0
        w = self.weights
        markup = " ".join(
            [hit.highlighted or "", hit.snippet or "", *hit.highlighted_hierarchy.values()]
        )
        return min(markup.lower().count("<em>"), w.highlight_cap) * w.highlight

    def score(self, document: DocumentContent, query: str) -> float:
        """Sum of all factors for one candidate. Can be negative."""
        query_lc = " ".join((query or "").lower().split())
        words = self._words(query)
        techs = detect_technologies(query)
        content_lc = (document.content or "").lower()
        serialized = f"{document.title} {document.content} {document.url}"

        return (
            self._title_score(document, query_lc, words)
            + self._content_score(content_lc, query_lc, words)
            + self._url_score(document.url, words, techs)
            + self._technology_score(serialized, techs)
            + self._intent_score(document, classify_query_type(query))
            + self._exact_score(document, query_lc, serialized)
            + self._highlight_score(document.hit)
        )

    def rank(self, documents: list[DocumentContent], query: str) -> list[DocumentContent]:
        """
        Documents sorted by descending score.

        Returns copies with ``relevance_score`` set; inputs are not mutated.
        Equal scores keep their input order.
        """
        scored = [
            replace(document, relevance_score=round(self.score(document, query), 4))
            for document in documents
        ]
        ranked = sorted(scored, key=lambda document: -document.relevance_score)
        if ranked:
            logger.debug(
                f"Ranked {len(ranked)} documents",
                extra={
                    "extra_fields": {
                        "top_url": ranked[0].url,
                        "top_score": ranked[0].relevance_score,
                    }
                },
            )
        return ranked

    def rank_hits(self, hits: list[SearchHit], query: str) -> list[SearchHit]:
        """Raw hits sorted by the same scoring, using hit metadata as the candidate."""
        candidates = [
            DocumentContent(
                url=hit.url,
                title=ContentExtractor.title_for(hit),
                content=hit.content or "",
                hit=hit,
            )
            for hit in hits
        ]
        order = sorted(
            range(len(hits)), key=lambda i: -self.score(candidates[i], query)
        )
        return [hits[i] for i in order]
