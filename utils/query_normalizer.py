"""Query normalization, cache keys, and lightweight keyword extraction."""

import re

_WHITESPACE_RE = re.compile(r"\s+")
_NON_WORD_RE = re.compile(r"[^\w\s]")

STOP_WORDS = frozenset(
    {
        "the", "and", "for", "with", "how", "what", "why", "when", "where", "which",
        "who", "does", "can", "you", "are", "use", "using", "into", "from", "that",
        "this", "there", "about", "should", "would", "could", "have", "has", "not",
        "get", "its", "was", "will", "your", "our", "any",
    }
)


def normalize_query(query: str) -> str:
    """
    Normalize a query so equivalent phrasings share a cache key.

    Lower-cases, collapses whitespace, strips punctuation and sorts the words,
    so "React integrate" and "integrate, react!" produce the same key.
    """
    text = _WHITESPACE_RE.sub(" ", (query or "").lower().strip())
    text = _NON_WORD_RE.sub("", text)
    return " ".join(sorted(text.split()))


def cache_key(query: str) -> str:
    return normalize_query(query)


def tokenize(text: str) -> list[str]:
    """Lower-cased words with punctuation removed, in original order."""
    cleaned = _NON_WORD_RE.sub(" ", (text or "").lower())
    return cleaned.split()


def query_words(query: str, min_length: int = 3) -> list[str]:
    """Distinct query words longer than ``min_length - 1`` characters, in order."""
    seen = []
    for word in tokenize(query):
        if len(word) >= min_length and word not in seen:
            seen.append(word)
    return seen


def extract_keywords(query: str, limit: int = 2, skip_stop_words: bool = False) -> list[str]:
    """
    Pick fallback search keywords from a query.

    Returns up to ``limit`` distinct words longer than two characters that are
    not identical to the whole query. With ``skip_stop_words`` words in
    STOP_WORDS are passed over too, so "how to install the app" yields
    ["install", "app"] instead of ["how", "install"].
    """
    whole = (query or "").strip().lower()
    keywords = []
    for word in query_words(query, min_length=3):
        if word == whole or (skip_stop_words and word in STOP_WORDS):
            continue
        keywords.append(word)
        if len(keywords) >= limit:
            break
    return keywords
