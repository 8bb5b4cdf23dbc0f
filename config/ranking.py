"""
Relevance scoring weights.

The constants below are empirically chosen. What matters is their relative
order: title > content > url > type/intent > exact-match bonuses. Override
individual values with ``dataclasses.replace(DEFAULT_WEIGHTS, ...)`` or
``RankingWeights.from_env()``.
"""

import os
from dataclasses import dataclass, fields


@dataclass(frozen=True)
class RankingWeights:
    # Title
    title_exact: float = 12.0
    title_contains: float = 8.0
    title_word: float = 3.0
    # lvl0 (most general) .. lvl5 (most specific)
    depth_weights: tuple[float, ...] = (1.0, 0.9, 0.8, 0.7, 0.6, 0.5)

    # Content
    content_phrase: float = 2.0
    content_phrase_cap: int = 3
    content_word: float = 0.5
    content_word_cap: int = 5

    # URL / path
    url_word: float = 1.5
    url_leaf: float = 0.5

    # Technology disambiguation
    tech_match: float = 2.5
    tech_mismatch: float = -6.0

    # Document type / intent
    intent_guide: float = 1.0
    intent_api: float = 1.0

    # Exact / phrase bonuses
    exact_title: float = 0.9
    phrase: float = 0.75
    all_words: float = 0.5

    # Index highlight markers
    highlight: float = 0.25
    highlight_cap: int = 8

    @classmethod
    def from_env(cls, prefix: str = "RANK_") -> "RankingWeights":
        """Build weights, overriding scalar fields from RANK_<FIELD> variables."""
        overrides = {}
        for f in fields(cls):
            if f.name == "depth_weights":
                continue
            raw = os.getenv(f"{prefix}{f.name.upper()}")
            if raw is None:
                continue
            try:
                overrides[f.name] = int(raw) if f.type in (int, "int") else float(raw)
            except ValueError:
                continue
        return cls(**overrides)

    def depth_weight(self, level: int) -> float:
        if not self.depth_weights:
            return 1.0
        if level < len(self.depth_weights):
            return self.depth_weights[level]
        return self.depth_weights[-1]


DEFAULT_WEIGHTS = RankingWeights()
