"""
SearchFanOut - concurrent search of every query variant, merged by URL.
"""

import asyncio
import re
from typing import Any

from api.search_client import SearchIndexClient
from models.search_types import SearchHit
from orchestrator.cancellation import CancellationToken
from orchestrator.errors import SearchCancelledError
from utils.logger import get_logger

logger = get_logger(__name__)

MIN_HITS_PER_PAGE = 5
MAX_HITS_PER_PAGE = 10
MAX_EXPANSIONS = 2

# Abbreviation <-> full word; substitutions apply in both directions.
ABBREVIATIONS: dict[str, str] = {
    "config": "configuration",
    "auth": "authentication",
    "docs": "documentation",
    "env": "environment",
    "repo": "repository",
    "db": "database",
    "js": "javascript",
    "ts": "typescript",
    "k8s": "kubernetes",
    "deps": "dependencies",
    "app": "application",
    "cli": "command line",
}
_REVERSE_ABBREVIATIONS = {full: short for short, full in ABBREVIATIONS.items()}


def expand_query(query: str, limit: int = MAX_EXPANSIONS) -> list[str]:
    """
    Lexical variants of ``query`` with one abbreviation swapped each.

    At most ``limit`` variants, each different from the query, in the order
    the swappable terms appear.
    """
    expansions: list[str] = []
    lowered = query.lower()
    for term, replacement in list(ABBREVIATIONS.items()) + list(_REVERSE_ABBREVIATIONS.items()):
        pattern = re.compile(rf"\b{re.escape(term)}\b", re.I)
        if not pattern.search(lowered):
            continue
        candidate = pattern.sub(replacement, query, count=1)
        if candidate.lower() != lowered and candidate not in expansions:
            expansions.append(candidate)
        if len(expansions) >= limit:
            break
    return expansions


def dedupe_hits(batches: list[list[SearchHit]]) -> list[SearchHit]:
    """Merge hit batches keeping the first hit seen for each URL."""
    seen: set[str] = set()
    merged: list[SearchHit] = []
    for batch in batches:
        for hit in batch:
            if not hit.url or hit.url in seen:
                continue
            seen.add(hit.url)
            merged.append(hit)
    return merged


class SearchFanOut:
    """Issues one independent search per query variant and merges the hits."""

    def __init__(
        self,
        hits_per_page: int = MIN_HITS_PER_PAGE,
        *,
        timeout_s: float = 10.0,
        enable_expansion: bool = False,
    ):
        self.hits_per_page = min(MAX_HITS_PER_PAGE, max(MIN_HITS_PER_PAGE, hits_per_page))
        self.timeout_s = timeout_s
        self.enable_expansion = enable_expansion

    def _params(self) -> dict[str, Any]:
        return {
            "hitsPerPage": self.hits_per_page,
            "attributesToRetrieve": ["*"],
            "attributesToHighlight": ["*"],
        }

    def plan(self, queries: list[str]) -> list[str]:
        """Queries actually issued: each variant followed by its expansions."""
        planned: list[str] = []
        for query in queries:
            if query not in planned:
                planned.append(query)
            if self.enable_expansion:
                for expansion in expand_query(query):
                    if expansion not in planned:
                        planned.append(expansion)
        return planned

    async def _search_one(
        self,
        query: str,
        client: SearchIndexClient,
        index: str,
        token: CancellationToken | None,
    ) -> list[SearchHit]:
        async def _call():
            return await asyncio.wait_for(
                client.search(query, index, self._params()), timeout=self.timeout_s
            )

        try:
            if token is not None:
                response = await token.guard(_call, f"search:{query}")
            else:
                response = await _call()
        except SearchCancelledError:
            raise
        except Exception as e:
            logger.warning(
                f'Search failed for query "{query}": {e}',
                extra={
                    "extra_fields": {
                        "query": query,
                        "index": index,
                        "error_type": type(e).__name__,
                    }
                },
            )
            return []

        records = response.get("hits") if isinstance(response, dict) else None
        hits = []
        for record in records or []:
            if isinstance(record, dict):
                hit = SearchHit.from_record(record)
                if hit.url:
                    hits.append(hit)
        return hits

    async def search(
        self,
        queries: list[str],
        client: SearchIndexClient,
        index: str,
        token: CancellationToken | None = None,
    ) -> list[SearchHit]:
        """
        Search every variant concurrently and merge by URL (first seen wins).

        Args:
            queries: Query variants from intent analysis
            client: Search index client
            index: Index name
            token: Run cancellation token

        Returns:
            Deduplicated hits, in variant order then index order

        Raises:
            SearchCancelledError: If the run was cancelled
        """
        planned = self.plan(list(queries))
        if token is not None:
            token.raise_if_cancelled()

        results = await asyncio.gather(
            *(self._search_one(q, client, index, token) for q in planned),
            return_exceptions=True,
        )

        batches: list[list[SearchHit]] = []
        for result in results:
            # _search_one swallows everything except cancellation
            if isinstance(result, BaseException):
                raise result
            batches.append(result)

        merged = dedupe_hits(batches)
        logger.info(
            f"Fan-out merged {sum(len(b) for b in batches)} hits into {len(merged)} unique",
            extra={
                "extra_fields": {
                    "variants": len(planned),
                    "unique_hits": len(merged),
                }
            },
        )
        return merged
