"""Bounded TTL cache of prior answers and document sets."""

import threading
import time
from typing import Any, Callable, Sequence

from models.search_types import CachedEntry, DocumentContent
from utils.logger import get_logger
from utils.query_normalizer import cache_key

logger = get_logger(__name__)

DEFAULT_MAX_SIZE = 100


class ResponseCache:
    """
    In-memory answer cache keyed by normalized query.

    Entries expire ``ttl_seconds`` after insertion (checked lazily on read).
    When full, inserting a new key evicts the single oldest entry by insertion
    time; reads never refresh an entry's age.
    """

    def __init__(self, max_size: int = DEFAULT_MAX_SIZE, clock: Callable[[], float] = time.time):
        """
        Initialize cache.

        Args:
            max_size: Maximum number of entries kept
            clock: Source of the current time in seconds (injectable for tests)
        """
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._entries: dict[str, CachedEntry] = {}
        self._lock = threading.Lock()
        self._max_size = max_size
        self._clock = clock

    @property
    def max_size(self) -> int:
        return self._max_size

    def get_cached(self, query: str, ttl_seconds: float) -> CachedEntry | None:
        """
        Get the cached entry for a query if it has not expired.

        Args:
            query: Raw query text
            ttl_seconds: Time to live in seconds

        Returns:
            The stored entry, or None when missing or expired (expired entries are removed)
        """
        key = cache_key(query)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.timestamp >= ttl_seconds:
                del self._entries[key]
                expired = True
            else:
                expired = False

        if expired:
            logger.debug("Cache expired", extra={"extra_fields": {"cache_key": key}})
            return None
        logger.info("Cache hit", extra={"extra_fields": {"cache_key": key}})
        return entry

    def set(
        self,
        query: str,
        response: Any,
        query_analysis: Any = None,
        documents: Sequence[DocumentContent] | None = None,
    ) -> None:
        """
        Store a response, evicting the oldest entry if the cache is full.

        Args:
            query: Raw query text
            response: Answer (or any response object) to cache
            query_analysis: Optional query analysis to restore on hit
            documents: Optional documents to restore on hit
        """
        key = cache_key(query)
        entry = CachedEntry(
            response=response,
            timestamp=self._clock(),
            query_analysis=query_analysis,
            documents=tuple(documents) if documents is not None else None,
        )
        evicted = None
        with self._lock:
            if key not in self._entries and len(self._entries) >= self._max_size:
                evicted = min(self._entries, key=lambda k: self._entries[k].timestamp)
                del self._entries[evicted]
            self._entries[key] = entry

        if evicted is not None:
            logger.debug("Cache eviction", extra={"extra_fields": {"evicted_key": evicted}})
        logger.info("Cached response", extra={"extra_fields": {"cache_key": key}})

    def clear(self) -> None:
        """Clear all cached entries."""
        with self._lock:
            self._entries.clear()
        logger.info("Cache cleared")

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, query: str) -> bool:
        with self._lock:
            return cache_key(query) in self._entries
