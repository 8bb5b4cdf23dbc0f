"""Search index clients consumed by the fan-out stage."""

from abc import ABC, abstractmethod
from typing import Any
from urllib.parse import quote

import httpx

from utils.logger import get_logger

logger = get_logger(__name__)


class SearchIndexClient(ABC):
    """
    Anything that can run one full-text query against an index.

    ``search`` returns a mapping with a ``hits`` list of raw records.
    """

    @abstractmethod
    async def search(self, query: str, index: str, params: dict[str, Any]) -> dict[str, Any]:
        """
        Run a query.

        Args:
            query: Query text
            index: Index name
            params: hitsPerPage, attributesToRetrieve, attributesToHighlight, ...

        Returns:
            {"hits": [record, ...]}
        """


class AlgoliaSearchClient(SearchIndexClient):
    """Algolia (DocSearch) REST client over httpx."""

    def __init__(
        self,
        app_id: str,
        api_key: str,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout_s: float = 10.0,
    ):
        if not app_id or not api_key:
            raise ValueError("ALGOLIA_APP_ID and ALGOLIA_API_KEY are required")
        self.app_id = app_id
        self.api_key = api_key
        self.timeout_s = timeout_s
        self._http_client = http_client

    def _url(self, index: str) -> str:
        return f"https://{self.app_id}-dsn.algolia.net/1/indexes/{quote(index, safe='')}/query"

    async def search(self, query: str, index: str, params: dict[str, Any]) -> dict[str, Any]:
        headers = {
            "X-Algolia-Application-Id": self.app_id,
            "X-Algolia-API-Key": self.api_key,
        }
        body = {"query": query, **params}

        if self._http_client is not None:
            response = await self._http_client.post(
                self._url(index), json=body, headers=headers, timeout=self.timeout_s
            )
        else:
            async with httpx.AsyncClient(timeout=self.timeout_s) as client:
                response = await client.post(self._url(index), json=body, headers=headers)

        response.raise_for_status()
        payload = response.json()
        hits = payload.get("hits") if isinstance(payload, dict) else None
        logger.debug(
            f"Algolia returned {len(hits or [])} hits",
            extra={"extra_fields": {"index": index, "query": query}},
        )
        return {"hits": hits if isinstance(hits, list) else []}
