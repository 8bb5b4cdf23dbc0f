"""FastAPI dependencies: API-key check and the process-wide pipeline objects."""

import os
from functools import lru_cache

from fastapi import Header, HTTPException, Request, status

from api.search_client import SearchIndexClient
from orchestrator.cancellation import SessionRegistry
from orchestrator.search_orchestrator import SearchOrchestrator
from server.utils import redact_sensitive_headers
from utils.logger import get_logger

logger = get_logger(__name__)


def _configured_api_keys() -> set[str]:
    return {k.strip() for k in os.getenv("API_KEYS", "").split(",") if k.strip()}


async def get_api_key(request: Request, x_api_key: str | None = Header(None)) -> str:
    """Validate the X-API-Key header against the comma-separated API_KEYS."""
    valid_keys = _configured_api_keys()
    if not valid_keys:
        logger.error(
            "API authentication not configured",
            extra={"extra_fields": {"path": request.url.path}},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="API authentication not configured",
        )

    if x_api_key not in valid_keys:
        logger.warning(
            "API authentication failed",
            extra={
                "extra_fields": {
                    "path": request.url.path,
                    "headers": redact_sensitive_headers(request.headers),
                }
            },
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or missing API key"
        )

    return x_api_key


@lru_cache(maxsize=1)
def get_orchestrator() -> SearchOrchestrator:
    from orchestrator.factory import create_orchestrator_from_env

    return create_orchestrator_from_env()


@lru_cache(maxsize=1)
def get_search_client() -> SearchIndexClient:
    from orchestrator.factory import create_search_client_from_env

    return create_search_client_from_env()


def get_default_index() -> str | None:
    return os.getenv("ALGOLIA_INDEX_NAME") or None


def get_session_registry() -> SessionRegistry:
    from orchestrator.factory import get_session_registry as shared_registry

    return shared_registry()
