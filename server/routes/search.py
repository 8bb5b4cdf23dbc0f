"""Search endpoints: answer a question, cancel a session's running search.

Orchestrator errors are turned into JSON error bodies by the handler
registered in server.app.
"""

from fastapi import APIRouter, Depends, Header, HTTPException, status

from api.search_client import SearchIndexClient
from orchestrator.cancellation import SessionRegistry
from orchestrator.search_orchestrator import SearchOrchestrator
from server.dependencies import (
    get_api_key,
    get_default_index,
    get_orchestrator,
    get_search_client,
    get_session_registry,
)
from server.schemas.requests import SearchRequest
from server.schemas.responses import CancelResponseDTO, ErrorResponseDTO, SearchResponseDTO
from utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/v1", tags=["Search"])


@router.post(
    "/search",
    response_model=SearchResponseDTO,
    responses={
        404: {"model": ErrorResponseDTO},
        409: {"model": ErrorResponseDTO},
        502: {"model": ErrorResponseDTO},
    },
)
async def search(
    request: SearchRequest,
    api_key: str = Depends(get_api_key),
    orchestrator: SearchOrchestrator = Depends(get_orchestrator),
    search_client: SearchIndexClient = Depends(get_search_client),
    default_index: str | None = Depends(get_default_index),
    x_recaptcha_token: str | None = Header(None),
):
    """
    Answer a documentation question.

    An ``X-Recaptcha-Token`` header from the end user's browser is forwarded
    to the answer backend for this request only.
    """
    index = request.index or default_index
    if not index:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="index is required when ALGOLIA_INDEX_NAME is not configured",
        )

    result = await orchestrator.perform_search(
        request.query,
        search_client,
        index,
        session_id=request.session_id,
        verification_token=x_recaptcha_token,
    )
    return SearchResponseDTO.from_search_result(result)


@router.post("/search/{session_id}/cancel", response_model=CancelResponseDTO)
async def cancel_search(
    session_id: str,
    api_key: str = Depends(get_api_key),
    registry: SessionRegistry = Depends(get_session_registry),
):
    """Cancel the running search of a session, if any."""
    cancelled = registry.cancel(session_id)
    if cancelled:
        logger.info("Search cancelled by client", extra={"extra_fields": {"session_id": session_id}})
    return CancelResponseDTO(session_id=session_id, cancelled=cancelled)
