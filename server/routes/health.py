"""Health check endpoint."""

from datetime import datetime, timezone

from fastapi import APIRouter

from orchestrator.factory import get_response_cache
from server.schemas.responses import HealthResponseDTO

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponseDTO)
async def health_check():
    """Health check endpoint."""
    return HealthResponseDTO(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        version="0.1.0",
        cache_size=get_response_cache().size(),
    )
