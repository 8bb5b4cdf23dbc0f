"""Pydantic response models (DTOs) for FastAPI endpoints."""

from typing import Any

from pydantic import BaseModel, Field

from models.search_types import SearchResult
from orchestrator.errors import OrchestratorError


class ErrorDTO(BaseModel):
    code: str
    message: str
    retryable: bool
    details: dict[str, Any] = Field(default_factory=dict)


class ErrorResponseDTO(BaseModel):
    error: ErrorDTO

    @classmethod
    def from_error(cls, exc: OrchestratorError):
        return cls(
            error=ErrorDTO(
                code=exc.code,
                message=exc.message,
                retryable=exc.retryable,
                details=exc.details,
            )
        )


class DocumentDTO(BaseModel):
    url: str
    title: str
    content: str
    relevance_score: float


class ValidationDTO(BaseModel):
    confidence: str | None = None
    is_not_found: bool = False
    has_sources: bool = False
    warnings: list[str] = Field(default_factory=list)


class QueryIntentDTO(BaseModel):
    search_queries: list[str]
    query_type: str | None = None
    explanation: str | None = None
    is_fallback: bool = False


class SearchResponseDTO(BaseModel):
    answer: str
    documents: list[DocumentDTO]
    validation: ValidationDTO | None = None
    query_intent: QueryIntentDTO | None = None
    query_analysis: dict[str, Any] | None = None
    from_cache: bool = False
    run_id: str

    @classmethod
    def from_search_result(cls, result: SearchResult):
        """Convert SearchResult to DTO."""
        validation = result.validation
        intent = result.query_intent
        return cls(
            answer=result.answer,
            documents=[
                DocumentDTO(
                    url=doc.url,
                    title=doc.title,
                    content=doc.content,
                    relevance_score=doc.relevance_score,
                )
                for doc in result.documents
            ],
            validation=(
                ValidationDTO(
                    confidence=validation.confidence,
                    is_not_found=validation.is_not_found,
                    has_sources=validation.has_sources,
                    warnings=list(validation.warnings),
                )
                if validation
                else None
            ),
            query_intent=(
                QueryIntentDTO(
                    search_queries=list(intent.search_queries),
                    query_type=intent.query_type.value if intent.query_type else None,
                    explanation=intent.explanation,
                    is_fallback=intent.is_fallback,
                )
                if intent
                else None
            ),
            query_analysis=result.query_analysis_meta,
            from_cache=result.from_cache,
            run_id=result.run_id,
        )


class CancelResponseDTO(BaseModel):
    session_id: str
    cancelled: bool


class HealthResponseDTO(BaseModel):
    status: str
    timestamp: str
    version: str
    cache_size: int = 0
