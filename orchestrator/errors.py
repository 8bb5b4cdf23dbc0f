"""
Orchestrator errors.

Soft failures (intent analysis, one fan-out variant, one page fetch) never
leave their call site. Hard failures (answer synthesis, no documents) and
cancellation propagate to the ``perform_search`` caller as the types below.
"""

from typing import Any


class OrchestratorError(Exception):
    """Base class for errors surfaced to orchestrator callers."""

    code = "unknown"
    retryable = False

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }


class SearchCancelledError(OrchestratorError):
    """Raised instead of a step's result when the run was cancelled or superseded."""

    code = "cancelled"

    def __init__(self, message: str = "Operation cancelled", **kwargs) -> None:
        super().__init__(message, **kwargs)


class RemoteCallError(OrchestratorError):
    """A remote collaborator failed, returned non-2xx, or timed out."""

    code = "provider_error"
    retryable = True

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details=details)
        if code:
            self.code = code
        self.status_code = status_code
        if status_code is not None and 400 <= status_code < 500 and status_code != 429:
            self.retryable = False


class SynthesisError(OrchestratorError):
    """Answer generation failed; shown to the user with a retry affordance."""

    code = "synthesis_failed"
    retryable = True


class NoDocumentsError(OrchestratorError):
    """No usable documents remained after extraction and fallback content."""

    code = "no_documents"


class InvalidStateTransition(RuntimeError):
    """A cancellation controller was driven through an illegal state change."""
