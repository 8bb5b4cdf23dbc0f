"""Shared utilities for FastAPI routes."""

from collections.abc import Mapping

from fastapi import status

from orchestrator.errors import OrchestratorError

SENSITIVE_HEADERS = {"x-api-key", "authorization", "x-recaptcha-token"}

ERROR_STATUS_CODES = {
    "cancelled": status.HTTP_409_CONFLICT,
    "no_documents": status.HTTP_404_NOT_FOUND,
}


def status_for_error(exc: OrchestratorError) -> int:
    """HTTP status for an orchestrator error; unlisted codes are upstream failures."""
    return ERROR_STATUS_CODES.get(exc.code, status.HTTP_502_BAD_GATEWAY)


def redact_sensitive_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """
    Redact auth-bearing headers before logging.
    """
    redacted: dict[str, str] = {}
    for key, value in headers.items():
        if key.lower() in SENSITIVE_HEADERS and value:
            redacted[key] = "[REDACTED]"
        else:
            redacted[key] = value
    return redacted
