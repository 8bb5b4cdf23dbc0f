"""HTTP client for the keyword and answer-generation backend."""

import time
from typing import Any

import httpx

from orchestrator.errors import RemoteCallError
from orchestrator.retry_policy import NO_RETRY, RetryPolicy, run_with_retry
from utils.logger import get_logger

from .verification import VerificationTokenProvider

logger = get_logger(__name__)

KEYWORDS_ENDPOINT = "/api/keywords"
GENERATE_ANSWER_ENDPOINT = "/api/generate-answer"


def _error_message(response: httpx.Response, endpoint: str) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return f"Request to {endpoint} failed with status {response.status_code}"


class BackendClient:
    """
    Posts JSON to the backend and returns the decoded JSON object.

    Non-2xx responses, timeouts, transport errors, and non-object bodies all
    raise RemoteCallError. Retries follow ``retry_policy`` (none by default).
    """

    def __init__(
        self,
        base_url: str,
        *,
        verification: VerificationTokenProvider | None = None,
        http_client: httpx.AsyncClient | None = None,
        retry_policy: RetryPolicy = NO_RETRY,
    ):
        if not base_url:
            raise ValueError("Backend base_url is required")
        self.base_url = base_url.rstrip("/")
        self.verification = verification
        self.retry_policy = retry_policy
        self._http_client = http_client

    async def _send(self, url: str, payload: dict[str, Any], headers: dict[str, str], timeout_s: float) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.post(url, json=payload, headers=headers, timeout=timeout_s)
        async with httpx.AsyncClient(timeout=timeout_s) as client:
            return await client.post(url, json=payload, headers=headers)

    async def post(
        self,
        endpoint: str,
        payload: dict[str, Any],
        *,
        action: str = "api_request",
        timeout_s: float = 30.0,
    ) -> dict[str, Any]:
        url = f"{self.base_url}{endpoint}"
        headers = {"Content-Type": "application/json"}
        if self.verification is not None:
            headers = await self.verification.add_header(headers, action)

        async def _attempt() -> dict[str, Any]:
            start = time.perf_counter()
            try:
                response = await self._send(url, payload, headers, timeout_s)
            except httpx.TimeoutException as e:
                raise RemoteCallError(
                    f"Request to {endpoint} timed out after {timeout_s}s",
                    code="timeout",
                    details={"endpoint": endpoint},
                ) from e
            except httpx.HTTPError as e:
                raise RemoteCallError(
                    f"Request to {endpoint} failed: {e}",
                    details={"endpoint": endpoint, "error_type": type(e).__name__},
                ) from e

            latency_ms = int((time.perf_counter() - start) * 1000)
            logger.info(
                f"Backend {endpoint} -> {response.status_code}",
                extra={
                    "extra_fields": {
                        "endpoint": endpoint,
                        "status_code": response.status_code,
                        "latency_ms": latency_ms,
                    }
                },
            )

            if not response.is_success:
                raise RemoteCallError(
                    _error_message(response, endpoint),
                    code="bad_request" if response.status_code == 400 else "provider_error",
                    status_code=response.status_code,
                    details={"endpoint": endpoint},
                )

            try:
                data = response.json()
            except ValueError as e:
                raise RemoteCallError(
                    f"Malformed JSON from {endpoint}", details={"endpoint": endpoint}
                ) from e
            if not isinstance(data, dict):
                raise RemoteCallError(
                    f"Unexpected response shape from {endpoint}", details={"endpoint": endpoint}
                )
            return data

        return await run_with_retry(_attempt, self.retry_policy, operation=endpoint)
