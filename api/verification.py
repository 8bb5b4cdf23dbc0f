"""Bot-verification (reCAPTCHA-style) tokens for outgoing backend requests."""

import asyncio
import contextvars
import threading
from typing import Awaitable, Callable

from orchestrator.retry_policy import RetryPolicy, run_with_retry
from utils.logger import get_logger

logger = get_logger(__name__)

VERIFICATION_HEADER = "X-Recaptcha-Token"
MAX_CONSECUTIVE_FAILURES = 3

# (site_key, action) -> token or None
TokenFetcher = Callable[[str, str], Awaitable[str | None]]

# Token the end user's browser obtained for the current run; one value per
# request context, never shared between callers.
_request_token: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "verification_request_token", default=None
)


def set_request_token(token: str | None) -> contextvars.Token:
    """Bind a caller-supplied token to the current context; undo with ``reset_request_token``."""
    return _request_token.set(token.strip() if token and token.strip() else None)


def reset_request_token(marker: contextvars.Token) -> None:
    _request_token.reset(marker)


def current_request_token() -> str | None:
    return _request_token.get()


def static_token_fetcher(token: str | None) -> TokenFetcher:
    """Fetcher that forwards a token the end user's browser already obtained."""

    async def _fetch(site_key: str, action: str) -> str | None:
        return token

    return _fetch


class VerificationTokenProvider:
    """
    Obtains verification tokens and adds them as a request header.

    Without a site key the header is omitted. A token bound to the current
    request with ``set_request_token`` is used as is; otherwise the fetcher
    (if any) is asked for one. Fetcher acquisition is bounded by a short
    timeout, retried per ``retry_policy``, and never fails the request it
    decorates. After ``MAX_CONSECUTIVE_FAILURES`` failed acquisitions the
    provider stops asking the fetcher until ``reset()`` is called.
    """

    def __init__(
        self,
        site_key: str | None,
        fetcher: TokenFetcher | None = None,
        *,
        timeout_s: float = 5.0,
        retry_policy: RetryPolicy | None = None,
    ):
        self.site_key = site_key
        self.fetcher = fetcher
        self.timeout_s = timeout_s
        self.retry_policy = retry_policy or RetryPolicy(
            max_attempts=3,
            backoff_s=(1.0, 2.0),
            retryable=lambda exc: isinstance(exc, (asyncio.TimeoutError, ValueError)),
        )
        self._failures = 0
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return bool(self.site_key) and self.fetcher is not None

    @property
    def consecutive_failures(self) -> int:
        return self._failures

    def reset(self) -> None:
        with self._lock:
            self._failures = 0

    async def _fetch_once(self, action: str) -> str:
        token = await asyncio.wait_for(self.fetcher(self.site_key, action), timeout=self.timeout_s)
        if not token or not isinstance(token, str):
            raise ValueError("Invalid token received")
        return token

    async def get_token(self, action: str = "api_request") -> str | None:
        if not self.enabled:
            return None
        if self._failures >= MAX_CONSECUTIVE_FAILURES:
            logger.warning(
                "Verification disabled after repeated failures",
                extra={"extra_fields": {"failures": self._failures}},
            )
            return None

        try:
            token = await run_with_retry(
                lambda: self._fetch_once(action),
                self.retry_policy,
                operation=f"verification:{action}",
            )
        except Exception as e:
            with self._lock:
                self._failures += 1
            logger.warning(
                f"Verification token unavailable for action '{action}': {e}",
                extra={"extra_fields": {"action": action, "error_type": type(e).__name__}},
            )
            return None

        with self._lock:
            self._failures = 0
        return token

    async def add_header(self, headers: dict[str, str], action: str = "api_request") -> dict[str, str]:
        """
        Add the verification header when a site key is configured.

        A token bound to the current request wins over the fetcher and does not
        count towards the shared failure limit.
        """
        token = current_request_token() if self.site_key else None
        if token is None:
            token = await self.get_token(action)
        if token:
            return {**headers, VERIFICATION_HEADER: token}
        return headers
