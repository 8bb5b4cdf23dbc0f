import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, TypeVar

from orchestrator.errors import RemoteCallError, SearchCancelledError
from utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def default_retryable(exc: BaseException) -> bool:
    if isinstance(exc, SearchCancelledError):
        return False
    if isinstance(exc, RemoteCallError):
        return exc.retryable
    return isinstance(exc, (asyncio.TimeoutError, ConnectionError, OSError))


@dataclass(frozen=True)
class RetryPolicy:
    """
    Single retry policy applied to every remote call.

    ``max_attempts=1`` (the default) means no retries: the orchestrator leaves
    retrying to its caller. Attempt ``n`` (1-based) that fails waits
    ``backoff_s[n - 1]`` (last entry repeated) before the next one.
    """

    max_attempts: int = 1
    backoff_s: tuple[float, ...] = (1.0, 2.0)
    retryable: Callable[[BaseException], bool] = field(default=default_retryable)

    def delay_for(self, attempt: int) -> float:
        if not self.backoff_s:
            return 0.0
        index = min(max(attempt - 1, 0), len(self.backoff_s) - 1)
        return self.backoff_s[index]


NO_RETRY = RetryPolicy()


async def run_with_retry(
    call: Callable[[], Awaitable[T]],
    policy: RetryPolicy = NO_RETRY,
    *,
    operation: str = "remote_call",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Await ``call()`` under ``policy``; re-raises the last error when attempts run out."""
    attempts = max(1, policy.max_attempts)
    for attempt in range(1, attempts + 1):
        try:
            return await call()
        except Exception as exc:
            if attempt >= attempts or not policy.retryable(exc):
                raise
            delay = policy.delay_for(attempt)
            logger.warning(
                f"{operation} failed (attempt {attempt}/{attempts}), retrying in {delay}s",
                extra={
                    "extra_fields": {
                        "operation": operation,
                        "attempt": attempt,
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    }
                },
            )
            await sleep(delay)
    raise RuntimeError("unreachable")
