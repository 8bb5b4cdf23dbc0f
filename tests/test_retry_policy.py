import asyncio

import pytest

from orchestrator.errors import RemoteCallError, SearchCancelledError
from orchestrator.retry_policy import NO_RETRY, RetryPolicy, default_retryable, run_with_retry


class _Flaky:
    def __init__(self, failures: int, error: Exception):
        self.failures = failures
        self.error = error
        self.attempts = 0

    async def __call__(self):
        self.attempts += 1
        if self.attempts <= self.failures:
            raise self.error
        return "ok"


def _run(call, policy, sleeps=None):
    async def fake_sleep(delay):
        if sleeps is not None:
            sleeps.append(delay)

    return asyncio.run(run_with_retry(call, policy, operation="test", sleep=fake_sleep))


def test_default_policy_does_not_retry():
    call = _Flaky(1, RemoteCallError("boom"))
    with pytest.raises(RemoteCallError):
        _run(call, NO_RETRY)
    assert call.attempts == 1


def test_retries_with_linear_backoff():
    sleeps = []
    call = _Flaky(2, RemoteCallError("boom"))
    policy = RetryPolicy(max_attempts=3, backoff_s=(1.0, 2.0))

    assert _run(call, policy, sleeps) == "ok"
    assert call.attempts == 3
    assert sleeps == [1.0, 2.0]


def test_gives_up_after_max_attempts():
    sleeps = []
    call = _Flaky(5, RemoteCallError("boom"))
    with pytest.raises(RemoteCallError):
        _run(call, RetryPolicy(max_attempts=3), sleeps)
    assert call.attempts == 3
    assert len(sleeps) == 2


def test_non_retryable_error_is_raised_immediately():
    call = _Flaky(1, RemoteCallError("bad input", status_code=400))
    with pytest.raises(RemoteCallError):
        _run(call, RetryPolicy(max_attempts=3))
    assert call.attempts == 1


def test_delay_repeats_last_entry():
    policy = RetryPolicy(max_attempts=5, backoff_s=(0.5, 1.5))
    assert [policy.delay_for(n) for n in (1, 2, 3, 4)] == [0.5, 1.5, 1.5, 1.5]


def test_default_retryable():
    assert default_retryable(asyncio.TimeoutError())
    assert default_retryable(RemoteCallError("x", status_code=503))
    assert default_retryable(RemoteCallError("x", status_code=429))
    assert not default_retryable(RemoteCallError("x", status_code=404))
    assert not default_retryable(SearchCancelledError())
    assert not default_retryable(KeyError("x"))
