"""
Cooperative cancellation for orchestration runs.

One CancellationToken per run is passed through every async step. Tokens are
checked immediately before and after each awaited network call; synchronous
scoring and extraction is never interrupted.
"""

import asyncio
import threading
import uuid
from enum import Enum
from typing import Awaitable, Callable, TypeVar

from orchestrator.errors import InvalidStateTransition, SearchCancelledError
from utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


_TRANSITIONS: dict[RunState, frozenset[RunState]] = {
    RunState.IDLE: frozenset({RunState.RUNNING, RunState.CANCELLED}),
    RunState.RUNNING: frozenset({RunState.COMPLETED, RunState.CANCELLED, RunState.FAILED}),
    RunState.COMPLETED: frozenset(),
    RunState.CANCELLED: frozenset(),
    RunState.FAILED: frozenset(),
}


class CancellationToken:
    """Cancellation capability for a single run."""

    def __init__(self, run_id: str | None = None):
        self.run_id = run_id or uuid.uuid4().hex
        self._cancelled = False
        self._reason = "Operation cancelled"
        self._in_flight: set[asyncio.Future] = set()
        self._lock = threading.Lock()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def reason(self) -> str:
        return self._reason

    def cancel(self, reason: str = "Operation cancelled") -> None:
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
            self._reason = reason
            in_flight = list(self._in_flight)

        for future in in_flight:
            if not future.done():
                # Task.cancel is not thread-safe; schedule it on the owning loop.
                future.get_loop().call_soon_threadsafe(future.cancel)

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise SearchCancelledError(self._reason, details={"run_id": self.run_id})

    async def guard(self, call: Callable[[], Awaitable[T]], operation: str = "operation") -> T:
        """
        Run one network-bound step under this token.

        Checks the token before starting and after resolving. If the token is
        cancelled while the call is in flight, the call is cancelled and its
        result discarded in favour of SearchCancelledError.
        """
        self.raise_if_cancelled()
        future = asyncio.ensure_future(call())
        with self._lock:
            self._in_flight.add(future)
        try:
            result = await future
        except asyncio.CancelledError:
            if self._cancelled:
                logger.info(
                    f"{operation} aborted",
                    extra={"extra_fields": {"run_id": self.run_id, "operation": operation}},
                )
                raise SearchCancelledError(self._reason, details={"run_id": self.run_id})
            raise
        finally:
            with self._lock:
                self._in_flight.discard(future)
        self.raise_if_cancelled()
        return result


class CancellationController:
    """State machine for one run: IDLE -> RUNNING -> COMPLETED | CANCELLED | FAILED."""

    def __init__(self, run_id: str | None = None):
        self.token = CancellationToken(run_id)
        self._state = RunState.IDLE
        self._lock = threading.Lock()

    @property
    def run_id(self) -> str:
        return self.token.run_id

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state in (RunState.IDLE, RunState.RUNNING)

    def _transition(self, target: RunState) -> None:
        with self._lock:
            if target not in _TRANSITIONS[self._state]:
                raise InvalidStateTransition(f"{self._state.value} -> {target.value}")
            self._state = target

    def start(self) -> None:
        self._transition(RunState.RUNNING)

    def complete(self) -> None:
        self._transition(RunState.COMPLETED)

    def fail(self) -> None:
        self._transition(RunState.FAILED)

    def cancel(self, reason: str = "Operation cancelled") -> bool:
        """Cancel the run if it has not finished. Returns False for finished runs."""
        with self._lock:
            if self._state not in (RunState.IDLE, RunState.RUNNING):
                return False
            self._state = RunState.CANCELLED
        self.token.cancel(reason)
        logger.info(
            "Run cancelled",
            extra={"extra_fields": {"run_id": self.run_id, "reason": reason}},
        )
        return True


class SessionRegistry:
    """
    Tracks the active run per logical search session.

    Beginning a run cancels the previous still-active run of the same session
    before the new run issues any network call.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._active: dict[str, CancellationController] = {}

    def begin(self, session_id: str, controller: CancellationController) -> CancellationController | None:
        with self._lock:
            previous = self._active.get(session_id)
            self._active[session_id] = controller
        if previous is not None and previous is not controller and previous.is_active:
            previous.cancel("Superseded by a newer query")
            return previous
        return None

    def end(self, session_id: str, controller: CancellationController) -> None:
        with self._lock:
            if self._active.get(session_id) is controller:
                del self._active[session_id]

    def cancel(self, session_id: str, reason: str = "Cancelled by caller") -> bool:
        with self._lock:
            controller = self._active.get(session_id)
        if controller is None:
            return False
        return controller.cancel(reason)

    def active(self, session_id: str) -> CancellationController | None:
        with self._lock:
            return self._active.get(session_id)
