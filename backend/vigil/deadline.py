"""
Deadlines for I/O made while deciding a submission.

A Deadline is created once per submission and passed down to the
classifier and scorer. Each store or ledger call is awaited with
min(per-call cap, remaining budget); exceeding it raises the caller's
timeout type so the submission fails closed.
"""

import asyncio
import inspect
import time
from typing import Awaitable, Callable, Optional, Type, TypeVar

from .errors import ProcessingFailure

T = TypeVar("T")


class Deadline:
    """Absolute expiry computed from a budget in seconds."""

    def __init__(self, budget: float, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self.budget = budget
        self.expires_at = clock() + budget

    def remaining(self) -> float:
        return max(0.0, self.expires_at - self._clock())

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0.0

    def timeout_for(self, cap: Optional[float] = None) -> float:
        """Timeout for the next call: remaining budget, capped per call."""
        remaining = self.remaining()
        if cap is None:
            return remaining
        return min(cap, remaining)

    def __repr__(self) -> str:
        return f"Deadline(budget={self.budget}, remaining={self.remaining():.3f})"


async def bounded(
    awaitable: Awaitable[T],
    deadline: Deadline,
    timeout_error: Type[ProcessingFailure],
    what: str,
    cap: Optional[float] = None,
) -> T:
    """
    Await `awaitable` under the deadline.

    Raises timeout_error if the deadline is already spent or the call
    does not finish in time.
    """
    timeout = deadline.timeout_for(cap)
    if timeout <= 0:
        # Never started; close it so the coroutine is not left un-awaited
        if inspect.iscoroutine(awaitable):
            awaitable.close()
        raise timeout_error(f"{what}: deadline exhausted before call")

    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as e:
        raise timeout_error(f"{what}: timed out after {timeout:.2f}s") from e
