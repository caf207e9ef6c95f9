"""Wall-clock budget for one request, measured from arrival."""
import asyncio
import time
from typing import Any, Awaitable, Callable, Optional, TypeVar

T = TypeVar("T")


class DeadlineExceeded(Exception):
    """The budget ran out before (or while) an awaited call finished."""


class Deadline:
    """
    Millisecond budget anchored at *started* (``time.monotonic()`` seconds).

    ``run`` races an awaited call against the remaining budget and cancels
    the call if the budget wins.
    """

    def __init__(self, budget_ms: int, started: Optional[float] = None):
        self.budget_ms = budget_ms
        self.started = time.monotonic() if started is None else started

    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self.started) * 1000)

    def remaining(self) -> float:
        """Seconds left, never negative."""
        return max(0.0, self.budget_ms / 1000 - (time.monotonic() - self.started))

    def expired(self) -> bool:
        return self.elapsed_ms() > self.budget_ms

    async def run(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        if self.expired():
            raise DeadlineExceeded(f"{self.budget_ms} ms budget exhausted after {self.elapsed_ms()} ms")
        try:
            return await asyncio.wait_for(func(*args, **kwargs), timeout=self.remaining())
        except asyncio.TimeoutError:
            raise DeadlineExceeded(
                f"{self.budget_ms} ms budget exhausted after {self.elapsed_ms()} ms"
            ) from None
