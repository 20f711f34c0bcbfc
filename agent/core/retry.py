from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable


BackoffFn = Callable[[int], float]


def fixed_backoff(seconds: float) -> BackoffFn:
    """Backoff that waits the same number of seconds after every attempt."""

    def _backoff(attempt: int) -> float:
        return seconds

    return _backoff


@dataclass
class RetryPolicy:
    """Bounded retry budget shared by every completion call of one request."""

    max_attempts: int = 10
    backoff: BackoffFn = field(default_factory=lambda: fixed_backoff(1.0))
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def delay(self, attempt: int) -> float:
        return max(0.0, self.backoff(attempt))

    def exhausted(self, attempt: int) -> bool:
        return attempt >= self.max_attempts

    async def wait(self, attempt: int) -> None:
        delay = self.delay(attempt)
        if delay:
            await self.sleep(delay)
