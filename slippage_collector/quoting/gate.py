from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, TypeVar

T = TypeVar("T")


class RateLimitGate:
    """Process-wide pacing for quote requests.

    Successive calls start at least ``interval_seconds`` apart, measured from
    the start of the previous call rather than its completion. Calls are
    serialized: only one action runs through the gate at a time.
    """

    def __init__(
        self,
        *,
        interval_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._interval_seconds = max(0.0, float(interval_seconds))
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._last_started_at: float | None = None

    @property
    def interval_seconds(self) -> float:
        return self._interval_seconds

    @property
    def last_started_at(self) -> float | None:
        return self._last_started_at

    async def _wait_turn(self) -> None:
        now = self._clock()
        if self._last_started_at is not None:
            ready_at = self._last_started_at + self._interval_seconds
            # The event loop may wake a sleeper slightly before the deadline.
            while now < ready_at:
                await self._sleep(ready_at - now)
                now = self._clock()
        self._last_started_at = now

    async def acquire(self) -> None:
        async with self._lock:
            await self._wait_turn()

    async def call(self, action: Callable[[], Awaitable[T]]) -> T:
        async with self._lock:
            await self._wait_turn()
            return await action()
