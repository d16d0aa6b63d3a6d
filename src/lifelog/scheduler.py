"""Daily tick source for the retention sweep.

The first tick lands on the next local midnight, then one tick every
interval after that. Sweep logic stays independent of this loop; it only
registers a callback through ``on_tick``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta

import structlog

logger = structlog.get_logger()

TickCallback = Callable[[], Awaitable[object]]


def next_midnight(now: datetime) -> datetime:
    """Midnight at the start of the day after ``now``, in ``now``'s timezone."""
    tomorrow = now + timedelta(days=1)
    return tomorrow.replace(hour=0, minute=0, second=0, microsecond=0)


class DailyTicker:
    """Fires registered callbacks at local midnight, then every ``interval``."""

    def __init__(
        self,
        interval: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.interval = interval
        self._clock = clock or (lambda: datetime.now().astimezone())
        self._callbacks: list[TickCallback] = []
        self._running = False
        self._wakeup = asyncio.Event()

    def on_tick(self, callback: TickCallback) -> None:
        """Register a zero-argument coroutine function to run on every tick."""
        self._callbacks.append(callback)

    def seconds_until_first_tick(self) -> float:
        now = self._clock()
        return max((next_midnight(now) - now).total_seconds(), 0.0)

    async def tick(self) -> None:
        """Run every callback once. A failing callback does not stop the rest."""
        for callback in self._callbacks:
            try:
                await callback()
            except Exception:
                logger.exception("tick_callback_failed", callback=getattr(callback, "__name__", repr(callback)))

    async def run(self) -> None:
        """Tick until ``stop()`` is called."""
        self._running = True
        delay = self.seconds_until_first_tick()
        logger.info("ticker_started", first_tick_in_seconds=round(delay), interval=str(self.interval))
        while self._running:
            if await self._sleep(delay):
                break
            await self.tick()
            delay = self.interval.total_seconds()

    def stop(self) -> None:
        self._running = False
        self._wakeup.set()

    async def _sleep(self, seconds: float) -> bool:
        """Sleep for ``seconds``; True if woken early by ``stop()``."""
        try:
            await asyncio.wait_for(self._wakeup.wait(), timeout=seconds)
        except TimeoutError:
            return False
        return True
