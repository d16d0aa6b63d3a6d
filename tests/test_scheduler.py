"""Daily ticker tests: midnight alignment and callback isolation."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from lifelog.scheduler import DailyTicker, next_midnight


class TestNextMidnight:
    def test_midday(self):
        now = datetime(2026, 10, 18, 12, 30, tzinfo=timezone.utc)
        assert next_midnight(now) == datetime(2026, 10, 19, 0, 0, tzinfo=timezone.utc)

    def test_exactly_midnight_goes_to_next_day(self):
        now = datetime(2026, 10, 18, 0, 0, tzinfo=timezone.utc)
        assert next_midnight(now) == datetime(2026, 10, 19, 0, 0, tzinfo=timezone.utc)

    def test_month_boundary(self):
        now = datetime(2026, 10, 31, 23, 59, tzinfo=timezone.utc)
        assert next_midnight(now) == datetime(2026, 11, 1, 0, 0, tzinfo=timezone.utc)

    def test_keeps_timezone(self):
        tokyo = timezone(timedelta(hours=9))
        now = datetime(2026, 10, 18, 23, 0, tzinfo=tokyo)
        assert next_midnight(now) == datetime(2026, 10, 19, 0, 0, tzinfo=tokyo)


class TestDailyTicker:
    def test_first_tick_delay(self):
        clock = lambda: datetime(2026, 10, 18, 23, 0, tzinfo=timezone.utc)  # noqa: E731
        ticker = DailyTicker(clock=clock)
        assert ticker.seconds_until_first_tick() == 3600

    @pytest.mark.asyncio
    async def test_failing_callback_does_not_block_others(self):
        ticker = DailyTicker()
        calls: list[str] = []

        async def broken() -> None:
            raise RuntimeError("boom")

        async def healthy() -> None:
            calls.append("healthy")

        ticker.on_tick(broken)
        ticker.on_tick(healthy)
        await ticker.tick()
        assert calls == ["healthy"]

    @pytest.mark.asyncio
    async def test_run_fires_then_repeats_until_stopped(self):
        # 10ms before midnight, then every 10ms
        clock = lambda: datetime(2026, 10, 18, 23, 59, 59, 990000, tzinfo=timezone.utc)  # noqa: E731
        ticker = DailyTicker(interval=timedelta(milliseconds=10), clock=clock)
        ticks = 0

        async def count() -> None:
            nonlocal ticks
            ticks += 1
            if ticks == 3:
                ticker.stop()

        ticker.on_tick(count)
        await asyncio.wait_for(ticker.run(), timeout=2)
        assert ticks == 3

    @pytest.mark.asyncio
    async def test_stop_interrupts_long_sleep(self):
        ticker = DailyTicker()
        task = asyncio.create_task(ticker.run())
        await asyncio.sleep(0.01)
        ticker.stop()
        await asyncio.wait_for(task, timeout=1)
        assert task.done()
