"""Tests for the polling scheduler."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime

import pytest

from nebula_updater.updater.scheduler import PollingScheduler, SystemClock


class FakeClock:
    """Records sleeps and returns immediately."""

    def __init__(self) -> None:
        self.sleeps: list[float] = []

    def now(self) -> datetime:
        return datetime(2025, 1, 1, tzinfo=UTC)

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)


class BlockingClock(FakeClock):
    """Sleeps forever so only ``stop()`` can end the wait."""

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        await asyncio.Event().wait()


class TestPollingScheduler:
    """Tests for PollingScheduler.run()."""

    async def test_runs_max_cycles_with_interval_between(self) -> None:
        calls: list[int] = []
        clock = FakeClock()

        async def tick() -> None:
            calls.append(len(calls))

        scheduler = PollingScheduler(tick, 60, clock=clock, max_cycles=3)

        assert await scheduler.run() == 3
        assert calls == [0, 1, 2]
        # No wait after the final tick
        assert clock.sleeps == [60, 60]

    async def test_ticks_never_overlap(self) -> None:
        active = 0
        peak = 0

        async def tick() -> None:
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0)
            active -= 1

        await PollingScheduler(tick, 1, clock=FakeClock(), max_cycles=5).run()

        assert peak == 1

    async def test_failing_tick_does_not_stop_loop(self) -> None:
        calls = 0

        async def tick() -> None:
            nonlocal calls
            calls += 1
            if calls == 1:
                raise RuntimeError("boom")

        scheduler = PollingScheduler(tick, 1, clock=FakeClock(), max_cycles=3)

        assert await scheduler.run() == 3
        assert calls == 3

    async def test_stop_from_tick_ends_loop(self) -> None:
        clock = FakeClock()
        scheduler: PollingScheduler

        async def tick() -> None:
            if scheduler.cycles == 2:
                scheduler.stop()

        scheduler = PollingScheduler(tick, 1, clock=clock)

        assert await scheduler.run() == 2
        assert scheduler.stopped is True
        assert clock.sleeps == [1]

    async def test_stop_interrupts_wait(self) -> None:
        clock = BlockingClock()

        async def tick() -> None:
            return None

        scheduler = PollingScheduler(tick, 3600, clock=clock)
        task = asyncio.create_task(scheduler.run())

        while not clock.sleeps:
            await asyncio.sleep(0)
        scheduler.stop()

        assert await asyncio.wait_for(task, timeout=1) == 1

    async def test_stop_before_run_runs_nothing(self) -> None:
        calls = 0

        async def tick() -> None:
            nonlocal calls
            calls += 1

        scheduler = PollingScheduler(tick, 1, clock=FakeClock())
        scheduler.stop()

        assert await scheduler.run() == 0
        assert calls == 0

    async def test_cancellation_propagates(self) -> None:
        async def tick() -> None:
            raise asyncio.CancelledError

        scheduler = PollingScheduler(tick, 1, clock=FakeClock())

        with pytest.raises(asyncio.CancelledError):
            await scheduler.run()

    @pytest.mark.parametrize("interval", [0, -1])
    def test_rejects_non_positive_interval(self, interval: float) -> None:
        async def tick() -> None:
            return None

        with pytest.raises(ValueError, match="interval_seconds"):
            PollingScheduler(tick, interval)


class TestSystemClock:
    def test_now_is_utc(self) -> None:
        assert SystemClock().now().tzinfo is UTC

    async def test_sleep_zero(self) -> None:
        await SystemClock().sleep(0)


class TestStopDuringTick:
    async def test_stop_cancels_running_tick(self) -> None:
        started = asyncio.Event()
        finished: list[bool] = []

        async def tick() -> None:
            started.set()
            await asyncio.Event().wait()
            finished.append(True)

        scheduler = PollingScheduler(tick, 60, clock=FakeClock())
        task = asyncio.create_task(scheduler.run())
        await started.wait()

        scheduler.stop()

        assert await asyncio.wait_for(task, timeout=1) == 1
        assert finished == []

    async def test_work_after_stop_point_never_runs(self) -> None:
        gate = asyncio.Event()
        steps: list[str] = []

        async def tick() -> None:
            steps.append("consent")
            await gate.wait()
            steps.append("fetch")

        scheduler = PollingScheduler(tick, 60, clock=FakeClock())
        task = asyncio.create_task(scheduler.run())
        while not steps:
            await asyncio.sleep(0)

        scheduler.stop()
        gate.set()
        await asyncio.wait_for(task, timeout=1)

        assert steps == ["consent"]
