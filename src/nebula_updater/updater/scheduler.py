"""Fixed-interval polling loop.

One tick at a time, strictly sequential: run the tick, then wait the poll
interval. ``stop()`` ends the loop and interrupts a pending wait. The clock is
injectable so tests can drive the loop without real sleeps.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any, Protocol

from nebula_updater.logging import get_logger

log = get_logger("nebula_updater.updater.scheduler")


class Clock(Protocol):
    """Source of the current time and of delays."""

    def now(self) -> datetime: ...

    async def sleep(self, seconds: float) -> None: ...


class SystemClock:
    """Wall clock backed by ``asyncio.sleep``."""

    def now(self) -> datetime:
        return datetime.now(UTC)

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


class PollingScheduler:
    """Runs *tick* every *interval_seconds* until stopped."""

    def __init__(
        self,
        tick: Callable[[], Awaitable[Any]],
        interval_seconds: float,
        *,
        clock: Clock | None = None,
        max_cycles: int | None = None,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be > 0")
        self._tick = tick
        self._interval = interval_seconds
        self._clock = clock or SystemClock()
        self._max_cycles = max_cycles
        self._stop = asyncio.Event()
        self._cycles = 0
        self._current: asyncio.Future[Any] | None = None

    @property
    def cycles(self) -> int:
        return self._cycles

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def stop(self) -> None:
        """Finish the loop, cancelling a tick that is still running.

        Safe to call from a signal handler.
        """
        self._stop.set()
        if self._current is not None and not self._current.done():
            self._current.cancel()

    async def run(self) -> int:
        """Run until stopped or ``max_cycles`` is reached.

        Returns:
            Number of ticks executed.
        """
        log.info("scheduler_started", interval_seconds=self._interval)
        while not self._stop.is_set():
            self._cycles += 1
            self._current = asyncio.ensure_future(self._tick())
            try:
                await self._current
            except asyncio.CancelledError:
                if not self._stop.is_set():
                    raise
                log.info("scheduler_tick_cancelled", cycle=self._cycles)
            except Exception:
                log.exception("scheduler_tick_failed", cycle=self._cycles)
            finally:
                self._current = None

            if self._max_cycles is not None and self._cycles >= self._max_cycles:
                break
            if self._stop.is_set():
                break
            await self._wait_interval()

        log.info("scheduler_stopped", cycles=self._cycles)
        return self._cycles

    async def _wait_interval(self) -> None:
        """Sleep one interval, returning early if ``stop()`` is called."""
        sleeper = asyncio.ensure_future(self._clock.sleep(self._interval))
        stopper = asyncio.ensure_future(self._stop.wait())
        try:
            await asyncio.wait({sleeper, stopper}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (sleeper, stopper):
                if not task.done():
                    task.cancel()
            await asyncio.gather(sleeper, stopper, return_exceptions=True)
