"""Continuous monitor — repeats health passes on a fixed interval.

State machine::

    IDLE → RUNNING → WAITING → RUNNING → … → STOPPED

Stop conditions are checked only between passes: when ``max_runs`` is reached
(no trailing sleep), or when a stop was requested, observed at the start of a
pass or while waiting. A batch already running is never interrupted.

Lifecycle:
    monitor = Monitor(engine, sink=print_report, interval=30)
    await monitor.run()          # foreground
    # or
    await monitor.start(); ...; await monitor.stop()
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable, Iterable
from enum import Enum
from typing import Any, Protocol

from .models import HealthReport

logger = logging.getLogger(__name__)

# Sync or async; an awaitable return value is awaited before the next wait.
ReportSink = Callable[[HealthReport], Any]
Sleeper = Callable[[float], Awaitable[Any]]


class MonitorState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    WAITING = "waiting"
    STOPPED = "stopped"


class PassSource(Protocol):
    async def check(self, categories: Iterable[str] | None = None) -> HealthReport: ...


class Monitor:
    """Drives repeated aggregation passes with an optional run-count bound."""

    def __init__(
        self,
        engine: PassSource,
        sink: ReportSink | None = None,
        interval: float = 30.0,
        max_runs: int = 0,
        categories: Iterable[str] | None = None,
        sleep: Sleeper | None = None,
    ) -> None:
        if interval < 0:
            raise ValueError("interval must be >= 0")
        if max_runs < 0:
            raise ValueError("max_runs must be >= 0 (0 = unbounded)")
        self.engine = engine
        self.sink = sink
        self.interval = interval
        self.max_runs = max_runs
        self.categories = list(categories) if categories is not None else None
        self._sleep = sleep or asyncio.sleep
        self._stop_requested = asyncio.Event()
        self._task: asyncio.Task[HealthReport | None] | None = None
        self.state = MonitorState.IDLE
        self.run_count = 0
        self.latest: HealthReport | None = None

    # -- public API ------------------------------------------------------------

    def request_stop(self) -> None:
        """Ask the loop to stop at the next wait/pass boundary."""
        if not self._stop_requested.is_set():
            logger.info("Monitor stop requested")
        self._stop_requested.set()

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested.is_set()

    async def run(self) -> HealthReport | None:
        """Run passes until a stop condition; returns the last report."""
        if self.state != MonitorState.IDLE:
            raise RuntimeError(f"Monitor already used (state={self.state.value})")

        logger.info(
            "Monitor started (interval=%ss, max_runs=%s)",
            self.interval, self.max_runs or "unbounded",
        )
        try:
            while not self._stop_requested.is_set():
                self.state = MonitorState.RUNNING
                report = await self.engine.check(self.categories)
                self.latest = report
                self.run_count += 1
                await self._deliver(report)

                if self.max_runs and self.run_count >= self.max_runs:
                    break

                self.state = MonitorState.WAITING
                logger.debug("Waiting %ss for next pass", self.interval)
                if await self._wait():
                    break
        finally:
            self.state = MonitorState.STOPPED

        logger.info("Monitor stopped after %d passes", self.run_count)
        return self.latest

    async def start(self) -> None:
        """Run the loop as a background task."""
        if self._task is not None:
            return
        self._task = asyncio.create_task(self.run(), name="probewatch-monitor")

    async def stop(self) -> None:
        """Request a stop and wait for the background loop to finish."""
        self.request_stop()
        if self._task is None:
            return
        try:
            await self._task
        except Exception:
            logger.exception("Monitor loop ended with an error")
        self._task = None

    # -- internals ---------------------------------------------------------------

    async def _deliver(self, report: HealthReport) -> None:
        if self.sink is None:
            return
        try:
            outcome = self.sink(report)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception:
            logger.exception("Report sink error")

    async def _wait(self) -> bool:
        """Sleep one interval; return True if a stop was requested meanwhile."""
        if self._stop_requested.is_set():
            return True

        sleeper = asyncio.ensure_future(self._sleep(self.interval))
        stopper = asyncio.ensure_future(self._stop_requested.wait())
        _, pending = await asyncio.wait(
            {sleeper, stopper}, return_when=asyncio.FIRST_COMPLETED,
        )
        for t in pending:
            t.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        return self._stop_requested.is_set()
