"""Probe runner — executes a batch of probes with per-probe timeouts.

One asyncio task per probe, joined as a batch. A probe that overruns its
timeout is reported ``degraded`` with ``error="timeout"``; a probe that raises
is reported ``unhealthy`` with the fault description. Neither aborts the batch.

Blocking probes run on a thread pool owned by the batch, one worker per
blocking probe, so no probe waits in a queue behind a slow sibling and
threads left behind by timed-out probes never occupy the next pass's workers.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Sequence
from concurrent.futures import ThreadPoolExecutor

from .models import HealthStatus, ProbeResult
from .probe import BlockingProbe, Probe, Stopwatch

logger = logging.getLogger(__name__)

TIMEOUT_ERROR = "timeout"


class ProbeConfigError(ValueError):
    """Raised when a batch is malformed (bad timeout, duplicate names)."""


class ProbeRunner:
    """Runs probes concurrently and returns their results in input order."""

    def __init__(self, max_concurrency: int = 0) -> None:
        if max_concurrency < 0:
            raise ProbeConfigError("max_concurrency must be >= 0")
        self.max_concurrency = max_concurrency

    async def run(
        self,
        probes: Sequence[Probe],
        per_probe_timeout: float,
    ) -> list[ProbeResult]:
        """Execute ``probes`` and return one result per probe, in input order."""
        _validate_batch(probes, per_probe_timeout)
        if not probes:
            return []

        semaphore = (
            asyncio.Semaphore(self.max_concurrency) if self.max_concurrency else None
        )
        executor = self._executor_for(probes)
        sw = Stopwatch()
        try:
            results = await asyncio.gather(
                *(self._run_one(p, per_probe_timeout, semaphore, executor) for p in probes)
            )
        finally:
            if executor is not None:
                executor.shutdown(wait=False, cancel_futures=True)
        logger.debug("Batch of %d probes finished in %.0fms", len(probes), sw.ms)
        return list(results)

    def _executor_for(self, probes: Sequence[Probe]) -> ThreadPoolExecutor | None:
        blocking = sum(isinstance(p, BlockingProbe) for p in probes)
        if not blocking:
            return None
        workers = min(blocking, self.max_concurrency) if self.max_concurrency else blocking
        return ThreadPoolExecutor(max_workers=workers, thread_name_prefix="probewatch-probe")

    async def _run_one(
        self,
        probe: Probe,
        timeout: float,
        semaphore: asyncio.Semaphore | None,
        executor: ThreadPoolExecutor | None,
    ) -> ProbeResult:
        if semaphore is None:
            return await self._guarded(probe, timeout, executor)
        async with semaphore:
            return await self._guarded(probe, timeout, executor)

    @staticmethod
    def _start(probe: Probe, executor: ThreadPoolExecutor | None) -> Awaitable[ProbeResult]:
        if executor is not None and isinstance(probe, BlockingProbe):
            return asyncio.get_running_loop().run_in_executor(executor, probe.check_blocking)
        return probe.check()

    async def _guarded(
        self, probe: Probe, timeout: float, executor: ThreadPoolExecutor | None,
    ) -> ProbeResult:
        sw = Stopwatch()
        task = asyncio.ensure_future(self._start(probe, executor))
        try:
            done, _ = await asyncio.wait({task}, timeout=timeout)
        except asyncio.CancelledError:
            task.cancel()
            raise

        # Only the runner's own deadline counts as a timeout. A TimeoutError
        # raised by the probe itself is a fault like any other.
        if not done:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
            logger.warning("Probe %s timed out after %.1fs", probe.name, timeout)
            return probe.result(
                HealthStatus.DEGRADED,
                f"No answer within {timeout:g}s",
                latency_ms=timeout * 1000,
                error=TIMEOUT_ERROR,
            )

        try:
            result = task.result()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception("Probe %s raised", probe.name)
            return probe.result(
                HealthStatus.UNHEALTHY,
                "Probe raised an unexpected error",
                latency_ms=sw.ms,
                error=f"{type(e).__name__}: {e}",
            )

        if not isinstance(result, ProbeResult):
            return probe.result(
                HealthStatus.UNHEALTHY,
                "Probe returned no result",
                latency_ms=sw.ms,
                error=f"Expected ProbeResult, got {type(result).__name__}",
            )
        return result


def _validate_batch(probes: Sequence[Probe], timeout: float) -> None:
    if timeout is None or timeout <= 0:
        raise ProbeConfigError(f"per_probe_timeout must be > 0, got {timeout!r}")
    seen: set[str] = set()
    for p in probes:
        if not p.name:
            raise ProbeConfigError(f"Probe without a name: {p!r}")
        if p.name in seen:
            raise ProbeConfigError(f"Duplicate probe name in batch: {p.name}")
        seen.add(p.name)
