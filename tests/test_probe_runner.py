"""Tests for the probe runner — timeouts, failure isolation, ordering."""

from __future__ import annotations

import asyncio
import socket

import pytest

from probewatch.health.models import HealthStatus, ProbeResult
from probewatch.health.probe import BlockingProbe, Probe
from probewatch.health.runner import TIMEOUT_ERROR, ProbeConfigError, ProbeRunner

from .conftest import RaisingProbe, SleepyBlockingProbe, StaticProbe


class NotAResultProbe(Probe):
    async def check(self) -> ProbeResult:
        return "fine"  # type: ignore[return-value]


class SocketTimeoutProbe(Probe):
    """Fails at once with a client-side socket timeout."""

    async def check(self) -> ProbeResult:
        raise socket.timeout("read timed out")


class BlockingTimeoutProbe(BlockingProbe):
    def check_blocking(self) -> ProbeResult:
        raise TimeoutError("lock wait timed out")


class ConcurrencyTracker(Probe):
    """Records how many instances run at the same time."""

    active = 0
    peak = 0

    async def check(self) -> ProbeResult:
        cls = type(self)
        cls.active += 1
        cls.peak = max(cls.peak, cls.active)
        await asyncio.sleep(0.02)
        cls.active -= 1
        return self.result(HealthStatus.HEALTHY)


@pytest.fixture
def runner() -> ProbeRunner:
    return ProbeRunner()


# ── Batch semantics ──────────────────────────────────────────────────────────


class TestRunBatch:
    @pytest.mark.asyncio
    async def test_one_result_per_probe_in_input_order(self, runner: ProbeRunner) -> None:
        probes = [
            StaticProbe("slow", delay=0.05),
            StaticProbe("fast"),
            StaticProbe("medium", HealthStatus.DEGRADED, delay=0.02),
        ]
        results = await runner.run(probes, per_probe_timeout=1.0)
        assert [r.name for r in results] == ["slow", "fast", "medium"]
        assert results[2].status == HealthStatus.DEGRADED

    @pytest.mark.asyncio
    async def test_empty_batch(self, runner: ProbeRunner) -> None:
        assert await runner.run([], per_probe_timeout=1.0) == []

    @pytest.mark.asyncio
    async def test_probes_run_concurrently(self, runner: ProbeRunner) -> None:
        probes = [StaticProbe(f"p{i}", delay=0.2) for i in range(5)]
        loop = asyncio.get_running_loop()
        t0 = loop.time()
        await runner.run(probes, per_probe_timeout=2.0)
        # five sequential sleeps would take ~1s
        assert loop.time() - t0 < 0.8

    @pytest.mark.asyncio
    async def test_max_concurrency_bounds_parallelism(self) -> None:
        ConcurrencyTracker.active = ConcurrencyTracker.peak = 0
        probes = [ConcurrencyTracker(f"c{i}") for i in range(6)]
        results = await ProbeRunner(max_concurrency=2).run(probes, per_probe_timeout=2.0)
        assert len(results) == 6
        assert ConcurrencyTracker.peak <= 2


# ── Timeouts ─────────────────────────────────────────────────────────────────


class TestTimeouts:
    @pytest.mark.asyncio
    async def test_timeout_is_degraded_not_unhealthy(self, runner: ProbeRunner) -> None:
        [result] = await runner.run([StaticProbe("hang", delay=5)], per_probe_timeout=0.05)
        assert result.status == HealthStatus.DEGRADED
        assert result.error == TIMEOUT_ERROR
        assert result.latency_ms == pytest.approx(50.0)

    @pytest.mark.asyncio
    async def test_hang_does_not_stall_siblings(self, runner: ProbeRunner) -> None:
        ok = StaticProbe("ok")
        results = await runner.run([StaticProbe("hang", delay=5), ok], per_probe_timeout=0.1)
        assert results[0].error == TIMEOUT_ERROR
        assert results[1].status == HealthStatus.HEALTHY
        assert results[1].error is None

    @pytest.mark.asyncio
    async def test_blocking_probe_timeout(self, runner: ProbeRunner) -> None:
        [result] = await runner.run([SleepyBlockingProbe("sync", 0.3)], per_probe_timeout=0.05)
        assert result.status == HealthStatus.DEGRADED
        assert result.error == TIMEOUT_ERROR

    @pytest.mark.asyncio
    async def test_blocking_probe_completes(self, runner: ProbeRunner) -> None:
        [result] = await runner.run([SleepyBlockingProbe("sync", 0.01)], per_probe_timeout=1.0)
        assert result.status == HealthStatus.HEALTHY
        assert result.detail == "woke up"

    @pytest.mark.asyncio
    async def test_many_blocking_probes_do_not_queue(self, runner: ProbeRunner) -> None:
        # more than the default executor's largest pool (32 workers), so
        # sharing it would push the last waves past their deadline
        probes = [SleepyBlockingProbe(f"b{i}", 0.25) for i in range(65)]
        results = await runner.run(probes, per_probe_timeout=0.6)
        assert [r.name for r in results if r.status != HealthStatus.HEALTHY] == []

    @pytest.mark.asyncio
    async def test_timed_out_threads_do_not_delay_next_batch(self, runner: ProbeRunner) -> None:
        stuck = [SleepyBlockingProbe(f"stuck{i}", 1.0) for i in range(40)]
        first = await runner.run(stuck, per_probe_timeout=0.05)
        assert all(r.error == TIMEOUT_ERROR for r in first)

        fresh = [SleepyBlockingProbe(f"fresh{i}", 0.05) for i in range(40)]
        second = await runner.run(fresh, per_probe_timeout=0.5)
        assert all(r.status == HealthStatus.HEALTHY for r in second)


# ── Failure isolation ────────────────────────────────────────────────────────


class TestFailureIsolation:
    @pytest.mark.asyncio
    async def test_raising_probe_is_unhealthy(self, runner: ProbeRunner) -> None:
        probes = [StaticProbe("a"), RaisingProbe("broken", "services"), StaticProbe("b")]
        results = await runner.run(probes, per_probe_timeout=1.0)

        assert len(results) == 3
        broken = results[1]
        assert broken.name == "broken"
        assert broken.category == "services"
        assert broken.status == HealthStatus.UNHEALTHY
        assert broken.error == "RuntimeError: boom"
        assert results[0].status == results[2].status == HealthStatus.HEALTHY

    @pytest.mark.asyncio
    async def test_socket_timeout_raised_by_probe_is_a_fault(self, runner: ProbeRunner) -> None:
        [result] = await runner.run([SocketTimeoutProbe("client")], per_probe_timeout=30)
        assert result.status == HealthStatus.UNHEALTHY
        assert result.error != TIMEOUT_ERROR
        assert "read timed out" in (result.error or "")
        assert result.latency_ms < 30_000

    @pytest.mark.asyncio
    async def test_timeout_error_from_blocking_probe_is_a_fault(self, runner: ProbeRunner) -> None:
        [result] = await runner.run([BlockingTimeoutProbe("db")], per_probe_timeout=30)
        assert result.status == HealthStatus.UNHEALTHY
        assert result.error == "TimeoutError: lock wait timed out"

    @pytest.mark.asyncio
    async def test_non_result_return_is_unhealthy(self, runner: ProbeRunner) -> None:
        [result] = await runner.run([NotAResultProbe("odd")], per_probe_timeout=1.0)
        assert result.status == HealthStatus.UNHEALTHY
        assert "str" in (result.error or "")


# ── Configuration errors ─────────────────────────────────────────────────────


class TestConfigErrors:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("timeout", [0, -1])
    async def test_non_positive_timeout(self, runner: ProbeRunner, timeout: float) -> None:
        with pytest.raises(ProbeConfigError):
            await runner.run([StaticProbe("a")], per_probe_timeout=timeout)

    @pytest.mark.asyncio
    async def test_duplicate_names(self, runner: ProbeRunner) -> None:
        with pytest.raises(ProbeConfigError, match="Duplicate"):
            await runner.run([StaticProbe("a"), StaticProbe("a")], per_probe_timeout=1.0)

    def test_negative_concurrency(self) -> None:
        with pytest.raises(ProbeConfigError):
            ProbeRunner(max_concurrency=-1)

    def test_probe_requires_name(self) -> None:
        with pytest.raises(ValueError):
            StaticProbe("")
