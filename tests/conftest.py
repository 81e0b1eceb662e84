"""Shared test fixtures and fake probes."""

from __future__ import annotations

import asyncio
import time

import pytest

from probewatch.config import Settings
from probewatch.health.models import HealthStatus, ProbeResult
from probewatch.health.probe import BlockingProbe, Probe


class StaticProbe(Probe):
    """Returns a fixed status after an optional delay."""

    kind = "static"

    def __init__(
        self, name: str, status: HealthStatus = HealthStatus.HEALTHY,
        delay: float = 0.0, category: str = "",
    ) -> None:
        super().__init__(name, category)
        self.status = status
        self.delay = delay
        self.calls = 0

    async def check(self) -> ProbeResult:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.result(self.status, f"{self.name} is {self.status.value}")


class RaisingProbe(Probe):
    """Breaks the probe contract by raising."""

    kind = "raising"

    async def check(self) -> ProbeResult:
        raise RuntimeError("boom")


class SleepyBlockingProbe(BlockingProbe):
    kind = "sleepy"

    def __init__(self, name: str, seconds: float) -> None:
        super().__init__(name)
        self.seconds = seconds

    def check_blocking(self) -> ProbeResult:
        time.sleep(self.seconds)
        return self.result(HealthStatus.HEALTHY, "woke up")


@pytest.fixture
def config(tmp_path) -> Settings:
    """Settings isolated from the environment and the working directory."""
    return Settings(
        _env_file=None,
        targets_file=str(tmp_path / "probes.yaml"),
        probe_timeout=2.0,
        api_monitor=False,
        containers=[],
    )


def make_result(name: str, status: HealthStatus, **kw) -> ProbeResult:
    return ProbeResult(name=name, status=status, **kw)
