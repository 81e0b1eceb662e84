"""TCP reachability probes — single port, endpoint sweeps, port usage."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from ..health.models import HealthStatus, ProbeResult
from ..health.probe import Probe, Stopwatch

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Endpoint:
    host: str
    port: int
    label: str = ""

    def __str__(self) -> str:
        addr = f"{self.host}:{self.port}"
        return f"{self.label} ({addr})" if self.label else addr


async def tcp_connect(host: str, port: int, timeout: float) -> str | None:
    """Open and close a TCP connection; return the error text or None."""
    try:
        _, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout)
    except (OSError, asyncio.TimeoutError) as e:
        return f"{type(e).__name__}: {e}" if str(e) else type(e).__name__
    writer.close()
    try:
        await writer.wait_closed()
    except OSError as e:
        logger.debug("Closing %s:%s raised %s", host, port, e)
    return None


class TcpProbe(Probe):
    """Raw TCP port connectivity check."""

    kind = "tcp"

    def __init__(
        self, name: str, host: str, port: int, category: str = "system", timeout: float = 5.0,
    ) -> None:
        super().__init__(name, category)
        self.host = host
        self.port = port
        self.timeout = timeout

    async def check(self) -> ProbeResult:
        sw = Stopwatch()
        err = await tcp_connect(self.host, self.port, self.timeout)
        if err is None:
            return self.result(HealthStatus.HEALTHY, f"Port {self.port} open", latency_ms=sw.ms)
        return self.result(
            HealthStatus.UNHEALTHY, f"TCP connect to {self.host}:{self.port} failed",
            latency_ms=sw.ms, error=err,
        )


class _SweepProbe(Probe):
    def __init__(
        self,
        name: str,
        endpoints: Sequence[Endpoint],
        category: str = "system",
        timeout: float = 3.0,
    ) -> None:
        super().__init__(name, category)
        self.endpoints = list(endpoints)
        self.timeout = timeout

    async def _sweep(self) -> tuple[list[Endpoint], list[Endpoint]]:
        errors = await asyncio.gather(
            *(tcp_connect(e.host, e.port, self.timeout) for e in self.endpoints)
        )
        up = [e for e, err in zip(self.endpoints, errors) if err is None]
        down = [e for e, err in zip(self.endpoints, errors) if err is not None]
        return up, down


class NetworkConnectivityProbe(_SweepProbe):
    """All endpoints reachable → healthy, more than half → degraded."""

    kind = "network"

    async def check(self) -> ProbeResult:
        sw = Stopwatch()
        if not self.endpoints:
            return self.result(HealthStatus.UNKNOWN, "No endpoints configured")
        up, down = await self._sweep()
        total = len(self.endpoints)

        if not down:
            return self.result(
                HealthStatus.HEALTHY, f"All {total} endpoints accessible", latency_ms=sw.ms,
            )
        status = HealthStatus.DEGRADED if len(up) > total // 2 else HealthStatus.UNHEALTHY
        return self.result(
            status,
            f"{len(up)}/{total} endpoints accessible ({len(up) / total * 100:.1f}%) "
            f"- Failed: {', '.join(str(e) for e in down)}",
            latency_ms=sw.ms,
        )


class PortUsageProbe(_SweepProbe):
    """Counts required ports that have a listener.

    Listening means the service is up, so more open ports is healthier:
    at least ``healthy_min`` → healthy, at least ``degraded_min`` → degraded.
    """

    kind = "ports"

    def __init__(
        self,
        name: str,
        endpoints: Sequence[Endpoint],
        category: str = "system",
        timeout: float = 3.0,
        healthy_min: int = 4,
        degraded_min: int = 2,
    ) -> None:
        super().__init__(name, endpoints, category, timeout)
        self.healthy_min = healthy_min
        self.degraded_min = degraded_min

    async def check(self) -> ProbeResult:
        sw = Stopwatch()
        up, down = await self._sweep()
        if len(up) >= self.healthy_min:
            status = HealthStatus.HEALTHY
        elif len(up) >= self.degraded_min:
            status = HealthStatus.DEGRADED
        else:
            status = HealthStatus.UNHEALTHY
        return self.result(
            status,
            f"{len(up)} services listening, {len(down)} ports available",
            latency_ms=sw.ms,
        )
