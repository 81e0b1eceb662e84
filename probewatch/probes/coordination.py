"""Distributed coordination probe — etcd key round-trip over the v3 JSON gateway."""

from __future__ import annotations

import base64
import logging

import httpx

from ..health.models import HealthStatus, ProbeResult
from ..health.probe import Probe, Stopwatch

logger = logging.getLogger(__name__)

PROBE_KEY = "health_check_test"


def _b64(value: str) -> str:
    return base64.b64encode(value.encode()).decode()


class EtcdProbe(Probe):
    """Writes then deletes a scratch key; any failed operation is unhealthy."""

    kind = "etcd"

    def __init__(
        self,
        name: str,
        url: str,
        category: str = "infrastructure",
        timeout: float = 5.0,
        key: str = PROBE_KEY,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(name, category)
        self.url = url.rstrip("/")
        self.timeout = timeout
        self.key = key
        self._transport = transport

    async def check(self) -> ProbeResult:
        sw = Stopwatch()
        try:
            async with httpx.AsyncClient(
                base_url=self.url, timeout=self.timeout, transport=self._transport,
            ) as client:
                put = await client.post(
                    "/v3/kv/put", json={"key": _b64(self.key), "value": _b64("test_value")},
                )
                if not put.is_success:
                    return self.result(
                        HealthStatus.UNHEALTHY,
                        f"etcd operations failed: put returned {put.status_code}",
                        latency_ms=sw.ms,
                    )
                try:
                    await client.post("/v3/kv/deleterange", json={"key": _b64(self.key)})
                except httpx.HTTPError as e:
                    logger.debug("%s: cleanup of %s failed: %s", self.name, self.key, e)
        except httpx.TimeoutException:
            return self.result(
                HealthStatus.DEGRADED, "etcd request timed out", latency_ms=sw.ms, error="timeout",
            )
        except httpx.HTTPError as e:
            return self.result(
                HealthStatus.UNHEALTHY, "Connection failed",
                latency_ms=sw.ms, error=f"{type(e).__name__}: {e}",
            )
        return self.result(HealthStatus.HEALTHY, "Key operations successful", latency_ms=sw.ms)
