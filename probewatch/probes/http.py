"""HTTP endpoint probe — status code, latency budget, optional JSON body check."""

from __future__ import annotations

import logging
from collections.abc import Mapping

import httpx

from ..health.models import HealthStatus, ProbeResult
from ..health.probe import Probe, Stopwatch

logger = logging.getLogger(__name__)


class HttpProbe(Probe):
    """GET/HEAD an endpoint.

    - 2xx → healthy (degraded when slower than ``slow_ms``)
    - other status → degraded (the service answered but is not happy)
    - connect error → unhealthy
    - request timeout → degraded
    - ``expect_json`` keys that don't match the body → degraded
    """

    kind = "http"

    def __init__(
        self,
        name: str,
        url: str,
        category: str = "services",
        method: str = "GET",
        timeout: float = 10.0,
        slow_ms: float = 3000.0,
        expect_json: Mapping[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(name, category)
        self.url = url
        self.method = method
        self.timeout = timeout
        self.slow_ms = slow_ms
        self.expect_json = dict(expect_json or {})
        self._transport = transport

    async def check(self) -> ProbeResult:
        sw = Stopwatch()
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, follow_redirects=True, transport=self._transport,
            ) as client:
                resp = await client.request(self.method, self.url)
        except httpx.TimeoutException:
            return self.result(
                HealthStatus.DEGRADED, "Request timeout - service may be slow",
                latency_ms=sw.ms, error="timeout",
            )
        except httpx.ConnectError as e:
            return self.result(
                HealthStatus.UNHEALTHY, "Connection refused - service may be down",
                latency_ms=sw.ms, error=f"ConnectError: {e}",
            )
        except httpx.HTTPError as e:
            return self.result(
                HealthStatus.UNHEALTHY, f"Request failed: {e}",
                latency_ms=sw.ms, error=f"{type(e).__name__}: {e}",
            )
        latency = sw.ms

        if not resp.is_success:
            return self.result(
                HealthStatus.DEGRADED, f"HTTP status: {resp.status_code}", latency_ms=latency,
            )

        mismatches = self._json_mismatches(resp)
        if mismatches:
            return self.result(
                HealthStatus.DEGRADED, "; ".join(mismatches), latency_ms=latency,
            )

        if latency > self.slow_ms:
            return self.result(
                HealthStatus.DEGRADED,
                f"{resp.status_code} OK but slow ({latency:.0f}ms > {self.slow_ms:.0f}ms)",
                latency_ms=latency,
            )
        return self.result(HealthStatus.HEALTHY, f"{resp.status_code} OK", latency_ms=latency)

    def _json_mismatches(self, resp: httpx.Response) -> list[str]:
        if not self.expect_json:
            return []
        try:
            body = resp.json()
        except ValueError:
            # Not JSON: nothing to compare, reachable is good enough
            return []
        if not isinstance(body, dict):
            return []
        out = []
        for key, expected in self.expect_json.items():
            if key in body and str(body[key]) != expected:
                out.append(f"{key} status: {body[key]}")
        return out
