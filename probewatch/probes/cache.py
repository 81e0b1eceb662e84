"""Cache / KV probe — Redis PING."""

from __future__ import annotations

import redis.asyncio as aioredis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError, TimeoutError as RedisTimeoutError

from ..health.models import HealthStatus, ProbeResult
from ..health.probe import Probe, Stopwatch


class RedisProbe(Probe):
    """PING a Redis server; a reply other than PONG is degraded."""

    kind = "redis"

    def __init__(
        self,
        name: str,
        url: str,
        category: str = "infrastructure",
        timeout: float = 5.0,
    ) -> None:
        super().__init__(name, category)
        self.url = url
        self.timeout = timeout

    def _client(self) -> aioredis.Redis:
        return aioredis.from_url(
            self.url,
            socket_timeout=self.timeout,
            socket_connect_timeout=self.timeout,
            decode_responses=True,
        )

    async def check(self) -> ProbeResult:
        sw = Stopwatch()
        client = self._client()
        try:
            pong = await client.execute_command("PING")
        except RedisTimeoutError as e:
            return self.result(
                HealthStatus.DEGRADED, "PING timed out", latency_ms=sw.ms, error=f"timeout: {e}",
            )
        except RedisConnectionError as e:
            return self.result(
                HealthStatus.UNHEALTHY, "Connection failed",
                latency_ms=sw.ms, error=f"ConnectionError: {e}",
            )
        except RedisError as e:
            return self.result(
                HealthStatus.UNHEALTHY, f"Redis error: {e}",
                latency_ms=sw.ms, error=f"{type(e).__name__}: {e}",
            )
        finally:
            await client.aclose()

        if pong is True or str(pong).upper() == "PONG":
            return self.result(HealthStatus.HEALTHY, "PING successful", latency_ms=sw.ms)
        return self.result(
            HealthStatus.DEGRADED, f"Unexpected PING response: {pong}", latency_ms=sw.ms,
        )
