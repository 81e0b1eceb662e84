"""Container runtime probes — docker daemon and per-container state.

Both shell out to the docker CLI, so they run as blocking probes.
"""

from __future__ import annotations

import json
import logging
import subprocess
from typing import Any

from ..health.models import HealthStatus, ProbeResult
from ..health.probe import BlockingProbe, Stopwatch

logger = logging.getLogger(__name__)


def _run(cmd: list[str], timeout: float) -> subprocess.CompletedProcess[str]:
    return subprocess.run(cmd, capture_output=True, text=True, timeout=timeout, check=False)


class DockerDaemonProbe(BlockingProbe):
    """``docker version`` must succeed against a running daemon."""

    kind = "docker"

    def __init__(
        self, name: str, category: str = "system", binary: str = "docker", timeout: float = 10.0,
    ) -> None:
        super().__init__(name, category)
        self.binary = binary
        self.timeout = timeout

    def check_blocking(self) -> ProbeResult:
        sw = Stopwatch()
        try:
            proc = _run([self.binary, "version"], self.timeout)
        except (OSError, subprocess.SubprocessError) as e:
            return self.result(
                HealthStatus.UNHEALTHY, "Docker not found or not running",
                latency_ms=sw.ms, error=f"{type(e).__name__}: {e}",
            )
        if proc.returncode != 0:
            return self.result(
                HealthStatus.UNHEALTHY, "Docker command failed",
                latency_ms=sw.ms, error=proc.stderr.strip() or f"exit code {proc.returncode}",
            )
        version_line = next(
            (line.strip() for line in proc.stdout.splitlines() if "Version:" in line),
            "Docker daemon running",
        )
        return self.result(HealthStatus.HEALTHY, version_line, latency_ms=sw.ms)


class ContainerProbe(BlockingProbe):
    """Inspects one container by name or id.

    Running with a healthcheck maps the health state (healthy / unhealthy /
    starting → degraded / anything else → unknown); running without one is
    healthy; stopped is unhealthy. If the container can't be inspected the
    verdict is unknown, if docker itself is unusable it is unhealthy.
    """

    kind = "container"

    def __init__(
        self,
        name: str,
        container: str,
        category: str = "containers",
        binary: str = "docker",
        timeout: float = 10.0,
    ) -> None:
        super().__init__(name, category)
        self.container = container
        self.binary = binary
        self.timeout = timeout

    def check_blocking(self) -> ProbeResult:
        sw = Stopwatch()
        try:
            proc = _run([self.binary, "inspect", self.container], self.timeout)
        except (OSError, subprocess.SubprocessError) as e:
            return self.result(
                HealthStatus.UNHEALTHY, "Docker not available",
                latency_ms=sw.ms, error=f"{type(e).__name__}: {e}",
            )
        if proc.returncode != 0:
            logger.error("Failed to inspect container %s: %s", self.container, proc.stderr.strip())
            return self.result(
                HealthStatus.UNKNOWN,
                f"Inspection failed: {proc.stderr.strip() or proc.returncode}",
                latency_ms=sw.ms,
            )
        try:
            inspected = json.loads(proc.stdout)
            state = inspected[0].get("State") or {}
        except (ValueError, IndexError, AttributeError) as e:
            return self.result(
                HealthStatus.UNKNOWN, "Inspection returned unreadable output",
                latency_ms=sw.ms, error=f"{type(e).__name__}: {e}",
            )
        status, detail = evaluate_state(state)
        return self.result(status, detail, latency_ms=sw.ms)


def evaluate_state(state: dict[str, Any]) -> tuple[HealthStatus, str]:
    """Map a ``docker inspect`` State block to a verdict and detail."""
    if not state.get("Running"):
        return HealthStatus.UNHEALTHY, f"Stopped (exit code: {state.get('ExitCode', 0)})"

    health = (state.get("Health") or {}).get("Status")
    if health is None:
        status = HealthStatus.HEALTHY
    elif health == "healthy":
        status = HealthStatus.HEALTHY
    elif health == "unhealthy":
        status = HealthStatus.UNHEALTHY
    elif health == "starting":
        status = HealthStatus.DEGRADED
    else:
        status = HealthStatus.UNKNOWN

    started = state.get("StartedAt")
    detail = f"Running since {started}" if started else "Running"
    if health:
        detail += f" ({health})"
    return status, detail
