"""Local host probes — disk usage and expected configuration files."""

from __future__ import annotations

import shutil
from collections.abc import Sequence
from pathlib import Path

from ..health.models import HealthStatus, ProbeResult
from ..health.probe import BlockingProbe, Stopwatch


class DiskUsageProbe(BlockingProbe):
    kind = "disk"

    def __init__(
        self, name: str, path: str = ".", category: str = "system", warn_percent: float = 90.0,
    ) -> None:
        super().__init__(name, category)
        self.path = path
        self.warn_percent = warn_percent

    def check_blocking(self) -> ProbeResult:
        sw = Stopwatch()
        try:
            usage = shutil.disk_usage(self.path)
        except OSError as e:
            return self.result(
                HealthStatus.UNKNOWN, f"Cannot stat {self.path}",
                latency_ms=sw.ms, error=f"{type(e).__name__}: {e}",
            )
        percent = usage.used / usage.total * 100 if usage.total else 0.0
        if percent > self.warn_percent:
            return self.result(
                HealthStatus.DEGRADED, f"Disk usage high: {percent:.0f}%", latency_ms=sw.ms,
            )
        return self.result(HealthStatus.HEALTHY, f"Disk usage: {percent:.0f}%", latency_ms=sw.ms)


class ConfigFilesProbe(BlockingProbe):
    """All files present → healthy, one missing → degraded, more → unhealthy."""

    kind = "config_files"

    def __init__(
        self,
        name: str,
        files: Sequence[str],
        category: str = "system",
        base_dir: str = ".",
    ) -> None:
        super().__init__(name, category)
        self.files = list(files)
        self.base_dir = Path(base_dir)

    def check_blocking(self) -> ProbeResult:
        sw = Stopwatch()
        if not self.files:
            return self.result(HealthStatus.UNKNOWN, "No configuration files configured")

        missing = [f for f in self.files if not (self.base_dir / f).exists()]
        found = len(self.files) - len(missing)
        if not missing:
            return self.result(
                HealthStatus.HEALTHY, f"All {found} configuration files found", latency_ms=sw.ms,
            )
        status = HealthStatus.DEGRADED if len(missing) == 1 else HealthStatus.UNHEALTHY
        return self.result(
            status,
            f"{found} configs found, {len(missing)} missing: {', '.join(missing)}",
            latency_ms=sw.ms,
        )
