"""GPU hardware probe — NVIDIA devices via ``nvidia-smi``.

No GPU tooling on the host is reported as a single ``unknown`` result rather
than omitted, so the report still shows that GPUs were looked for.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from dataclasses import asdict, dataclass
from typing import Any

from ..health.aggregator import overall_status
from ..health.models import HealthStatus, ProbeResult
from ..health.probe import BlockingProbe, Stopwatch

logger = logging.getLogger(__name__)

QUERY_FIELDS = (
    "index",
    "name",
    "utilization.gpu",
    "utilization.memory",
    "memory.total",
    "memory.used",
    "temperature.gpu",
    "power.draw",
    "power.limit",
)


class GpuToolError(RuntimeError):
    """Raised when nvidia-smi exists but fails."""


@dataclass
class GpuInfo:
    index: int
    name: str
    utilization_gpu: int
    utilization_memory: int
    memory_total_mb: int
    memory_used_mb: int
    temperature: int
    power_draw: float
    power_limit: float

    @property
    def memory_percent(self) -> float:
        if not self.memory_total_mb:
            return 0.0
        return self.memory_used_mb / self.memory_total_mb * 100

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["memory_percent"] = round(self.memory_percent, 1)
        return d


def _num(raw: str, cast: type = int) -> Any:
    try:
        return cast(float(raw)) if cast is int else cast(raw)
    except ValueError:
        # "[N/A]" / "[Not Supported]"
        return cast(0)


def parse_smi_csv(output: str) -> list[GpuInfo]:
    """Parse ``--format=csv,noheader,nounits`` output for QUERY_FIELDS."""
    gpus = []
    for line in output.splitlines():
        if not line.strip():
            continue
        fields = [f.strip() for f in line.split(",")]
        if len(fields) < len(QUERY_FIELDS):
            logger.debug("Skipping short nvidia-smi line: %r", line)
            continue
        gpus.append(
            GpuInfo(
                index=_num(fields[0]),
                name=fields[1],
                utilization_gpu=_num(fields[2]),
                utilization_memory=_num(fields[3]),
                memory_total_mb=_num(fields[4]),
                memory_used_mb=_num(fields[5]),
                temperature=_num(fields[6]),
                power_draw=_num(fields[7], float),
                power_limit=_num(fields[8], float),
            )
        )
    return gpus


def nvidia_available(binary: str = "nvidia-smi") -> bool:
    return shutil.which(binary) is not None


def collect_gpu_info(binary: str = "nvidia-smi", timeout: float = 15.0) -> list[GpuInfo]:
    """Query all NVIDIA GPUs. Empty list when no tooling is installed."""
    if not nvidia_available(binary):
        return []
    try:
        proc = subprocess.run(
            [binary, f"--query-gpu={','.join(QUERY_FIELDS)}", "--format=csv,noheader,nounits"],
            capture_output=True, text=True, timeout=timeout, check=False,
        )
    except (OSError, subprocess.SubprocessError) as e:
        raise GpuToolError(f"Failed to execute {binary}: {e}") from e
    if proc.returncode != 0:
        raise GpuToolError(f"{binary} failed: {proc.stderr.strip() or proc.returncode}")
    return parse_smi_csv(proc.stdout)


def evaluate_gpu(
    gpu: GpuInfo, temp_warn: int = 85, memory_warn: int = 90,
) -> tuple[HealthStatus, str]:
    """Degrade on high temperature or memory utilization."""
    issues = []
    if gpu.temperature > temp_warn:
        issues.append(f"High temperature: {gpu.temperature}°C")
    if gpu.utilization_memory > memory_warn:
        issues.append(f"High memory utilization: {gpu.utilization_memory}%")

    detail = (
        f"GPU: {gpu.utilization_gpu}%, Memory: {gpu.utilization_memory}%, "
        f"Temp: {gpu.temperature}°C, Power: {gpu.power_draw:.1f}W"
    )
    if issues:
        return HealthStatus.DEGRADED, f"{detail} - Issues: {', '.join(issues)}"
    return HealthStatus.HEALTHY, detail


class GpuProbe(BlockingProbe):
    """One verdict for all GPUs on the host: the worst device wins."""

    kind = "gpu"

    def __init__(
        self,
        name: str = "GPU Hardware",
        category: str = "gpu",
        binary: str = "nvidia-smi",
        timeout: float = 15.0,
        temp_warn: int = 85,
        memory_warn: int = 90,
    ) -> None:
        super().__init__(name, category)
        self.binary = binary
        self.timeout = timeout
        self.temp_warn = temp_warn
        self.memory_warn = memory_warn

    def check_blocking(self) -> ProbeResult:
        sw = Stopwatch()
        try:
            gpus = collect_gpu_info(self.binary, self.timeout)
        except GpuToolError as e:
            logger.error("NVIDIA GPU check failed: %s", e)
            return self.result(
                HealthStatus.UNHEALTHY, "NVIDIA check failed", latency_ms=sw.ms, error=str(e),
            )
        if not gpus:
            return self.result(
                HealthStatus.UNKNOWN, "No supported GPU hardware detected", latency_ms=sw.ms,
            )

        verdicts = [
            (gpu, *evaluate_gpu(gpu, self.temp_warn, self.memory_warn)) for gpu in gpus
        ]
        worst = overall_status(status for _, status, _ in verdicts)
        detail = " | ".join(
            f"GPU {gpu.index} ({gpu.name}): {text}" for gpu, _, text in verdicts
        )
        return self.result(worst, detail, latency_ms=sw.ms)
