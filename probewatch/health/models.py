"""Health value objects — status ranking, per-probe results, pass reports."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Status ───────────────────────────────────────────────────────────────────


class HealthStatus(str, Enum):
    """Probe verdict, totally ordered by severity.

    ``HEALTHY < UNKNOWN < DEGRADED < UNHEALTHY`` — the overall verdict of a
    pass is simply ``max()`` over its results.
    """

    HEALTHY = "healthy"
    UNKNOWN = "unknown"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    # str's own comparisons would order alphabetically
    def __lt__(self, other: object) -> bool:
        if not isinstance(other, HealthStatus):
            return NotImplemented
        return self.severity < other.severity

    def __le__(self, other: object) -> bool:
        if not isinstance(other, HealthStatus):
            return NotImplemented
        return self.severity <= other.severity

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, HealthStatus):
            return NotImplemented
        return self.severity > other.severity

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, HealthStatus):
            return NotImplemented
        return self.severity >= other.severity


_SEVERITY = {
    HealthStatus.HEALTHY: 0,
    HealthStatus.UNKNOWN: 1,
    HealthStatus.DEGRADED: 2,
    HealthStatus.UNHEALTHY: 3,
}


# ── Results ──────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of a single probe invocation."""

    name: str
    status: HealthStatus
    detail: str = ""
    latency_ms: float = 0.0
    error: str | None = None
    category: str = ""
    observed_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("ProbeResult.name must be non-empty")
        if self.latency_ms < 0:
            object.__setattr__(self, "latency_ms", 0.0)

    @property
    def failed(self) -> bool:
        """True when the probe itself broke rather than reporting on its target."""
        return self.error is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "category": self.category,
            "status": self.status.value,
            "detail": self.detail,
            "latency_ms": round(self.latency_ms, 1),
            "error": self.error,
            "observed_at": self.observed_at.isoformat(),
        }


@dataclass(frozen=True)
class HealthReport:
    """Immutable snapshot of one aggregation pass.

    Built by :class:`~probewatch.health.aggregator.StatusAggregator`; ``summary``
    is recomputed from ``counts`` and ``overall`` on every access.
    """

    generated_at: datetime
    results: tuple[ProbeResult, ...]
    counts: Mapping[HealthStatus, int]
    overall: HealthStatus

    def __post_init__(self) -> None:
        object.__setattr__(self, "results", tuple(self.results))
        object.__setattr__(self, "counts", MappingProxyType(dict(self.counts)))

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def healthy(self) -> int:
        return self.counts.get(HealthStatus.HEALTHY, 0)

    @property
    def unknown(self) -> int:
        return self.counts.get(HealthStatus.UNKNOWN, 0)

    @property
    def degraded(self) -> int:
        return self.counts.get(HealthStatus.DEGRADED, 0)

    @property
    def unhealthy(self) -> int:
        return self.counts.get(HealthStatus.UNHEALTHY, 0)

    @property
    def summary(self) -> str:
        return (
            f"Overall {self.overall.value}: {self.healthy} healthy, "
            f"{self.unhealthy} unhealthy, {self.degraded} degraded, "
            f"{self.unknown} unknown out of {self.total} probes"
        )

    @property
    def ok(self) -> bool:
        return self.overall == HealthStatus.HEALTHY

    def by_category(self) -> dict[str, list[ProbeResult]]:
        groups: dict[str, list[ProbeResult]] = {}
        for r in self.results:
            groups.setdefault(r.category or "other", []).append(r)
        return groups
