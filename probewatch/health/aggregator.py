"""Status aggregation — reduces per-probe results to one ranked verdict."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from .models import HealthReport, HealthStatus, ProbeResult, utcnow


class StatusAggregator:
    """Pure reduction of a pass's results into a :class:`HealthReport`.

    The overall status is the most severe result status; a pass with no
    results is ``unknown`` since there is nothing to vouch for.
    """

    def aggregate(
        self,
        results: Iterable[ProbeResult],
        generated_at: datetime | None = None,
    ) -> HealthReport:
        ordered = tuple(results)
        counts = {status: 0 for status in HealthStatus}
        for r in ordered:
            counts[r.status] += 1

        return HealthReport(
            generated_at=generated_at or utcnow(),
            results=ordered,
            counts=counts,
            overall=overall_status(r.status for r in ordered),
        )


def overall_status(statuses: Iterable[HealthStatus]) -> HealthStatus:
    """Most severe status, or ``UNKNOWN`` for an empty input."""
    return max(statuses, default=HealthStatus.UNKNOWN)
