"""Health engine — runs categorized probe batches and aggregates them.

The engine is handed already-constructed probes grouped by category
("containers", "infrastructure", …). Categories only select and group probes
for reporting; every probe runs through the same runner.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence

from .aggregator import StatusAggregator
from .models import HealthReport
from .probe import Probe, Stopwatch
from .runner import ProbeConfigError, ProbeRunner

logger = logging.getLogger(__name__)


class HealthEngine:
    """One-shot entry point: ``report = await engine.check(["gpu"])``."""

    def __init__(
        self,
        probes: Mapping[str, Sequence[Probe]],
        timeout: float = 30.0,
        runner: ProbeRunner | None = None,
        aggregator: StatusAggregator | None = None,
    ) -> None:
        self._groups: dict[str, list[Probe]] = {}
        for category, group in probes.items():
            for p in group:
                if not p.category:
                    p.category = category
            self._groups[category] = list(group)
        self.timeout = timeout
        self.runner = runner or ProbeRunner()
        self.aggregator = aggregator or StatusAggregator()

    @property
    def categories(self) -> list[str]:
        return list(self._groups)

    def probes(self, categories: Iterable[str] | None = None) -> list[Probe]:
        """Probes of the selected categories, in configured order."""
        if categories is None:
            selected = self.categories
        else:
            selected = list(categories)
            unknown = [c for c in selected if c not in self._groups]
            if unknown:
                raise ProbeConfigError(
                    f"Unknown probe categories: {', '.join(unknown)} "
                    f"(available: {', '.join(self.categories) or 'none'})"
                )
        return [p for c in selected for p in self._groups[c]]

    async def check(
        self,
        categories: Iterable[str] | None = None,
        timeout: float | None = None,
    ) -> HealthReport:
        """Run one pass over the selected categories and return its report."""
        batch = self.probes(categories)
        sw = Stopwatch()
        logger.info("Running %d probes", len(batch))
        results = await self.runner.run(batch, self.timeout if timeout is None else timeout)
        report = self.aggregator.aggregate(results)
        logger.info("Pass completed in %.2fs: %s", sw.ms / 1000, report.summary)
        return report
