"""Probe contract — one independent check against one target.

A probe owns its target (DSN, URL, container name, …) and any client it needs.
``check()`` must always return a :class:`ProbeResult`; every failure mode of
the target is translated into a status/detail/error triple by the probe itself.
The runner still guards against probes that break this rule.
"""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod

from .models import HealthStatus, ProbeResult


class Probe(ABC):
    """Base class for all probes."""

    #: Probe kind, used by the registry dispatcher and in logs.
    kind: str = "probe"

    def __init__(self, name: str, category: str = "") -> None:
        if not name:
            raise ValueError("Probe name must be non-empty")
        self.name = name
        self.category = category

    @abstractmethod
    async def check(self) -> ProbeResult:
        """Run the check and return exactly one result."""

    def result(
        self,
        status: HealthStatus,
        detail: str = "",
        *,
        latency_ms: float = 0.0,
        error: str | None = None,
    ) -> ProbeResult:
        """Build a result tagged with this probe's name and category."""
        return ProbeResult(
            name=self.name,
            status=status,
            detail=detail,
            latency_ms=round(latency_ms, 1),
            error=error,
            category=self.category,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, category={self.category!r})"


class BlockingProbe(Probe):
    """Probe whose work is synchronous I/O (subprocess, blocking clients).

    ``check_blocking()`` runs on a worker thread so it never stalls the event
    loop or sibling probes. Inside a batch the runner hands it to the batch
    thread pool; called on its own it uses the loop's default executor.
    """

    async def check(self) -> ProbeResult:
        return await asyncio.to_thread(self.check_blocking)

    @abstractmethod
    def check_blocking(self) -> ProbeResult:
        """Synchronous body of the check."""


class Stopwatch:
    """Elapsed-time helper: ``sw = Stopwatch(); ...; sw.ms``."""

    def __init__(self) -> None:
        self._t0 = time.perf_counter()

    @property
    def ms(self) -> float:
        return (time.perf_counter() - self._t0) * 1000
