"""SQL database probe — connect, then run a version query."""

from __future__ import annotations

import logging

import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError

from ..health.models import HealthStatus, ProbeResult
from ..health.probe import BlockingProbe, Stopwatch

logger = logging.getLogger(__name__)


class SqlProbe(BlockingProbe):
    """Connects with SQLAlchemy and runs ``query``.

    Connection failure → unhealthy. Connected but the query fails → degraded.
    The engine is created and disposed within each check.
    """

    kind = "sql"

    def __init__(
        self,
        name: str,
        dsn: str,
        category: str = "infrastructure",
        query: str = "SELECT version()",
        connect_timeout: int = 10,
    ) -> None:
        super().__init__(name, category)
        self.dsn = dsn
        self.query = query
        self.connect_timeout = connect_timeout

    def _connect_args(self) -> dict[str, int]:
        if self.dsn.startswith("postgresql"):
            return {"connect_timeout": self.connect_timeout}
        return {}

    def check_blocking(self) -> ProbeResult:
        sw = Stopwatch()
        try:
            engine = sa.create_engine(self.dsn, connect_args=self._connect_args())
        except (SQLAlchemyError, ImportError, ValueError) as e:
            return self.result(
                HealthStatus.UNHEALTHY, "Invalid database configuration",
                latency_ms=sw.ms, error=f"{type(e).__name__}: {e}",
            )

        try:
            try:
                conn = engine.connect()
            except SQLAlchemyError as e:
                logger.debug("%s connection failed: %s", self.name, e)
                return self.result(
                    HealthStatus.UNHEALTHY, "Connection failed",
                    latency_ms=sw.ms, error=_short(e),
                )
            with conn:
                try:
                    version = conn.execute(sa.text(self.query)).scalar()
                except SQLAlchemyError as e:
                    return self.result(
                        HealthStatus.DEGRADED, f"Connected but query failed: {_short(e)}",
                        latency_ms=sw.ms,
                    )
        finally:
            engine.dispose()

        if version is None:
            detail = "Connected - Version query returned no results"
        else:
            detail = "Connected - " + " ".join(str(version).split()[:2])
        return self.result(HealthStatus.HEALTHY, detail, latency_ms=sw.ms)


def _short(e: Exception) -> str:
    """First line of a DB error (SQLAlchemy appends SQL and doc links)."""
    text = str(getattr(e, "orig", None) or e)
    return text.strip().splitlines()[0] if text.strip() else type(e).__name__
