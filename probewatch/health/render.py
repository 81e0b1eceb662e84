"""Report rendering — rich table, one-line summary, JSON payload."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel
from rich.console import Console
from rich.table import Table

from .models import HealthReport, HealthStatus, ProbeResult

OutputFormat = Literal["table", "json", "summary"]
FORMATS: tuple[str, ...] = ("table", "json", "summary")

_STYLE = {
    HealthStatus.HEALTHY: ("✓ Healthy", "green"),
    HealthStatus.UNHEALTHY: ("✗ Unhealthy", "red"),
    HealthStatus.DEGRADED: ("⚠ Degraded", "yellow"),
    HealthStatus.UNKNOWN: ("? Unknown", "cyan"),
}


# ── JSON payload ─────────────────────────────────────────────────────────────


class ResultPayload(BaseModel):
    name: str
    category: str
    status: str
    detail: str
    latency_ms: float
    error: str | None = None
    observed_at: datetime


class ReportPayload(BaseModel):
    generated_at: datetime
    overall: str
    total: int
    healthy: int
    unhealthy: int
    degraded: int
    unknown: int
    counts: dict[str, int]
    results: list[ResultPayload]
    summary: str


def to_payload(report: HealthReport) -> ReportPayload:
    return ReportPayload(
        generated_at=report.generated_at,
        overall=report.overall.value,
        total=report.total,
        healthy=report.healthy,
        unhealthy=report.unhealthy,
        degraded=report.degraded,
        unknown=report.unknown,
        counts={s.value: n for s, n in report.counts.items()},
        results=[ResultPayload(**r.to_dict()) for r in report.results],
        summary=report.summary,
    )


def render_json(report: HealthReport) -> str:
    return to_payload(report).model_dump_json(indent=2)


# ── Console ──────────────────────────────────────────────────────────────────


def status_text(status: HealthStatus) -> str:
    label, color = _STYLE[status]
    return f"[{color}]{label}[/{color}]"


def build_table(results: tuple[ProbeResult, ...] | list[ProbeResult]) -> Table:
    table = Table(show_lines=False)
    table.add_column("Probe", style="bold")
    table.add_column("Category")
    table.add_column("Status")
    table.add_column("Latency", justify="right")
    table.add_column("Details")
    for r in results:
        detail = r.detail if not r.error else f"{r.detail} [dim]({r.error})[/dim]"
        table.add_row(
            r.name, r.category, status_text(r.status), f"{r.latency_ms:.0f}ms", detail,
        )
    return table


def print_table(report: HealthReport, console: Console) -> None:
    console.print("\n[bold underline]Infrastructure Health Report[/bold underline]")
    console.print(f"Timestamp: {report.generated_at:%Y-%m-%d %H:%M:%S} UTC")
    console.print(f"Overall Status: {status_text(report.overall)}\n")
    console.print(build_table(report.results))
    console.print(f"\n{report.summary}")


def print_summary(report: HealthReport, console: Console) -> None:
    console.print(
        f"\n[bold]Infrastructure Health[/bold] - {report.generated_at:%H:%M:%S}"
    )
    for r in report.results:
        console.print(f"{r.name}: {status_text(r.status)} ({r.latency_ms:.0f}ms)")
    console.print(report.summary)


def print_report(
    report: HealthReport,
    fmt: str = "table",
    console: Console | None = None,
) -> None:
    """Render ``report`` in ``fmt`` (table | json | summary)."""
    console = console or Console()
    if fmt == "json":
        console.print_json(render_json(report))
    elif fmt == "summary":
        print_summary(report, console)
    else:
        print_table(report, console)
