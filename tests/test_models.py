"""Tests for health value objects and the aggregator."""

from __future__ import annotations

import dataclasses
from datetime import datetime, timezone

import pytest

from probewatch.health.aggregator import StatusAggregator, overall_status
from probewatch.health.models import HealthReport, HealthStatus, ProbeResult

from .conftest import make_result

H, U, D, X = (
    HealthStatus.HEALTHY,
    HealthStatus.UNKNOWN,
    HealthStatus.DEGRADED,
    HealthStatus.UNHEALTHY,
)


# ── HealthStatus ─────────────────────────────────────────────────────────────


class TestHealthStatus:
    def test_severity_order(self) -> None:
        assert H < U < D < X
        assert sorted([X, H, D, U]) == [H, U, D, X]

    def test_max_picks_most_severe(self) -> None:
        assert max([H, D, U]) == D
        assert max([H, X, D]) == X

    def test_comparisons_not_alphabetical(self) -> None:
        # "degraded" < "healthy" as strings, but not as severities
        assert D > H
        assert X >= D
        assert H <= H

    def test_value_round_trip(self) -> None:
        assert HealthStatus("unhealthy") is X
        assert X.value == "unhealthy"


# ── ProbeResult ──────────────────────────────────────────────────────────────


class TestProbeResult:
    def test_auto_timestamp(self) -> None:
        r = make_result("db", H)
        assert r.observed_at.tzinfo is not None

    def test_immutable(self) -> None:
        r = make_result("db", H)
        with pytest.raises(dataclasses.FrozenInstanceError):
            r.status = X  # type: ignore[misc]

    def test_empty_name_rejected(self) -> None:
        with pytest.raises(ValueError):
            ProbeResult(name="", status=H)

    def test_negative_latency_clamped(self) -> None:
        assert make_result("db", H, latency_ms=-5).latency_ms == 0.0

    def test_failed_only_with_error(self) -> None:
        assert not make_result("db", X).failed
        assert make_result("db", X, error="ConnectError").failed

    def test_to_dict_shape(self) -> None:
        d = make_result("db", D, detail="slow", latency_ms=12.345, category="infra").to_dict()
        assert d["status"] == "degraded"
        assert d["latency_ms"] == 12.3
        assert d["error"] is None
        assert set(d) == {"name", "category", "status", "detail", "latency_ms", "error", "observed_at"}


# ── Aggregation ──────────────────────────────────────────────────────────────


@pytest.fixture
def aggregator() -> StatusAggregator:
    return StatusAggregator()


class TestAggregator:
    def test_mixed_batch(self, aggregator: StatusAggregator) -> None:
        results = [make_result(f"p{i}", s) for i, s in enumerate([H, D, H, X])]
        report = aggregator.aggregate(results)
        assert report.overall == X
        assert dict(report.counts) == {H: 2, D: 1, X: 1, U: 0}

    def test_all_healthy(self, aggregator: StatusAggregator) -> None:
        report = aggregator.aggregate([make_result("a", H), make_result("b", H)])
        assert report.overall == H
        assert report.ok

    def test_single_unknown(self, aggregator: StatusAggregator) -> None:
        report = aggregator.aggregate([make_result("gpu", U)])
        assert report.overall == U
        assert not report.ok

    def test_empty(self, aggregator: StatusAggregator) -> None:
        report = aggregator.aggregate([])
        assert report.overall == U
        assert all(n == 0 for n in report.counts.values())
        assert set(report.counts) == set(HealthStatus)
        assert report.total == 0

    @pytest.mark.parametrize(
        "statuses",
        [[H], [U, H], [D, D, H], [X, U, D, H], [H] * 7, [U, U]],
    )
    def test_overall_is_max_and_counts_sum(self, aggregator: StatusAggregator, statuses) -> None:
        report = aggregator.aggregate(make_result(f"p{i}", s) for i, s in enumerate(statuses))
        assert report.overall == max(statuses)
        assert sum(report.counts.values()) == len(report.results) == len(statuses)

    def test_preserves_invocation_order(self, aggregator: StatusAggregator) -> None:
        names = ["z", "a", "m"]
        report = aggregator.aggregate([make_result(n, X if n == "a" else H) for n in names])
        assert [r.name for r in report.results] == names

    def test_explicit_generated_at(self, aggregator: StatusAggregator) -> None:
        ts = datetime(2025, 1, 1, tzinfo=timezone.utc)
        assert aggregator.aggregate([], generated_at=ts).generated_at == ts

    def test_overall_status_helper(self) -> None:
        assert overall_status([]) == U
        assert overall_status(iter([H, D])) == D


# ── HealthReport ─────────────────────────────────────────────────────────────


class TestHealthReport:
    def test_summary_matches_counts(self) -> None:
        report = StatusAggregator().aggregate(
            [make_result("a", H), make_result("b", D), make_result("c", X)]
        )
        assert report.summary == (
            "Overall unhealthy: 1 healthy, 1 unhealthy, 1 degraded, 0 unknown out of 3 probes"
        )
        assert report.healthy + report.unhealthy + report.degraded + report.unknown == report.total

    def test_counts_read_only(self) -> None:
        report = StatusAggregator().aggregate([make_result("a", H)])
        with pytest.raises(TypeError):
            report.counts[H] = 5  # type: ignore[index]

    def test_results_is_tuple(self) -> None:
        report = HealthReport(
            generated_at=datetime.now(timezone.utc),
            results=[make_result("a", H)],  # type: ignore[arg-type]
            counts={H: 1},
            overall=H,
        )
        assert isinstance(report.results, tuple)

    def test_by_category(self) -> None:
        report = StatusAggregator().aggregate([
            make_result("pg", H, category="infrastructure"),
            make_result("api", D, category="services"),
            make_result("redis", H, category="infrastructure"),
        ])
        groups = report.by_category()
        assert [r.name for r in groups["infrastructure"]] == ["pg", "redis"]
        assert [r.name for r in groups["services"]] == ["api"]
