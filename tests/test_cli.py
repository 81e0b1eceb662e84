"""Tests for the command-line entry point."""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest

from probewatch.health.engine import HealthEngine
from probewatch.health.models import HealthStatus
from probewatch.main import EXIT_CONFIG_ERROR, EXIT_NOT_HEALTHY, EXIT_OK, build_parser, main
from probewatch.registry import RegistryError

from .conftest import StaticProbe


def _engine(services_status: HealthStatus = HealthStatus.HEALTHY) -> HealthEngine:
    return HealthEngine(
        {
            "containers": [],
            "infrastructure": [StaticProbe("PostgreSQL")],
            "services": [StaticProbe("Manager API", services_status)],
            "gpu": [StaticProbe("GPU Hardware", HealthStatus.UNKNOWN)],
            "system": [],
        }
    )


class TestParser:
    def test_category_commands(self) -> None:
        args = build_parser().parse_args(["infrastructure", "-f", "json", "-t", "5"])
        assert args.command == "infrastructure"
        assert args.format == "json"
        assert args.timeout == 5.0

    def test_monitor_options(self) -> None:
        args = build_parser().parse_args(["monitor", "-i", "10", "-n", "3", "-c", "gpu", "-c", "system"])
        assert (args.interval, args.max_runs, args.category) == (10.0, 3, ["gpu", "system"])
        assert args.format == "summary"

    def test_rejects_unknown_format(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["all", "-f", "xml"])


class TestMain:
    def test_no_command_prints_help(self, capsys) -> None:
        assert main([]) == EXIT_CONFIG_ERROR
        assert "usage" in capsys.readouterr().out.lower()

    def test_healthy_category_exits_zero(self, capsys) -> None:
        with patch("probewatch.main.build_engine", return_value=_engine()):
            code = main(["infrastructure", "-f", "json"])
        assert code == EXIT_OK
        data = json.loads(capsys.readouterr().out)
        assert [r["name"] for r in data["results"]] == ["PostgreSQL"]

    def test_degraded_exits_nonzero(self) -> None:
        with patch("probewatch.main.build_engine", return_value=_engine(HealthStatus.DEGRADED)):
            assert main(["all", "-f", "summary"]) == EXIT_NOT_HEALTHY

    def test_unknown_exits_nonzero(self) -> None:
        with patch("probewatch.main.build_engine", return_value=_engine()):
            assert main(["gpu", "-f", "summary"]) == EXIT_NOT_HEALTHY

    def test_timeout_flag_applied(self) -> None:
        engine = _engine()
        with patch("probewatch.main.build_engine", return_value=engine):
            main(["all", "-f", "summary", "-t", "4"])
        assert engine.timeout == 4.0

    def test_monitor_bounded(self, capsys) -> None:
        engine = _engine()
        with patch("probewatch.main.build_engine", return_value=engine):
            code = main(["monitor", "-i", "0", "-n", "2", "-c", "infrastructure"])
        assert code == EXIT_OK
        assert engine.probes(["infrastructure"])[0].calls == 2
        assert capsys.readouterr().out.count("Overall healthy") == 2

    def test_registry_error(self, capsys) -> None:
        with patch("probewatch.main.build_engine", side_effect=RegistryError("bad yaml")):
            assert main(["all"]) == EXIT_CONFIG_ERROR
        assert "bad yaml" in capsys.readouterr().out

    def test_duplicate_probe_names(self) -> None:
        engine = HealthEngine({"services": [StaticProbe("api"), StaticProbe("api")]})
        with patch("probewatch.main.build_engine", return_value=engine):
            assert main(["services"]) == EXIT_CONFIG_ERROR
