"""Entry point for the probewatch health checker."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from collections.abc import Sequence

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import settings
from .health.engine import HealthEngine
from .health.models import HealthReport
from .health.monitor import Monitor
from .health.render import FORMATS, print_report
from .health.runner import ProbeConfigError
from .probes.gpu import GpuToolError, collect_gpu_info
from .registry import CATEGORIES, RegistryError, build_engine

console = Console()
logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_NOT_HEALTHY = 1
EXIT_CONFIG_ERROR = 2


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )


def exit_code(report: HealthReport) -> int:
    return EXIT_OK if report.ok else EXIT_NOT_HEALTHY


async def run_once(
    engine: HealthEngine,
    categories: Sequence[str] | None,
    fmt: str,
    timeout: float | None = None,
) -> int:
    """Run one pass, render it, and return the process exit code."""
    report = await engine.check(categories, timeout=timeout)
    print_report(report, fmt, console)
    return exit_code(report)


async def run_monitor(
    engine: HealthEngine,
    interval: float,
    max_runs: int,
    fmt: str,
    categories: Sequence[str] | None = None,
) -> int:
    monitor = Monitor(
        engine,
        sink=lambda report: print_report(report, fmt, console),
        interval=interval,
        max_runs=max_runs,
        categories=categories,
    )
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, monitor.request_stop)
        except (NotImplementedError, RuntimeError) as e:
            logger.debug("No loop signal handler for %s: %s", sig, e)
    await monitor.run()
    return EXIT_OK


def print_gpu_details() -> None:
    try:
        gpus = collect_gpu_info()
    except GpuToolError as e:
        console.print(f"[red]GPU details unavailable:[/red] {e}")
        return
    if not gpus:
        console.print("GPU Summary: No supported GPU hardware detected\n")
        return
    console.print(f"GPU Summary: {len(gpus)} NVIDIA GPU(s) available\n")
    table = Table(title="GPU Details")
    for col in ("GPU", "Name", "Memory", "Util GPU", "Util Mem", "Temp", "Power"):
        table.add_column(col)
    for g in gpus:
        table.add_row(
            str(g.index),
            g.name,
            f"{g.memory_used_mb}/{g.memory_total_mb} MB ({g.memory_percent:.1f}%)",
            f"{g.utilization_gpu}%",
            f"{g.utilization_memory}%",
            f"{g.temperature}°C",
            f"{g.power_draw:.1f}W / {g.power_limit:.1f}W",
        )
    console.print(table)


def run_server(host: str, port: int) -> None:
    """Start the FastAPI server."""
    import uvicorn

    from .api.server import create_app

    console.print(Panel("Starting probewatch API Server", style="bold green"))
    uvicorn.run(create_app(), host=host, port=port, reload=False)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Infrastructure health checker")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command")

    def add_output_args(p: argparse.ArgumentParser, default_format: str) -> None:
        p.add_argument("-f", "--format", choices=FORMATS, default=default_format)
        p.add_argument(
            "-t", "--timeout", type=float, default=settings.probe_timeout,
            help="Timeout for each probe in seconds",
        )

    add_output_args(sub.add_parser("all", help="Run all health checks"), settings.output_format)
    for category in CATEGORIES:
        p = sub.add_parser(category, help=f"Check {category} only")
        add_output_args(p, settings.output_format)
        if category == "gpu":
            p.add_argument("-d", "--detailed", action="store_true", help="Show GPU details")

    mon = sub.add_parser("monitor", help="Monitor services continuously")
    add_output_args(mon, "summary")
    mon.add_argument(
        "-i", "--interval", type=float, default=settings.monitor_interval,
        help="Seconds between passes",
    )
    mon.add_argument(
        "-n", "--max-runs", type=int, default=settings.monitor_max_runs,
        help="Number of passes (0 for infinite)",
    )
    mon.add_argument(
        "-c", "--category", action="append", choices=CATEGORIES,
        help="Restrict to a category (repeatable)",
    )

    srv = sub.add_parser("serve", help="Start the API server")
    srv.add_argument("--host", default=settings.api_host)
    srv.add_argument("--port", type=int, default=settings.api_port)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return EXIT_CONFIG_ERROR

    setup_logging(args.verbose)

    if args.command == "serve":
        run_server(args.host, args.port)
        return EXIT_OK

    try:
        engine = build_engine()
        engine.timeout = args.timeout
        if args.command == "monitor":
            return asyncio.run(
                run_monitor(engine, args.interval, args.max_runs, args.format, args.category)
            )
        if args.command == "gpu" and args.detailed:
            print_gpu_details()
        categories = None if args.command == "all" else [args.command]
        return asyncio.run(run_once(engine, categories, args.format))
    except (ProbeConfigError, RegistryError, ValueError) as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        return EXIT_CONFIG_ERROR


if __name__ == "__main__":
    sys.exit(main())
