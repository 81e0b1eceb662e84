"""Probe registry — loads probes.yaml and builds the probe catalog.

Single source of truth for what gets probed. When no targets file exists,
the built-in catalog (a single-host stack on its default ports) is derived
from settings.

probes.yaml::

    probes:
      - id: postgres
        name: PostgreSQL
        type: sql
        category: infrastructure
        dsn: postgresql+psycopg2://postgres@db:5432/app
      - id: grafana
        type: http
        category: services
        url: http://grafana:3000/api/health
        expect_json: {database: ok}
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .config import Settings, settings
from .health.engine import HealthEngine
from .health.models import HealthStatus, ProbeResult
from .health.probe import Probe
from .health.runner import ProbeRunner
from .probes import (
    ConfigFilesProbe,
    ContainerProbe,
    DiskUsageProbe,
    DockerDaemonProbe,
    Endpoint,
    EtcdProbe,
    GpuProbe,
    HttpProbe,
    NetworkConnectivityProbe,
    PortUsageProbe,
    RedisProbe,
    SqlProbe,
    TcpProbe,
)

logger = logging.getLogger(__name__)

CATEGORIES = ("containers", "infrastructure", "services", "gpu", "system")


class RegistryError(Exception):
    """Raised when the targets file exists but cannot be read."""


# ── Data models ──────────────────────────────────────────────────────────────


@dataclass
class ProbeDef:
    """Definition of a single probe from the targets file."""

    id: str
    type: str  # http | sql | redis | etcd | container | docker | gpu | tcp | network | ports | disk | config_files
    category: str = "services"
    name: str = ""
    url: str = ""
    dsn: str = ""
    query: str = "SELECT version()"
    host: str = "127.0.0.1"
    port: int = 0
    container: str = ""
    binary: str = ""
    method: str = "GET"
    path: str = "."
    files: list[str] = field(default_factory=list)
    endpoints: list[Endpoint] = field(default_factory=list)
    expect_json: dict[str, str] = field(default_factory=dict)
    timeout: float = 10.0
    warn_percent: float = 90.0
    temp_warn: int = 85
    healthy_min: int = 4
    degraded_min: int = 2

    @property
    def display_name(self) -> str:
        return self.name or self.id


class UnknownTypeProbe(Probe):
    """Stands in for a definition whose type has no probe implementation."""

    kind = "unknown"

    def __init__(self, name: str, category: str, probe_type: str) -> None:
        super().__init__(name, category)
        self.probe_type = probe_type

    async def check(self) -> ProbeResult:
        return self.result(HealthStatus.UNKNOWN, f"Unknown probe type: {self.probe_type}")


# ── Registry ─────────────────────────────────────────────────────────────────


class ProbeRegistry:
    """Loads and caches probe definitions from the targets file."""

    def __init__(self, path: Path | None = None, config: Settings | None = None) -> None:
        self._config = config or settings
        self._path = path or Path(self._config.targets_file)
        self._defs: list[ProbeDef] = []
        self._loaded = False

    def load(self, force: bool = False) -> list[ProbeDef]:
        """Parse the targets file, or fall back to the built-in catalog."""
        if self._loaded and not force:
            return self._defs

        if not self._path.exists():
            logger.info("Targets file %s not found, using built-in catalog", self._path)
            self._defs = default_catalog(self._config)
            self._loaded = True
            return self._defs

        try:
            raw = yaml.safe_load(self._path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as e:
            raise RegistryError(f"Failed to parse {self._path}: {e}") from e
        if not isinstance(raw, dict):
            raise RegistryError(f"{self._path}: expected a mapping with a 'probes' list")

        self._defs = []
        for entry in raw.get("probes", []) or []:
            try:
                self._defs.append(_parse_def(entry))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed probe entry: %s", e)

        self._loaded = True
        logger.info("Loaded %d probe definitions from %s", len(self._defs), self._path)
        return self._defs

    @property
    def definitions(self) -> list[ProbeDef]:
        return self.load()

    def by_category(self) -> dict[str, list[ProbeDef]]:
        groups: dict[str, list[ProbeDef]] = {}
        for d in self.definitions:
            groups.setdefault(d.category, []).append(d)
        return groups

    def build(self) -> dict[str, list[Probe]]:
        """Instantiate probes grouped by category, in definition order."""
        return build_probes(self.definitions, self._config)


# ── Factories ────────────────────────────────────────────────────────────────


ProbeFactory = Callable[[ProbeDef, Settings], Probe]

PROBE_FACTORIES: dict[str, ProbeFactory] = {
    "http": lambda d, s: HttpProbe(
        d.display_name, d.url, d.category, method=d.method, timeout=d.timeout,
        expect_json=d.expect_json,
    ),
    "sql": lambda d, s: SqlProbe(d.display_name, d.dsn, d.category, query=d.query),
    "redis": lambda d, s: RedisProbe(d.display_name, d.url, d.category, timeout=d.timeout),
    "etcd": lambda d, s: EtcdProbe(d.display_name, d.url, d.category, timeout=d.timeout),
    "container": lambda d, s: ContainerProbe(
        d.display_name, d.container or d.id, d.category,
        binary=d.binary or s.docker_binary, timeout=d.timeout,
    ),
    "docker": lambda d, s: DockerDaemonProbe(
        d.display_name, d.category, binary=d.binary or s.docker_binary, timeout=d.timeout,
    ),
    "gpu": lambda d, s: GpuProbe(
        d.display_name, d.category, binary=d.binary or "nvidia-smi",
        temp_warn=d.temp_warn, memory_warn=int(d.warn_percent),
    ),
    "tcp": lambda d, s: TcpProbe(d.display_name, d.host, d.port, d.category, timeout=d.timeout),
    "network": lambda d, s: NetworkConnectivityProbe(
        d.display_name, d.endpoints, d.category, timeout=d.timeout,
    ),
    "ports": lambda d, s: PortUsageProbe(
        d.display_name, d.endpoints, d.category, timeout=d.timeout,
        healthy_min=d.healthy_min, degraded_min=d.degraded_min,
    ),
    "disk": lambda d, s: DiskUsageProbe(
        d.display_name, d.path, d.category, warn_percent=d.warn_percent,
    ),
    "config_files": lambda d, s: ConfigFilesProbe(
        d.display_name, d.files, d.category, base_dir=d.path,
    ),
}


def build_probes(defs: list[ProbeDef], config: Settings | None = None) -> dict[str, list[Probe]]:
    config = config or settings
    groups: dict[str, list[Probe]] = {}
    for d in defs:
        factory = PROBE_FACTORIES.get(d.type)
        if factory is None:
            probe: Probe = UnknownTypeProbe(d.display_name, d.category, d.type)
        else:
            probe = factory(d, config)
        groups.setdefault(d.category, []).append(probe)
    return groups


def default_catalog(config: Settings) -> list[ProbeDef]:
    """Built-in targets: the stack's services on their default local ports."""
    stack_ports = [
        Endpoint("127.0.0.1", 8081, "Manager API"),
        Endpoint("127.0.0.1", 8101, "PostgreSQL"),
        Endpoint("127.0.0.1", 8111, "Redis"),
        Endpoint("127.0.0.1", 8121, "etcd"),
        Endpoint("127.0.0.1", 9090, "Prometheus"),
        Endpoint("127.0.0.1", 3000, "Grafana"),
    ]
    builtin = [
        ProbeDef(id="postgres", name="PostgreSQL", type="sql", category="infrastructure",
                 dsn=config.postgres_dsn),
        ProbeDef(id="redis", name="Redis", type="redis", category="infrastructure",
                 url=config.redis_url, timeout=5.0),
        ProbeDef(id="etcd", name="etcd", type="etcd", category="infrastructure",
                 url=config.etcd_url, timeout=5.0),
        ProbeDef(id="manager", name="Manager API", type="http", category="services",
                 url=config.manager_url),
        ProbeDef(id="prometheus", name="Prometheus", type="http", category="services",
                 url=config.prometheus_url),
        ProbeDef(id="grafana", name="Grafana", type="http", category="services",
                 url=config.grafana_url, expect_json={"database": "ok"}),
        ProbeDef(id="gpu", name="GPU Hardware", type="gpu", category="gpu",
                 temp_warn=config.gpu_temp_warn_c, warn_percent=config.gpu_memory_warn_percent),
        ProbeDef(id="docker", name="Docker Daemon", type="docker", category="system"),
        ProbeDef(id="disk", name="System Resources", type="disk", category="system",
                 path=config.disk_path, warn_percent=config.disk_warn_percent),
        ProbeDef(id="config-files", name="Configuration Files", type="config_files",
                 category="system", files=list(config.config_files)),
        ProbeDef(id="network", name="Network Connectivity", type="network", category="system",
                 endpoints=stack_ports, timeout=3.0),
        ProbeDef(id="ports", name="Port Usage", type="ports", category="system",
                 endpoints=stack_ports, timeout=3.0),
    ]
    taken = {d.display_name for d in builtin}
    containers = [
        ProbeDef(
            id=f"container-{c}",
            name=f"{c} (container)" if c in taken else c,
            type="container",
            category="containers",
            container=c,
        )
        for c in dict.fromkeys(config.containers)
    ]
    return containers + builtin


# ── Parsers ──────────────────────────────────────────────────────────────────


def _parse_endpoint(raw: Any) -> Endpoint:
    if isinstance(raw, str):
        host, _, port = raw.rpartition(":")
        return Endpoint(host or "127.0.0.1", int(port))
    return Endpoint(raw.get("host", "127.0.0.1"), int(raw["port"]), raw.get("label", ""))


def _parse_def(raw: dict[str, Any]) -> ProbeDef:
    return ProbeDef(
        id=raw["id"],
        type=raw.get("type", "http"),
        category=raw.get("category", "services"),
        name=raw.get("name", ""),
        url=raw.get("url", ""),
        dsn=raw.get("dsn", ""),
        query=raw.get("query", "SELECT version()"),
        host=raw.get("host", "127.0.0.1"),
        port=int(raw.get("port", 0)),
        container=raw.get("container", ""),
        binary=raw.get("binary", ""),
        method=raw.get("method", "GET"),
        path=raw.get("path", "."),
        files=list(raw.get("files") or []),
        endpoints=[_parse_endpoint(e) for e in raw.get("endpoints") or []],
        expect_json={str(k): str(v) for k, v in (raw.get("expect_json") or {}).items()},
        timeout=float(raw.get("timeout", 10.0)),
        warn_percent=float(raw.get("warn_percent", 90.0)),
        temp_warn=int(raw.get("temp_warn", 85)),
        healthy_min=int(raw.get("healthy_min", 4)),
        degraded_min=int(raw.get("degraded_min", 2)),
    )


def build_engine(
    registry: ProbeRegistry | None = None, config: Settings | None = None,
) -> HealthEngine:
    """Wire the registry's probes into a ready-to-run engine."""
    config = config or settings
    registry = registry or ProbeRegistry(config=config)
    groups: dict[str, list[Probe]] = {c: [] for c in CATEGORIES}
    groups.update(registry.build())
    return HealthEngine(
        groups,
        timeout=config.probe_timeout,
        runner=ProbeRunner(max_concurrency=config.max_concurrency),
    )
