from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env file."""

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "PROBEWATCH_",
        "extra": "ignore",
    }

    # Probe execution
    probe_timeout: float = 30.0  # seconds, per probe
    max_concurrency: int = 0  # 0 = one task per probe

    # Continuous monitoring
    monitor_interval: float = 30.0  # seconds between passes
    monitor_max_runs: int = 0  # 0 = run until stopped

    # Output
    output_format: str = "table"  # table | json | summary

    # Static target list (built-in catalog is used when the file is missing)
    targets_file: str = "probes.yaml"

    # Built-in catalog targets
    postgres_dsn: str = "postgresql+psycopg2://postgres@127.0.0.1:8101/backend"
    redis_url: str = "redis://127.0.0.1:8111/0"
    etcd_url: str = "http://127.0.0.1:8121"
    manager_url: str = "http://127.0.0.1:8081/server/version"
    prometheus_url: str = "http://127.0.0.1:9090/-/healthy"
    grafana_url: str = "http://127.0.0.1:3000/api/health"
    docker_binary: str = "docker"
    containers: list[str] = []  # container names to inspect
    config_files: list[str] = [
        "manager.toml",
        "agent.toml",
        "storage-proxy.toml",
        "docker-compose.halfstack.yml",
    ]
    disk_path: str = "."
    disk_warn_percent: float = 90.0
    gpu_temp_warn_c: int = 85
    gpu_memory_warn_percent: int = 90

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8095
    api_monitor: bool = True  # refresh the latest report in the background

    # Logging
    log_level: str = "INFO"


settings = Settings()
