"""FastAPI server exposing health reports over HTTP."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from ..config import Settings, settings
from ..health.engine import HealthEngine
from ..health.monitor import Monitor
from ..registry import build_engine
from .routes import health_router

logger = logging.getLogger(__name__)


def create_app(engine: HealthEngine | None = None, config: Settings | None = None) -> FastAPI:
    """Build the app; ``engine`` defaults to the registry-built one."""
    config = config or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "engine", None) is None:
            app.state.engine = build_engine(config=config)

        monitor = None
        if config.api_monitor:
            monitor = Monitor(
                app.state.engine,
                interval=config.monitor_interval,
                max_runs=config.monitor_max_runs,
            )
            try:
                await monitor.start()
            except Exception:
                logger.exception("Health monitor failed to start")
        app.state.monitor = monitor

        yield

        if monitor is not None:
            await monitor.stop()

    app = FastAPI(title="probewatch", lifespan=lifespan)
    app.state.engine = engine
    app.state.monitor = None
    app.include_router(health_router, prefix="/api")
    return app
