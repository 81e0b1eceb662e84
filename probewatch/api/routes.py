"""API routes for the health engine.

Endpoints:
  GET  /api/health               — latest report from the background monitor
  GET  /api/health/all           — run every probe now
  GET  /api/health/{category}    — run one category now
  GET  /api/gpu/details          — per-device GPU metrics
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Request

from ..health.render import ReportPayload, to_payload
from ..health.runner import ProbeConfigError
from ..probes.gpu import GpuToolError, collect_gpu_info

logger = logging.getLogger(__name__)

health_router = APIRouter()


@health_router.get("/health", response_model=ReportPayload | None)
def latest_report(request: Request) -> ReportPayload | None:
    """Most recent report produced by the background monitor, if any."""
    monitor = getattr(request.app.state, "monitor", None)
    if monitor is None or monitor.latest is None:
        return None
    return to_payload(monitor.latest)


@health_router.get("/health/all", response_model=ReportPayload)
async def check_all(request: Request) -> ReportPayload:
    report = await request.app.state.engine.check()
    return to_payload(report)


@health_router.get("/health/{category}", response_model=ReportPayload)
async def check_category(category: str, request: Request) -> ReportPayload:
    engine = request.app.state.engine
    try:
        report = await engine.check([category])
    except ProbeConfigError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return to_payload(report)


@health_router.get("/gpu/details")
async def gpu_details() -> dict[str, Any]:
    try:
        gpus = await asyncio.to_thread(collect_gpu_info)
    except GpuToolError as e:
        logger.error("GPU details failed: %s", e)
        raise HTTPException(status_code=502, detail=str(e))
    return {
        "available": bool(gpus),
        "gpus": [g.to_dict() for g in gpus],
    }
