from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from ..deps import HealthMonitorDep, SettingsDep

router = APIRouter(tags=["root"])


def _connection_state(up: bool) -> str:
    return "connected" if up else "disconnected"


@router.get("/")
async def read_root(settings: SettingsDep) -> dict[str, Any]:
    return {
        "success": True,
        "message": "Demo Backend API",
        "version": settings.version,
        "timestamp": datetime.now(UTC).isoformat(),
    }


@router.get("/health")
async def read_health(monitor: HealthMonitorDep) -> JSONResponse:
    """Probe both pools. 200 only when both answer, 503 otherwise."""
    report = await monitor.aprobe()
    body = {
        "success": report.is_healthy,
        "status": str(report.status),
        "timestamp": report.timestamp.isoformat(),
        "database": {
            "primary": _connection_state(report.writable_up),
            "replica": _connection_state(report.readable_up),
        },
        "pools": {
            "writable": report.writable.model_dump(mode="json"),
            "readable": report.readable.model_dump(mode="json"),
        },
    }
    return JSONResponse(
        status_code=status.HTTP_200_OK if report.is_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=body,
    )
