"""
Health Check and System Information Endpoints

Provides service info, storage health checks and runtime reconnection.
These routes stay reachable while storage is down.
"""

import logging
import time

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ..config import SERVICE_NAME, ENGINE_VERSION
from ..dependencies import get_gateway, get_request_id
from ..storage import ensure_indexes
from ..utils import to_iso_timestamp, utcnow

logger = logging.getLogger("slip_api.routers")
router = APIRouter(tags=["health"])


@router.get("/")
async def root(request: Request, gateway=Depends(get_gateway)):
    """Service information endpoint."""
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "engine_version": ENGINE_VERSION,
        "database": gateway.database_name if gateway.is_ready else None,
        "db_connected": gateway.is_ready,
        "storage_state": gateway.state.value,
        "uptime": round(time.monotonic() - request.app.state.started_at, 3),
        "timestamp": to_iso_timestamp(utcnow()),
    }


@router.get("/health")
async def health_check(gateway=Depends(get_gateway)):
    """
    Storage health check for monitoring.

    Returns 200 after a successful ping, 503 otherwise.
    """
    timestamp = to_iso_timestamp(utcnow())

    if not gateway.is_ready:
        logger.warning(f"[HEALTH] Storage {gateway.state.value}")
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "database": {"connected": False, "state": gateway.state.value},
                "timestamp": timestamp,
            }
        )

    if not await gateway.ping():
        logger.error("[HEALTH] Database ping failed")
        gateway.mark_degraded("Database ping failed")
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "error": "Database ping failed",
                "timestamp": timestamp,
            }
        )

    logger.info("[HEALTH] Health check requested - Status: healthy")
    return {
        "status": "healthy",
        "database": {
            "connected": True,
            "name": gateway.database_name,
            "collections": gateway.describe()["collections"],
        },
        "timestamp": timestamp,
    }


@router.post("/api/db/reconnect")
async def reconnect(
    gateway=Depends(get_gateway),
    request_id: str = Depends(get_request_id)
):
    """Attempt a storage reconnection at runtime."""
    logger.info(f"[{request_id}] [HEALTH] Reconnect requested ({gateway.state.value})")

    if not await gateway.connect():
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "message": "Reconnect attempt failed",
                "error": gateway.last_error,
            }
        )

    await ensure_indexes(gateway)
    return {
        "success": True,
        "message": "Reconnected to database",
        "database": gateway.database_name,
    }

