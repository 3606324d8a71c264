"""
Sync Endpoints

- POST /api/sync-slips - Upsert a slip engine batch into storage
"""

import logging
from typing import Dict, Any, Optional

from fastapi import APIRouter, Body, Depends
from pymongo.errors import ConnectionFailure

from ..dependencies import get_request_id, get_sync_service
from ..exceptions import SlipApiError, UnexpectedError
from ..schemas import SyncResponse, ErrorResponse
from ..services import SyncService

logger = logging.getLogger("slip_api.routers")
router = APIRouter(prefix="/api", tags=["sync"])


@router.post(
    "/sync-slips",
    response_model=SyncResponse,
    responses={400: {"model": ErrorResponse}, 503: {"model": ErrorResponse}}
)
async def sync_slips(
    payload: Optional[Dict[str, Any]] = Body(None),
    request_id: str = Depends(get_request_id),
    service: SyncService = Depends(get_sync_service)
):
    """
    Sync a master slip with its generated slips, optimized slips and matches.

    Input:
    {
        "master_slip": {"id": 123, ...},
        "generated_slips": [{"id": 7, "legs": [...], ...}],
        "optimized_slips": [...],
        "matches": [{"id": 1, "match_id": 55, "match_data": {...}}]
    }

    Every write is an upsert, so a failed sync can simply be retried.
    Steps that completed before a failure stay applied.
    """
    logger.info(f"[{request_id}] ========== SLIP SYNC STARTED ==========")

    try:
        report = await service.sync(payload, request_id)
    except (SlipApiError, ConnectionFailure):
        raise
    except Exception as e:
        logger.error(f"[{request_id}] [SYNC] Error syncing slips: {e}", exc_info=True)
        raise UnexpectedError("Failed to sync slips", message=str(e))

    logger.info(f"[{request_id}] ========== SLIP SYNC COMPLETE ==========")
    return report.to_response()
