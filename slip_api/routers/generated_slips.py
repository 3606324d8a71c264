"""
Generated Slip Endpoints

- GET    /api/master-slips/{id}/generated-slips - Paginated listing
- POST   /api/master-slips/{id}/generated-slips - Batch insert
- DELETE /api/master-slips/{id}/slips           - Delete all generated slips
- GET    /api/generated-slips/{slip_id}         - Fetch one
- PATCH  /api/generated-slips/{slip_id}/status  - Status transition
"""

import logging
from typing import Dict, Any, Optional

from fastapi import APIRouter, Body, Depends
from pymongo.errors import ConnectionFailure

from ..dependencies import (
    get_generated_slip_service,
    get_request_id,
    get_validation_service,
)
from ..exceptions import SlipApiError, UnexpectedError
from ..services import GeneratedSlipService, ValidationService

logger = logging.getLogger("slip_api.routers")
router = APIRouter(prefix="/api", tags=["generated-slips"])


@router.get("/master-slips/{master_slip_id}/generated-slips")
async def list_generated_slips(
    master_slip_id: str,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    status: Optional[str] = None,
    risk_level: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = None,
    request_id: str = Depends(get_request_id),
    service: GeneratedSlipService = Depends(get_generated_slip_service),
    validation: ValidationService = Depends(get_validation_service)
):
    try:
        paging = validation.parse_pagination(
            page, limit, sort_by, sort_order, default_sort="generated_at"
        )
        return await service.list_generated_slips(
            master_slip_id, paging, status=status, risk_level=risk_level
        )
    except (SlipApiError, ConnectionFailure):
        raise
    except Exception as e:
        logger.error(
            f"[{request_id}] Error fetching generated slips for master slip "
            f"{master_slip_id}: {e}",
            exc_info=True
        )
        raise UnexpectedError("Failed to fetch generated slips", message=str(e))


@router.post("/master-slips/{master_slip_id}/generated-slips", status_code=201)
async def create_generated_slips(
    master_slip_id: str,
    body: Optional[Dict[str, Any]] = Body(None),
    request_id: str = Depends(get_request_id),
    service: GeneratedSlipService = Depends(get_generated_slip_service)
):
    """
    Batch insert generated slips.

    Input:
    {"slips": [{"slip_id": "...", "legs": [...], ...}, ...]}
    """
    try:
        return await service.create_generated_slips(master_slip_id, body, request_id)
    except (SlipApiError, ConnectionFailure):
        raise
    except Exception as e:
        logger.error(
            f"[{request_id}] Error batch inserting generated slips: {e}",
            exc_info=True
        )
        raise UnexpectedError("Failed to create generated slips", message=str(e))


@router.delete("/master-slips/{master_slip_id}/slips")
async def delete_slips(
    master_slip_id: str,
    request_id: str = Depends(get_request_id),
    service: GeneratedSlipService = Depends(get_generated_slip_service)
):
    """Administrative cleanup of every generated slip of a master slip."""
    try:
        return await service.delete_slips(master_slip_id, request_id)
    except (SlipApiError, ConnectionFailure):
        raise
    except Exception as e:
        logger.error(
            f"[{request_id}] Error deleting slips for master slip {master_slip_id}: {e}",
            exc_info=True
        )
        raise UnexpectedError("Failed to delete slips", message=str(e))


@router.get("/generated-slips/{slip_id}")
async def get_generated_slip(
    slip_id: str,
    request_id: str = Depends(get_request_id),
    service: GeneratedSlipService = Depends(get_generated_slip_service)
):
    try:
        return await service.get_generated_slip(slip_id)
    except (SlipApiError, ConnectionFailure):
        raise
    except Exception as e:
        logger.error(
            f"[{request_id}] Error fetching generated slip {slip_id}: {e}",
            exc_info=True
        )
        raise UnexpectedError("Failed to fetch generated slip", message=str(e))


@router.patch("/generated-slips/{slip_id}/status")
async def update_slip_status(
    slip_id: str,
    body: Optional[Dict[str, Any]] = Body(None),
    request_id: str = Depends(get_request_id),
    service: GeneratedSlipService = Depends(get_generated_slip_service)
):
    """Set status to one of active, won, lost, void."""
    try:
        return await service.update_status(slip_id, body, request_id)
    except (SlipApiError, ConnectionFailure):
        raise
    except Exception as e:
        logger.error(
            f"[{request_id}] Error updating slip {slip_id} status: {e}",
            exc_info=True
        )
        raise UnexpectedError("Failed to update slip status", message=str(e))
