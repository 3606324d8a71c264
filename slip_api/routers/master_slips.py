"""
Master Slip Endpoints

- GET    /api/master-slips                - Paginated listing
- GET    /api/master-slips-with-slips     - Same listing, 50 per page
- POST   /api/master-slips                - Create
- GET    /api/master-slips/{id}           - Fetch one
- PATCH  /api/master-slips/{id}           - Partial update
- POST   /generate-slip                   - Legacy master slip id issuance
"""

import logging
from typing import Dict, Any, Optional

from fastapi import APIRouter, Body, Depends
from pymongo.errors import ConnectionFailure

from ..config import DEFAULT_PAGE_LIMIT, WITH_SLIPS_PAGE_LIMIT
from ..dependencies import (
    get_master_slip_service,
    get_request_id,
    get_validation_service,
)
from ..exceptions import SlipApiError, UnexpectedError
from ..services import MasterSlipService, ValidationService

logger = logging.getLogger("slip_api.routers")
router = APIRouter(tags=["master-slips"])


async def _list(
    service: MasterSlipService,
    validation: ValidationService,
    request_id: str,
    default_limit: int,
    page: Optional[str],
    limit: Optional[str],
    user_id: Optional[str],
    status: Optional[str],
    sort_by: Optional[str],
    sort_order: Optional[str]
) -> Dict[str, Any]:
    try:
        paging = validation.parse_pagination(
            page, limit, sort_by, sort_order,
            default_sort="created_at",
            default_limit=default_limit
        )
        return await service.list_master_slips(paging, user_id=user_id, status=status)
    except (SlipApiError, ConnectionFailure):
        raise
    except Exception as e:
        logger.error(f"[{request_id}] Error fetching master slips: {e}", exc_info=True)
        raise UnexpectedError("Failed to fetch master slips", message=str(e))


@router.get("/api/master-slips")
async def list_master_slips(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    user_id: Optional[str] = None,
    status: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = None,
    request_id: str = Depends(get_request_id),
    service: MasterSlipService = Depends(get_master_slip_service),
    validation: ValidationService = Depends(get_validation_service)
):
    """Master slips, newest first unless sort_by/sort_order say otherwise."""
    return await _list(
        service, validation, request_id, DEFAULT_PAGE_LIMIT,
        page, limit, user_id, status, sort_by, sort_order
    )


@router.get("/api/master-slips-with-slips")
async def list_master_slips_with_slips(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    user_id: Optional[str] = None,
    status: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = None,
    request_id: str = Depends(get_request_id),
    service: MasterSlipService = Depends(get_master_slip_service),
    validation: ValidationService = Depends(get_validation_service)
):
    return await _list(
        service, validation, request_id, WITH_SLIPS_PAGE_LIMIT,
        page, limit, user_id, status, sort_by, sort_order
    )


@router.post("/api/master-slips", status_code=201)
async def create_master_slip(
    body: Optional[Dict[str, Any]] = Body(None),
    request_id: str = Depends(get_request_id),
    service: MasterSlipService = Depends(get_master_slip_service)
):
    """Create a master slip; master_slip_id and user_id are required."""
    try:
        return await service.create_master_slip(body, request_id)
    except (SlipApiError, ConnectionFailure):
        raise
    except Exception as e:
        logger.error(f"[{request_id}] Error creating master slip: {e}", exc_info=True)
        raise UnexpectedError("Failed to create master slip", message=str(e))


@router.get("/api/master-slips/{master_slip_id}")
async def get_master_slip(
    master_slip_id: str,
    request_id: str = Depends(get_request_id),
    service: MasterSlipService = Depends(get_master_slip_service)
):
    try:
        return await service.get_master_slip(master_slip_id)
    except (SlipApiError, ConnectionFailure):
        raise
    except Exception as e:
        logger.error(
            f"[{request_id}] Error fetching master slip {master_slip_id}: {e}",
            exc_info=True
        )
        raise UnexpectedError("Failed to fetch master slip", message=str(e))


@router.patch("/api/master-slips/{master_slip_id}")
async def update_master_slip(
    master_slip_id: str,
    body: Optional[Dict[str, Any]] = Body(None),
    request_id: str = Depends(get_request_id),
    service: MasterSlipService = Depends(get_master_slip_service)
):
    """Update master slip fields; master_slip_id, _id and created_at are ignored."""
    try:
        return await service.update_master_slip(master_slip_id, body, request_id)
    except (SlipApiError, ConnectionFailure):
        raise
    except Exception as e:
        logger.error(
            f"[{request_id}] Error updating master slip {master_slip_id}: {e}",
            exc_info=True
        )
        raise UnexpectedError("Failed to update master slip", message=str(e))


@router.post("/generate-slip", status_code=201)
async def generate_slip(
    request_id: str = Depends(get_request_id),
    service: MasterSlipService = Depends(get_master_slip_service)
):
    """Issue a new `MS-<timestamp>-<random>` master slip id."""
    try:
        return await service.create_legacy_slip(request_id)
    except (SlipApiError, ConnectionFailure):
        raise
    except Exception as e:
        logger.error(f"[{request_id}] Error generating slip: {e}", exc_info=True)
        raise UnexpectedError("Failed to generate slip", message=str(e))
