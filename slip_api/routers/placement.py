"""
Placement Slip Endpoints

- GET /api/placement-slips/{master_slip_id} - Legacy-compatible slip listing
"""

import logging

from fastapi import APIRouter, Depends
from pymongo.errors import ConnectionFailure

from ..dependencies import get_placement_service, get_request_id
from ..exceptions import SlipApiError, UnexpectedError
from ..schemas import PlacementResponse, ErrorResponse
from ..services import PlacementService

logger = logging.getLogger("slip_api.routers")
router = APIRouter(prefix="/api", tags=["placement"])


@router.get(
    "/placement-slips/{master_slip_id}",
    response_model=PlacementResponse,
    responses={404: {"model": ErrorResponse}, 503: {"model": ErrorResponse}}
)
async def get_placement_slips(
    master_slip_id: str,
    request_id: str = Depends(get_request_id),
    service: PlacementService = Depends(get_placement_service)
):
    """
    Fetch the generated slips of a master slip in the placement contract.

    Response:
    {
        "master_slip_id": 123,
        "engine_version": "v1",
        "generated_at": "2026-01-01T00:00:00.000Z",
        "slips": [
            {
                "slip_id": "...", "master_slip_id": 123,
                "confidence_score": "85", "total_odds": 4.2, "stake": 10.0,
                "estimated_return": 42.0, "risk_category": "medium",
                "diversity_score": null, "created_at": "...",
                "legs": [{"match_id": 1, "home_team": "...", "away_team": "...",
                          "market": "...", "selection": "...", "odds": 1.8}]
            }
        ]
    }

    Slips are ordered by confidence_score desc, total_odds desc, slip_id asc.
    """
    logger.info(f"[{request_id}] [PLACEMENT] Placement slips requested for {master_slip_id}")

    try:
        return await service.get_placement_slips(master_slip_id, request_id)
    except (SlipApiError, ConnectionFailure):
        raise
    except Exception as e:
        logger.error(
            f"[{request_id}] [PLACEMENT] Error fetching placement slips for "
            f"master slip {master_slip_id}: {e}",
            exc_info=True
        )
        raise UnexpectedError("Failed to fetch placement slips", message=str(e))
