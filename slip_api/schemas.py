# slip_api/schemas.py

from pydantic import BaseModel, Field, ConfigDict
from typing import List, Dict, Any, Optional


class PlacementLeg(BaseModel):
    """One leg of a placement slip"""
    match_id: Optional[int] = None
    home_team: str = ""
    away_team: str = ""
    market: str = ""
    selection: str = ""
    odds: float = 0.0

    model_config = ConfigDict(
        protected_namespaces=()
    )


class PlacementSlip(BaseModel):
    """Generated slip in the legacy placement contract.

    confidence_score is text on the wire even though slips are ordered by
    its numeric value.
    """
    slip_id: str
    master_slip_id: Optional[int] = None
    confidence_score: str
    total_odds: float = 0.0
    stake: float = 0.0
    estimated_return: float = 0.0
    risk_category: str = "unknown"
    diversity_score: Optional[float] = None
    created_at: Optional[str] = None
    legs: List[PlacementLeg] = Field(default_factory=list)

    model_config = ConfigDict(
        protected_namespaces=()
    )


class PlacementResponse(BaseModel):
    master_slip_id: Optional[int] = None
    engine_version: str
    generated_at: str
    slips: List[PlacementSlip] = Field(default_factory=list)

    model_config = ConfigDict(
        protected_namespaces=()
    )


class SyncCounts(BaseModel):
    master_slips: int = 0
    generated_slips: int = 0
    generated_slip_legs: int = 0
    optimized_slips: int = 0
    matches: int = 0
    master_slip_matches: int = 0


class SyncDetails(SyncCounts):
    master_slip_id: str


class SyncResponse(BaseModel):
    success: bool = True
    synced: SyncCounts
    message: str
    details: SyncDetails

    model_config = ConfigDict(
        protected_namespaces=()
    )


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    message: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
