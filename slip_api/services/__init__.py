"""
Service layer for business logic separation.

Services handle core business logic, keeping API endpoints clean and focused.
Every service receives the storage gateway it works against.
"""

from .validation_service import ValidationService
from .sync_service import SyncService, SyncReport
from .match_resolver import MatchResolver
from .placement_service import PlacementService, build_placement_response
from .master_slip_service import MasterSlipService
from .generated_slip_service import GeneratedSlipService

__all__ = [
    "ValidationService",
    "SyncService",
    "SyncReport",
    "MatchResolver",
    "PlacementService",
    "build_placement_response",
    "MasterSlipService",
    "GeneratedSlipService",
]
