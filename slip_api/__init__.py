# slip_api/__init__.py

"""
Public Slip API - Main Package Exports
"""

# Export the app factory and default app
from .app import app, create_app

# Export storage and services
from .storage import StorageGateway, StorageState
from .services import (
    SyncService,
    PlacementService,
    MatchResolver,
    build_placement_response,
)

# Export exceptions
from .exceptions import (
    SlipApiError,
    PayloadValidationError,
    NotFoundError,
    ConflictError,
    StorageUnavailableError,
    UnexpectedError,
)

from .config import ENGINE_VERSION

# Package metadata
__version__ = "1.0.0"
__author__ = "Public Slip API Team"

__all__ = [
    "app",
    "create_app",
    "StorageGateway",
    "StorageState",
    "SyncService",
    "PlacementService",
    "MatchResolver",
    "build_placement_response",
    "SlipApiError",
    "PayloadValidationError",
    "NotFoundError",
    "ConflictError",
    "StorageUnavailableError",
    "UnexpectedError",
    "ENGINE_VERSION",
]
