"""
API routers for the Public Slip API.

Separates endpoints into logical groups for better organization.
"""

from .placement import router as placement_router
from .sync import router as sync_router
from .master_slips import router as master_slips_router
from .generated_slips import router as generated_slips_router
from .health import router as health_router

__all__ = [
    "placement_router",
    "sync_router",
    "master_slips_router",
    "generated_slips_router",
    "health_router",
]
