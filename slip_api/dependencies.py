"""
FastAPI dependencies wiring services to the application's storage gateway.
"""

import time

from fastapi import Depends, Request

from .services import (
    SyncService,
    PlacementService,
    MasterSlipService,
    GeneratedSlipService,
    ValidationService,
)


def get_gateway(request: Request):
    return request.app.state.gateway


def get_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", f"req_{int(time.time() * 1000)}")


def get_validation_service() -> ValidationService:
    return ValidationService()


def get_sync_service(gateway=Depends(get_gateway)) -> SyncService:
    return SyncService(gateway)


def get_placement_service(gateway=Depends(get_gateway)) -> PlacementService:
    return PlacementService(gateway)


def get_master_slip_service(gateway=Depends(get_gateway)) -> MasterSlipService:
    return MasterSlipService(gateway)


def get_generated_slip_service(gateway=Depends(get_gateway)) -> GeneratedSlipService:
    return GeneratedSlipService(gateway)
