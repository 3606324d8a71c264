"""
Public Slip API - Main Application

Synchronizes master slips, generated slips and their legs from the
upstream slip engine into MongoDB and serves them back to consumers:
- POST /api/sync-slips ingests an engine payload idempotently
- GET /api/placement-slips/{id} returns the ordered placement view
- CRUD endpoints for master slips and generated slips

The service starts even when MongoDB is unreachable; data endpoints
answer 503 until a reconnect succeeds.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import ConnectionFailure

from .config import (
    API_TITLE,
    API_DESCRIPTION,
    API_HOST,
    API_PORT,
    ENGINE_VERSION,
    CORS_ALLOW_ORIGIN,
    CORS_ALLOW_METHODS,
    CORS_ALLOW_HEADERS,
    DB_AUTO_RECONNECT,
    ERROR_MESSAGES,
    get_config,
    validate_config,
)
from .exceptions import SlipApiError, StorageUnavailableError
from .logging_config import setup_logging
from .middleware import PreflightMiddleware, RequestLoggingMiddleware, StorageGuardMiddleware
from .routers import (
    placement_router,
    sync_router,
    master_slips_router,
    generated_slips_router,
    health_router,
)
from .storage import StorageGateway, ensure_indexes

logger = logging.getLogger("slip_api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    gateway = app.state.gateway

    if not gateway.is_ready:
        await gateway.connect()

    if gateway.is_ready:
        await ensure_indexes(gateway)
    else:
        logger.warning(
            "[WARN] Starting without database; data endpoints will answer 503 "
            "until POST /api/db/reconnect succeeds"
        )

    yield

    logger.info("[SHUTDOWN] Closing storage gateway")
    await gateway.close()


def create_app(
    gateway: Optional[StorageGateway] = None,
    auto_reconnect: bool = DB_AUTO_RECONNECT
) -> FastAPI:
    """
    Build the application around a storage gateway.

    Args:
        gateway: Gateway to serve from; a MongoDB-backed one is built from
            configuration when omitted
        auto_reconnect: Let the storage guard retry the connection before
            answering 503
    """
    setup_logging()

    logger.info("=" * 80)
    logger.info(f"[START] {API_TITLE} {ENGINE_VERSION} Initializing...")
    logger.info("=" * 80)

    try:
        validate_config()
        logger.info("[OK] Configuration validated")
    except ValueError as e:
        logger.error(f"[ERROR] Configuration validation failed: {e}")
        raise

    storage_config = get_config()["storage"]
    logger.info(
        f"[CONFIG] Database: {storage_config['uri']} / {storage_config['database']}"
    )

    app = FastAPI(
        title=API_TITLE,
        version=ENGINE_VERSION,
        description=API_DESCRIPTION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )
    app.state.gateway = gateway if gateway is not None else StorageGateway()
    app.state.started_at = time.monotonic()

    app.include_router(health_router)
    app.include_router(placement_router)
    app.include_router(sync_router)
    app.include_router(master_slips_router)
    app.include_router(generated_slips_router)

    # Last added runs first: preflight, CORS, request logging, storage guard.
    app.add_middleware(StorageGuardMiddleware, auto_reconnect=auto_reconnect)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[CORS_ALLOW_ORIGIN],
        allow_methods=CORS_ALLOW_METHODS.split(","),
        allow_headers=CORS_ALLOW_HEADERS.split(","),
    )
    app.add_middleware(PreflightMiddleware)

    @app.exception_handler(SlipApiError)
    async def slip_api_error_handler(request: Request, exc: SlipApiError):
        request_id = getattr(request.state, "request_id", "unknown")
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(f"[{request_id}] {type(exc).__name__}: {exc.error}")

        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(ConnectionFailure)
    async def connection_failure_handler(request: Request, exc: ConnectionFailure):
        request_id = getattr(request.state, "request_id", "unknown")
        logger.error(f"[{request_id}] Database connection lost: {exc}")
        request.app.state.gateway.mark_degraded(str(exc))

        return JSONResponse(
            status_code=StorageUnavailableError.status_code,
            content=StorageUnavailableError().to_dict()
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        request_id = getattr(request.state, "request_id", "unknown")
        logger.warning(f"[{request_id}] Request validation failed: {exc.errors()}")

        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "error": ERROR_MESSAGES["INVALID_PAYLOAD"],
                "message": "Request body is not valid JSON of the expected shape",
            }
        )

    logger.info("[OK] FastAPI application created")
    return app


app = create_app()


def main():
    logger.info(f"[START] Starting server on {API_HOST}:{API_PORT}")
    uvicorn.run(
        "slip_api.app:app",
        host=API_HOST,
        port=API_PORT,
        log_level="info"
    )


if __name__ == "__main__":
    main()
