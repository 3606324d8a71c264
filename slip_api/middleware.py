"""
Middleware for request logging, CORS and storage availability.

Provides:
- Request/response logging
- Request ID generation
- 204 answers for every OPTIONS preflight
- 503 short-circuit while storage is not connected
"""

import json
import logging
import os
import time
from datetime import datetime, timezone
from typing import Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .config import (
    ENGINE_VERSION,
    CORS_ALLOW_ORIGIN,
    CORS_ALLOW_METHODS,
    CORS_ALLOW_HEADERS,
    STORAGE_EXEMPT_PATHS,
    STORAGE_EXEMPT_PREFIXES,
    DB_AUTO_RECONNECT,
)
from .exceptions import StorageUnavailableError
from .storage import ensure_indexes

logger = logging.getLogger("slip_api.middleware")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": CORS_ALLOW_ORIGIN,
    "Access-Control-Allow-Methods": CORS_ALLOW_METHODS,
    "Access-Control-Allow-Headers": CORS_ALLOW_HEADERS,
}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for comprehensive request/response logging."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and log details."""
        start_time = time.time()
        request_id = f"req_{int(start_time * 1000)}_{os.urandom(4).hex()}"
        path = request.url.path
        method = request.method
        client_ip = request.client.host if request.client else "unknown"

        # Store request ID in request state
        request.state.request_id = request_id

        logger.info(
            f"[{request_id}] {method} {path} | "
            f"Client: {client_ip} | "
            f"Started at: {datetime.now(timezone.utc).isoformat()}"
        )

        try:
            response = await call_next(request)
            duration = time.time() - start_time

            logger.info(
                f"[{request_id}] COMPLETED | "
                f"Status: {response.status_code} | "
                f"Duration: {duration:.4f}s | "
                f"Path: {path}"
            )

            response.headers["X-Request-ID"] = request_id
            response.headers["X-Engine-Version"] = ENGINE_VERSION
            response.headers["X-Processing-Time"] = f"{duration:.4f}"

            return response

        except Exception as e:
            duration = time.time() - start_time

            logger.error(
                f"[{request_id}] CRASHED | "
                f"Error: {str(e)} | "
                f"Duration: {duration:.4f}s | "
                f"Path: {path}"
            )
            logger.exception(e)

            return Response(
                content=json.dumps({
                    "success": False,
                    "error": "Internal server error",
                    "request_id": request_id,
                    "message": str(e)
                }),
                status_code=500,
                media_type="application/json",
                headers={
                    "X-Request-ID": request_id,
                    "X-Engine-Version": ENGINE_VERSION
                }
            )


class PreflightMiddleware(BaseHTTPMiddleware):
    """Answer any OPTIONS request with 204 and the CORS headers, no body.

    CORSMiddleware only short-circuits requests carrying Origin and
    Access-Control-Request-Method; plain OPTIONS calls must get 204 too.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.method == "OPTIONS":
            return Response(status_code=204, headers=CORS_HEADERS)
        return await call_next(request)


def is_storage_exempt(path: str) -> bool:
    """Root, health and /api/db/* stay reachable without storage."""
    return path in STORAGE_EXEMPT_PATHS or any(
        path == prefix or path.startswith(prefix + "/")
        for prefix in STORAGE_EXEMPT_PREFIXES
    )


class StorageGuardMiddleware(BaseHTTPMiddleware):
    """Answer 503 for data endpoints while the storage gateway is not ready."""

    def __init__(self, app, auto_reconnect: bool = DB_AUTO_RECONNECT):
        super().__init__(app)
        self.auto_reconnect = auto_reconnect

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.method == "OPTIONS" or is_storage_exempt(request.url.path):
            return await call_next(request)

        gateway = request.app.state.gateway
        if not gateway.is_ready and self.auto_reconnect:
            logger.info(f"[STORAGE GUARD] Storage {gateway.state.value}, attempting reconnect")
            if await gateway.connect():
                await ensure_indexes(gateway)

        if not gateway.is_ready:
            logger.warning(
                f"[STORAGE GUARD] Rejecting {request.method} {request.url.path}: "
                f"storage {gateway.state.value}"
            )
            return JSONResponse(
                status_code=StorageUnavailableError.status_code,
                content=StorageUnavailableError().to_dict()
            )

        return await call_next(request)
