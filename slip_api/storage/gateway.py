"""
Storage Gateway

Owns the MongoDB client and its connection lifecycle:
- DISCONNECTED -> CONNECTING -> READY on a successful ping
- DEGRADED after a failed connect or a connection failure seen at request time

Services never touch the client directly; they ask the gateway for a named
collection and get StorageUnavailableError while it is not READY.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from pymongo import AsyncMongoClient
from pymongo.errors import PyMongoError

from ..config import (
    MONGO_URI,
    MONGO_DB_NAME,
    DB_CONNECT_TIMEOUT_MS,
    COLLECTION_NAMES,
    mask_mongo_uri,
)
from ..exceptions import StorageUnavailableError

logger = logging.getLogger("slip_api.storage")


class StorageState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    READY = "ready"
    DEGRADED = "degraded"


class StorageGateway:
    """Explicitly owned handle on the document store."""

    def __init__(
        self,
        uri: str = MONGO_URI,
        database_name: str = MONGO_DB_NAME,
        timeout_ms: int = DB_CONNECT_TIMEOUT_MS,
        collection_names: Optional[List[str]] = None
    ):
        self.uri = uri
        self.database_name = database_name
        self.timeout_ms = timeout_ms
        self.collection_names = list(collection_names or COLLECTION_NAMES)
        self.state = StorageState.DISCONNECTED
        self.last_error: Optional[str] = None
        self._client: Optional[AsyncMongoClient] = None
        self._db = None
        self._collections: Dict[str, Any] = {}
        self._connect_lock = asyncio.Lock()

    @property
    def is_ready(self) -> bool:
        return self.state == StorageState.READY

    async def connect(self) -> bool:
        """
        Connect and verify the server with a ping.

        Never raises; on failure the gateway is left DEGRADED and False is
        returned so the service keeps running without storage. Concurrent
        callers share one attempt; whoever waited on the lock sees its result.
        """
        if self.is_ready:
            logger.info("[STORAGE] Already connected")
            return True

        async with self._connect_lock:
            if self.is_ready:
                return True
            return await self._connect()

    async def _connect(self) -> bool:
        if self._client is not None:
            await self._close_quietly(self._client)
            self._reset()

        self.state = StorageState.CONNECTING
        logger.info(
            f"[STORAGE] Attempting connection to {mask_mongo_uri(self.uri)} "
            f"(db: {self.database_name})"
        )

        client = None
        try:
            client = AsyncMongoClient(
                self.uri,
                serverSelectionTimeoutMS=self.timeout_ms
            )
            await client.admin.command("ping")
        except PyMongoError as e:
            logger.error(f"[STORAGE] Connection failed: {e}")
            if client is not None:
                await self._close_quietly(client)
            self._reset()
            self.state = StorageState.DEGRADED
            self.last_error = str(e)
            return False

        self._client = client
        self._db = client[self.database_name]
        self._collections = {
            name: self._db[name] for name in self.collection_names
        }
        self.state = StorageState.READY
        self.last_error = None
        logger.info(f"[STORAGE] Connected to: {self.database_name}")
        return True

    def collection(self, name: str):
        """Return a named collection, or raise while storage is not READY."""
        if not self.is_ready:
            raise StorageUnavailableError()
        try:
            return self._collections[name]
        except KeyError:
            raise KeyError(f"Unknown collection: {name}") from None

    async def ping(self) -> bool:
        if not self.is_ready or self._db is None:
            return False
        try:
            await self._db.command("ping")
            return True
        except PyMongoError as e:
            logger.error(f"[STORAGE] Ping failed: {e}")
            return False

    def mark_degraded(self, reason: str) -> None:
        """Record a connection failure observed while serving a request."""
        if self.state != StorageState.DEGRADED:
            logger.warning(f"[STORAGE] Entering degraded mode: {reason}")
        self.state = StorageState.DEGRADED
        self.last_error = reason

    async def close(self) -> None:
        if self._client is not None:
            await self._close_quietly(self._client)
            logger.info("[STORAGE] Connection closed")
        self._reset()
        self.state = StorageState.DISCONNECTED

    def describe(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "database": self.database_name if self.is_ready else None,
            "collections": list(self._collections) if self.is_ready else [],
            "last_error": self.last_error,
        }

    def _reset(self) -> None:
        self._client = None
        self._db = None
        self._collections = {}

    @staticmethod
    async def _close_quietly(client: AsyncMongoClient) -> None:
        try:
            await client.close()
        except PyMongoError as e:
            logger.warning(f"[STORAGE] Error while closing client: {e}")
