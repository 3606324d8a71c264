"""
Master Slip Service

CRUD operations on master slips:
- Paginated listing with user/status filters
- Single lookup, creation (409 on duplicate key) and partial update
- Legacy master-slip id issuance for the /generate-slip endpoint
"""

import logging
import random
import time
from typing import Dict, Any, Optional

from pymongo.errors import DuplicateKeyError

from ..config import (
    MASTER_SLIPS,
    LEGACY_SLIPS,
    LEGACY_MASTER_SLIP_PREFIX,
    ERROR_MESSAGES,
)
from ..exceptions import ConflictError, NotFoundError
from ..utils import IDFlex, serialize_document, utcnow
from .validation_service import ValidationService

logger = logging.getLogger("slip_api.services")

# Never writable through PATCH
_IMMUTABLE_FIELDS = ("_id", "master_slip_id", "created_at")


class MasterSlipService:
    """Service for master slip reads and writes."""

    def __init__(self, gateway, validation_service: Optional[ValidationService] = None):
        self.gateway = gateway
        self.validation = validation_service or ValidationService()

    async def list_master_slips(
        self,
        paging: Dict[str, Any],
        user_id: Optional[str] = None,
        status: Optional[str] = None
    ) -> Dict[str, Any]:
        query: Dict[str, Any] = {}
        if user_id:
            query["user_id"] = str(user_id)
        if status:
            query["status"] = str(status)

        collection = self.gateway.collection(MASTER_SLIPS)
        documents = await collection.find(query).sort(
            paging["sort_by"], paging["sort_direction"]
        ).skip(paging["skip"]).limit(paging["limit"]).to_list(length=None)
        total = await collection.count_documents(query)

        return {
            "success": True,
            "data": serialize_document(documents),
            "pagination": self.validation.build_pagination(
                paging["page"], paging["limit"], total
            ),
        }

    async def get_master_slip(self, master_slip_id: str) -> Dict[str, Any]:
        document = await self.gateway.collection(MASTER_SLIPS).find_one(
            {"master_slip_id": IDFlex.to_string(master_slip_id)}
        )
        if document is None:
            raise NotFoundError(
                ERROR_MESSAGES["MASTER_SLIP_NOT_FOUND"],
                resource="master_slip"
            )
        return {"success": True, "data": serialize_document(document)}

    async def create_master_slip(
        self,
        body: Dict[str, Any],
        request_id: str = "unknown"
    ) -> Dict[str, Any]:
        """
        Insert a new master slip.

        Raises:
            PayloadValidationError: If master_slip_id or user_id is missing
            ConflictError: If the master_slip_id already exists
        """
        body = self.validation.validate_master_slip_create(body)
        now = utcnow()
        document = {key: value for key, value in body.items() if key != "_id"}
        document["master_slip_id"] = IDFlex.to_string(document["master_slip_id"])
        document["created_at"] = now
        document["updated_at"] = now

        collection = self.gateway.collection(MASTER_SLIPS)
        existing = await collection.find_one({"master_slip_id": document["master_slip_id"]})
        if existing is not None:
            raise ConflictError(ERROR_MESSAGES["MASTER_SLIP_EXISTS"])

        try:
            await collection.insert_one(document)
        except DuplicateKeyError:
            # Lost a race with a concurrent create or sync
            raise ConflictError(ERROR_MESSAGES["MASTER_SLIP_EXISTS"])

        logger.info(
            f"[{request_id}] [MASTER SLIP] Created {document['master_slip_id']} "
            f"for user {document.get('user_id')}"
        )
        return {
            "success": True,
            "data": serialize_document(document),
            "message": "Master slip created successfully",
        }

    async def update_master_slip(
        self,
        master_slip_id: str,
        body: Dict[str, Any],
        request_id: str = "unknown"
    ) -> Dict[str, Any]:
        updates = {
            key: value for key, value in (body or {}).items()
            if key not in _IMMUTABLE_FIELDS
        }
        updates["updated_at"] = utcnow()

        result = await self.gateway.collection(MASTER_SLIPS).update_one(
            {"master_slip_id": IDFlex.to_string(master_slip_id)},
            {"$set": updates}
        )
        if result.matched_count == 0:
            raise NotFoundError(
                ERROR_MESSAGES["MASTER_SLIP_NOT_FOUND"],
                resource="master_slip"
            )

        logger.info(
            f"[{request_id}] [MASTER SLIP] Updated {master_slip_id} | "
            f"Fields: {sorted(updates)}"
        )
        return {"success": True, "message": "Master slip updated successfully"}

    async def create_legacy_slip(self, request_id: str = "unknown") -> Dict[str, Any]:
        """Issue a `MS-<epoch ms>-<4 digits>` id in the legacy slips collection."""
        master_slip_id = (
            f"{LEGACY_MASTER_SLIP_PREFIX}-{int(time.time() * 1000)}-"
            f"{random.randint(0, 9999):04d}"
        )
        created_at = utcnow()

        await self.gateway.collection(LEGACY_SLIPS).insert_one({
            "masterSlipId": master_slip_id,
            "createdAt": created_at,
        })

        logger.info(f"[{request_id}] [LEGACY] Issued master slip id {master_slip_id}")
        return {
            "success": True,
            "masterSlipId": master_slip_id,
            "createdAt": serialize_document(created_at),
        }
