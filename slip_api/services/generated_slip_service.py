"""
Generated Slip Service

Operations on generated slips outside of sync:
- Paginated listing per master slip with status/risk filters
- Single lookup and status transitions
- Batch creation (increments the master slip's generated_slips_count)
- Scoped bulk deletion, cascading to stored legs
"""

import logging
from typing import Dict, Any, List, Optional

from ..config import (
    MASTER_SLIPS,
    GENERATED_SLIPS,
    GENERATED_SLIP_LEGS,
    BATCH_SLIP_ID_PREFIX,
    DEFAULT_SLIP_STATUS,
    ERROR_MESSAGES,
)
from ..exceptions import NotFoundError
from ..utils import IDFlex, serialize_document, utcnow
from .validation_service import ValidationService

logger = logging.getLogger("slip_api.services")


class GeneratedSlipService:
    """Service for generated slip reads and administrative writes."""

    def __init__(self, gateway, validation_service: Optional[ValidationService] = None):
        self.gateway = gateway
        self.validation = validation_service or ValidationService()

    async def list_generated_slips(
        self,
        master_slip_id: str,
        paging: Dict[str, Any],
        status: Optional[str] = None,
        risk_level: Optional[str] = None
    ) -> Dict[str, Any]:
        query: Dict[str, Any] = {"master_slip_id": IDFlex.to_string(master_slip_id)}
        if status:
            query["status"] = str(status)
        if risk_level:
            query["risk_level"] = str(risk_level)

        collection = self.gateway.collection(GENERATED_SLIPS)
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

    async def get_generated_slip(self, slip_id: str) -> Dict[str, Any]:
        document = await self.gateway.collection(GENERATED_SLIPS).find_one(
            {"slip_id": IDFlex.to_string(slip_id)}
        )
        if document is None:
            raise NotFoundError(
                ERROR_MESSAGES["GENERATED_SLIP_NOT_FOUND"],
                resource="generated_slip"
            )
        return {"success": True, "data": serialize_document(document)}

    async def create_generated_slips(
        self,
        master_slip_id: str,
        body: Dict[str, Any],
        request_id: str = "unknown"
    ) -> Dict[str, Any]:
        """
        Insert a batch of generated slips for an existing master slip.

        The generated_slips_count increment is not coordinated with sync,
        which never touches that counter.

        Raises:
            PayloadValidationError: If the slips array is missing or empty
            NotFoundError: If the master slip does not exist
        """
        slips = self.validation.validate_generated_slip_batch(body)
        key = IDFlex.to_string(master_slip_id)

        master_slips = self.gateway.collection(MASTER_SLIPS)
        if await master_slips.find_one({"master_slip_id": key}) is None:
            raise NotFoundError(
                ERROR_MESSAGES["MASTER_SLIP_NOT_FOUND"],
                resource="master_slip"
            )

        now = utcnow()
        documents: List[Dict[str, Any]] = []
        for index, slip in enumerate(slips):
            document = {k: v for k, v in slip.items() if k != "_id"}
            document["slip_id"] = (
                IDFlex.to_string(slip.get("slip_id"))
                or IDFlex.synthesize(BATCH_SLIP_ID_PREFIX, index)
            )
            document["master_slip_id"] = key
            document["generated_at"] = now
            document["status"] = slip.get("status") or DEFAULT_SLIP_STATUS
            documents.append(document)

        result = await self.gateway.collection(GENERATED_SLIPS).insert_many(documents)
        inserted = len(result.inserted_ids)

        await master_slips.update_one(
            {"master_slip_id": key},
            {
                "$set": {"updated_at": utcnow()},
                "$inc": {"generated_slips_count": inserted},
            }
        )

        logger.info(
            f"[{request_id}] [GENERATED] Inserted {inserted} slips for master slip {key}"
        )
        return {
            "success": True,
            "insertedCount": inserted,
            "message": f"{inserted} generated slips created successfully",
        }

    async def update_status(
        self,
        slip_id: str,
        body: Dict[str, Any],
        request_id: str = "unknown"
    ) -> Dict[str, Any]:
        status = self.validation.validate_status(body)

        result = await self.gateway.collection(GENERATED_SLIPS).update_one(
            {"slip_id": IDFlex.to_string(slip_id)},
            {"$set": {"status": status, "updated_at": utcnow()}}
        )
        if result.matched_count == 0:
            raise NotFoundError(
                ERROR_MESSAGES["GENERATED_SLIP_NOT_FOUND"],
                resource="generated_slip"
            )

        logger.info(f"[{request_id}] [GENERATED] Slip {slip_id} status -> {status}")
        return {"success": True, "message": "Slip status updated successfully"}

    async def delete_slips(
        self,
        master_slip_id: str,
        request_id: str = "unknown"
    ) -> Dict[str, Any]:
        """Delete a master slip's generated slips, then their stored legs."""
        key = IDFlex.to_string(master_slip_id)

        slips_result = await self.gateway.collection(GENERATED_SLIPS).delete_many(
            {"master_slip_id": key}
        )
        legs_result = await self.gateway.collection(GENERATED_SLIP_LEGS).delete_many(
            {"master_slip_id": key}
        )

        deleted = slips_result.deleted_count
        logger.warning(
            f"[{request_id}] [GENERATED] Deleted {deleted} slips and "
            f"{legs_result.deleted_count} legs for master slip {key}"
        )
        return {
            "success": True,
            "deletedCount": deleted,
            "legsDeletedCount": legs_result.deleted_count,
            "message": f"{deleted} generated slips deleted",
        }
