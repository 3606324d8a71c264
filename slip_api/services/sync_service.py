"""
Slip Sync Service

Reconciles one bulk push from the slip engine into storage:
- Master slip upsert (created_at only ever set on insert)
- Generated slips and their legs
- Optimized slips
- Master slip matches, plus the canonical match registry

Steps run in that fixed order and each write is an idempotent upsert by
business key. Nothing is rolled back: a failure at one step leaves the
earlier steps committed and a retry of the same payload converges.
"""

import logging
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Dict, Any, Optional

from ..config import (
    MASTER_SLIPS,
    GENERATED_SLIPS,
    GENERATED_SLIP_LEGS,
    OPTIMIZED_SLIPS,
    MASTER_SLIP_MATCHES,
    MATCHES,
    SYNC_SLIP_ID_PREFIX,
    ERROR_MESSAGES,
)
from ..exceptions import PayloadValidationError
from ..utils import IDFlex, first_present, resolve_team_names, utcnow
from ..utils.field_aliases import MASTER_SLIP_KEY_ALIASES, SYNC_SLIP_KEY_ALIASES
from .validation_service import ValidationService

logger = logging.getLogger("slip_api.services")

# Fields a sync may never overwrite on an existing document
_PROTECTED_FIELDS = ("_id", "created_at")


@dataclass
class SyncReport:
    """Per-entity counts of upserts issued by one sync (no-ops included)."""

    master_slip_id: str
    master_slips: int = 0
    generated_slips: int = 0
    generated_slip_legs: int = 0
    optimized_slips: int = 0
    matches: int = 0
    master_slip_matches: int = 0

    def counts(self) -> Dict[str, int]:
        counts = asdict(self)
        counts.pop("master_slip_id")
        return counts

    def to_response(self) -> Dict[str, Any]:
        counts = self.counts()
        return {
            "success": True,
            "synced": counts,
            "message": f"Successfully synced master slip {self.master_slip_id}",
            "details": {"master_slip_id": self.master_slip_id, **counts},
        }


class SyncService:
    """Service applying sync payloads through the storage gateway."""

    def __init__(self, gateway, validation_service: Optional[ValidationService] = None):
        self.gateway = gateway
        self.validation = validation_service or ValidationService()

    async def sync(self, payload: Any, request_id: str = "unknown") -> SyncReport:
        """
        Apply one sync payload.

        Args:
            payload: `{master_slip, generated_slips?, optimized_slips?, matches?}`
            request_id: Request identifier for logging

        Returns:
            SyncReport with the number of upserts per entity kind

        Raises:
            PayloadValidationError: If master_slip or its key is missing
            StorageUnavailableError: If storage is not connected
        """
        payload = self.validation.validate_sync_payload(payload, request_id)
        now = utcnow()

        # Step 1: master slip
        master_slip_id = await self._upsert_master_slip(payload["master_slip"], now)
        report = SyncReport(master_slip_id=master_slip_id, master_slips=1)
        master_slip_number = IDFlex.to_int(master_slip_id)

        logger.info(
            f"[{request_id}] [SYNC] Master slip {master_slip_id} upserted | "
            f"Generated: {len(payload['generated_slips'])} | "
            f"Optimized: {len(payload['optimized_slips'])} | "
            f"Matches: {len(payload['matches'])}"
        )

        # Step 2: generated slips (+legs)
        for slip in payload["generated_slips"]:
            report.generated_slip_legs += await self._upsert_generated_slip(
                slip, master_slip_id, now
            )
            report.generated_slips += 1

        # Step 3: optimized slips
        for slip in payload["optimized_slips"]:
            await self._upsert_optimized_slip(slip, master_slip_number, now)
            report.optimized_slips += 1

        # Step 4: master slip matches (+canonical matches)
        for match in payload["matches"]:
            extracted = await self._upsert_master_slip_match(
                match, master_slip_number, now, request_id
            )
            report.master_slip_matches += 1
            report.matches += extracted

        logger.info(f"[{request_id}] [SYNC] Complete | Counts: {report.counts()}")
        return report

    async def _upsert_master_slip(self, master_slip: Dict[str, Any], now: datetime) -> str:
        master_slip_id = IDFlex.to_string(
            first_present(master_slip, MASTER_SLIP_KEY_ALIASES)
        )
        if not master_slip_id:
            raise PayloadValidationError(
                ERROR_MESSAGES["MASTER_SLIP_ID_REQUIRED"],
                field="master_slip.id"
            )

        fields = _strip(master_slip, _PROTECTED_FIELDS)
        fields["master_slip_id"] = master_slip_id
        fields["updated_at"] = now

        await self.gateway.collection(MASTER_SLIPS).update_one(
            {"master_slip_id": master_slip_id},
            {
                "$set": fields,
                "$setOnInsert": {"created_at": master_slip.get("created_at") or now},
            },
            upsert=True
        )
        return master_slip_id

    async def _upsert_generated_slip(
        self,
        slip: Dict[str, Any],
        master_slip_id: str,
        now: datetime
    ) -> int:
        """Upsert one generated slip and its legs; returns the leg count."""
        slip_id = IDFlex.to_string(first_present(slip, SYNC_SLIP_KEY_ALIASES))
        if not slip_id:
            slip_id = IDFlex.synthesize(SYNC_SLIP_ID_PREFIX)

        fields = _strip(slip, ("_id",))
        fields.update({
            "slip_id": slip_id,
            "master_slip_id": master_slip_id,
            "updated_at": now,
        })

        await self.gateway.collection(GENERATED_SLIPS).update_one(
            {"slip_id": slip_id},
            {"$set": fields},
            upsert=True
        )

        legs = slip.get("legs")
        if not isinstance(legs, list):
            return 0

        upserted = 0
        for position, leg in enumerate(legs):
            if not isinstance(leg, dict):
                continue
            await self._upsert_leg(leg, position, slip_id, master_slip_id, now)
            upserted += 1

        # Every leg of this push carries `now`; anything older was dropped upstream
        pruned = await self.gateway.collection(GENERATED_SLIP_LEGS).delete_many(
            {"slip_id": slip_id, "updated_at": {"$ne": now}}
        )
        if pruned.deleted_count:
            logger.info(
                f"[SYNC] Removed {pruned.deleted_count} stale legs from slip {slip_id}"
            )
        return upserted

    async def _upsert_leg(
        self,
        leg: Dict[str, Any],
        position: int,
        slip_id: str,
        master_slip_id: str,
        now: datetime
    ) -> None:
        fields = _strip(leg, ("_id",))
        fields.update({
            "slip_id": slip_id,
            "master_slip_id": master_slip_id,
            "match_id": leg.get("match_id"),
            "market": leg.get("market"),
            "selection": leg.get("selection"),
            "odds": leg.get("odds"),
            "match": leg.get("match") or None,
            "position": position,
            "updated_at": now,
        })

        if leg.get("id") is not None:
            key = {"id": leg["id"]}
        else:
            key = {"slip_id": slip_id, "position": position}

        await self.gateway.collection(GENERATED_SLIP_LEGS).update_one(
            key,
            {"$set": fields},
            upsert=True
        )

    async def _upsert_optimized_slip(
        self,
        slip: Dict[str, Any],
        master_slip_number: Optional[int],
        now: datetime
    ) -> None:
        fields = _strip(slip, ("_id",))
        fields.update({
            "master_slip_id": master_slip_number,
            "updated_at": now,
        })

        await self.gateway.collection(OPTIMIZED_SLIPS).update_one(
            {"id": slip.get("id"), "master_slip_id": master_slip_number},
            {"$set": fields},
            upsert=True
        )

    async def _upsert_master_slip_match(
        self,
        match: Dict[str, Any],
        master_slip_number: Optional[int],
        now: datetime,
        request_id: str
    ) -> int:
        """Upsert one master slip match; returns 1 if a canonical match was extracted."""
        fields = _strip(match, ("_id",))
        fields.update({
            "master_slip_id": master_slip_number,
            "updated_at": now,
        })

        if match.get("id") is not None:
            key = {"id": match["id"]}
        else:
            key = {"master_slip_id": master_slip_number, "match_id": match.get("match_id")}

        await self.gateway.collection(MASTER_SLIP_MATCHES).update_one(
            key,
            {"$set": fields},
            upsert=True
        )

        match_data = match.get("match_data")
        if not isinstance(match_data, dict) or not match_data:
            return 0

        if match.get("match_id") is None:
            logger.warning(
                f"[{request_id}] [SYNC] match_data without match_id skipped "
                f"for master slip match {match.get('id')}"
            )
            return 0

        await self._upsert_canonical_match(match["match_id"], match_data)
        return 1

    async def _upsert_canonical_match(self, match_id: Any, match_data: Dict[str, Any]) -> None:
        # $set merges into whatever the registry already holds for this id
        fields = _strip(match_data, ("_id",))
        fields.update(resolve_team_names(match_data))
        fields["id"] = match_id

        await self.gateway.collection(MATCHES).update_one(
            {"id": match_id},
            {"$set": fields},
            upsert=True
        )


def _strip(document: Dict[str, Any], keys) -> Dict[str, Any]:
    return {key: value for key, value in document.items() if key not in keys}

