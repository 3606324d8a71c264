"""
Validation Service

Handles input validation and payload sanitization:
- Sync payload structure validation
- Create/update body validation
- Pagination and sort parameter parsing
"""

import logging
import math
from typing import Dict, Any, List, Optional

from ..config import (
    ALLOWED_SLIP_STATUSES,
    DEFAULT_PAGE,
    DEFAULT_PAGE_LIMIT,
    MAX_PAGE_LIMIT,
    ERROR_MESSAGES,
)
from ..exceptions import PayloadValidationError
from ..utils import first_present
from ..utils.field_aliases import MASTER_SLIP_KEY_ALIASES

logger = logging.getLogger("slip_api.services")

SYNC_ARRAY_FIELDS = ["generated_slips", "optimized_slips", "matches"]


class ValidationService:
    """Service for validating inputs and payloads."""

    def validate_sync_payload(
        self,
        payload: Any,
        request_id: str = "unknown"
    ) -> Dict[str, Any]:
        """
        Validate a sync payload structure.

        Args:
            payload: Request payload
            request_id: Request identifier for logging

        Returns:
            Payload dictionary with optional arrays defaulted to []

        Raises:
            PayloadValidationError: If validation fails
        """
        if hasattr(payload, "model_dump"):
            payload = payload.model_dump()
        elif payload is None:
            payload = {}

        if not isinstance(payload, dict):
            raise PayloadValidationError(
                ERROR_MESSAGES["INVALID_PAYLOAD"],
                field="payload"
            )

        master_slip = payload.get("master_slip")
        if not master_slip or not isinstance(master_slip, dict):
            raise PayloadValidationError(
                ERROR_MESSAGES["MASTER_SLIP_REQUIRED"],
                field="master_slip"
            )

        if first_present(master_slip, MASTER_SLIP_KEY_ALIASES) is None:
            raise PayloadValidationError(
                ERROR_MESSAGES["MASTER_SLIP_ID_REQUIRED"],
                field="master_slip.id"
            )

        normalized = dict(payload)
        for field in SYNC_ARRAY_FIELDS:
            value = payload.get(field)
            if value is None:
                normalized[field] = []
            elif not isinstance(value, list):
                raise PayloadValidationError(
                    f"Invalid '{field}' type: expected a list",
                    field=field
                )
            else:
                normalized[field] = [item for item in value if isinstance(item, dict)]
                skipped = len(value) - len(normalized[field])
                if skipped:
                    logger.warning(
                        f"[{request_id}] [VALIDATION] Skipped {skipped} "
                        f"non-object entries in '{field}'"
                    )

        logger.debug(
            f"[{request_id}] [VALIDATION] Sync payload validation passed | "
            f"Generated: {len(normalized['generated_slips'])} | "
            f"Optimized: {len(normalized['optimized_slips'])} | "
            f"Matches: {len(normalized['matches'])}"
        )

        return normalized

    def validate_master_slip_create(self, body: Any) -> Dict[str, Any]:
        """Require `master_slip_id` and `user_id` on a new master slip."""
        if not isinstance(body, dict):
            raise PayloadValidationError(
                ERROR_MESSAGES["INVALID_PAYLOAD"],
                field="payload"
            )
        if not body.get("master_slip_id") or not body.get("user_id"):
            raise PayloadValidationError(ERROR_MESSAGES["CREATE_FIELDS_REQUIRED"])
        return body

    def validate_generated_slip_batch(self, body: Any) -> List[Dict[str, Any]]:
        """Require a non-empty `slips` array of objects."""
        slips = body.get("slips") if isinstance(body, dict) else None
        if not isinstance(slips, list) or len(slips) == 0:
            raise PayloadValidationError(
                ERROR_MESSAGES["SLIPS_REQUIRED"],
                field="slips"
            )
        for index, slip in enumerate(slips):
            if not isinstance(slip, dict):
                raise PayloadValidationError(
                    f"Slip at index {index} is not an object",
                    field=f"slips[{index}]"
                )
        return slips

    def validate_status(self, body: Any) -> str:
        """Restrict slip status updates to the allowed lifecycle values."""
        status = body.get("status") if isinstance(body, dict) else None
        if status not in ALLOWED_SLIP_STATUSES:
            raise PayloadValidationError(
                ERROR_MESSAGES["INVALID_STATUS"],
                field="status"
            )
        return status

    def parse_pagination(
        self,
        page: Optional[str],
        limit: Optional[str],
        sort_by: Optional[str],
        sort_order: Optional[str],
        default_sort: str,
        default_limit: int = DEFAULT_PAGE_LIMIT
    ) -> Dict[str, Any]:
        """
        Parse 1-based page/limit and sort parameters.

        Raises:
            PayloadValidationError: On non-numeric or out-of-range values
        """
        page_number = self._parse_positive_int(page, DEFAULT_PAGE, "page")
        page_limit = self._parse_positive_int(limit, default_limit, "limit")
        if page_limit > MAX_PAGE_LIMIT:
            raise PayloadValidationError(
                f"Limit too high: {page_limit} (max: {MAX_PAGE_LIMIT})",
                field="limit"
            )

        return {
            "page": page_number,
            "limit": page_limit,
            "skip": (page_number - 1) * page_limit,
            "sort_by": sort_by or default_sort,
            "sort_direction": 1 if (sort_order or "desc").lower() == "asc" else -1,
        }

    @staticmethod
    def build_pagination(page: int, limit: int, total: int) -> Dict[str, int]:
        return {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit) if limit else 0,
        }

    @staticmethod
    def _parse_positive_int(value: Optional[str], default: int, field: str) -> int:
        if value is None or value == "":
            return default
        try:
            parsed = int(value)
        except (TypeError, ValueError):
            raise PayloadValidationError(
                f"Invalid '{field}' value: {value}",
                field=field
            )
        if parsed < 1:
            raise PayloadValidationError(
                f"'{field}' must be at least 1",
                field=field
            )
        return parsed
