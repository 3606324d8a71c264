"""
Index provisioning.

Run at startup and again after every successful reconnect. Every failure is
logged and skipped: already-indexed data can be served without it.
"""

import logging
from typing import Dict, List, Tuple

from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from ..config import (
    MASTER_SLIPS,
    GENERATED_SLIPS,
    GENERATED_SLIP_LEGS,
    OPTIMIZED_SLIPS,
    MASTER_SLIP_MATCHES,
    MATCHES,
)

logger = logging.getLogger("slip_api.storage")

# (keys, options) per collection
INDEX_SPECS: Dict[str, List[Tuple[List[Tuple[str, int]], Dict[str, bool]]]] = {
    MASTER_SLIPS: [
        ([("master_slip_id", ASCENDING)], {"unique": True}),
        ([("user_id", ASCENDING)], {}),
        ([("created_at", DESCENDING)], {}),
        ([("status", ASCENDING)], {}),
    ],
    GENERATED_SLIPS: [
        ([("slip_id", ASCENDING)], {"unique": True}),
        ([("master_slip_id", ASCENDING)], {}),
        ([("generated_at", DESCENDING)], {}),
        ([("status", ASCENDING)], {}),
        ([("risk_level", ASCENDING)], {}),
    ],
    GENERATED_SLIP_LEGS: [
        ([("id", ASCENDING)], {"unique": True, "sparse": True}),
        ([("slip_id", ASCENDING), ("position", ASCENDING)], {}),
        ([("master_slip_id", ASCENDING)], {}),
    ],
    OPTIMIZED_SLIPS: [
        ([("id", ASCENDING), ("master_slip_id", ASCENDING)], {"unique": True}),
        ([("master_slip_id", ASCENDING)], {}),
    ],
    MASTER_SLIP_MATCHES: [
        ([("id", ASCENDING)], {"unique": True, "sparse": True}),
        ([("master_slip_id", ASCENDING), ("match_id", ASCENDING)], {}),
    ],
    MATCHES: [
        ([("id", ASCENDING)], {"unique": True}),
    ],
}


async def ensure_indexes(gateway) -> Dict[str, int]:
    """
    Create the indexes of INDEX_SPECS, best effort.

    Returns:
        Number of indexes ensured per collection (failures excluded)
    """
    ensured: Dict[str, int] = {}

    if not gateway.is_ready:
        logger.warning("[STORAGE] Skipping index creation: storage not ready")
        return ensured

    for collection_name, specs in INDEX_SPECS.items():
        collection = gateway.collection(collection_name)
        ensured[collection_name] = 0
        for keys, options in specs:
            try:
                await collection.create_index(keys, **options)
                ensured[collection_name] += 1
            except PyMongoError as e:
                logger.error(
                    f"[STORAGE] Failed to create index {keys} on "
                    f"{collection_name}: {e}"
                )

    logger.info(f"[STORAGE] Database indexes ensured: {ensured}")
    return ensured
