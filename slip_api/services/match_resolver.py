"""
Match Resolver

Resolves referenced match ids to team names in two batched tiers:
1. master_slip_matches scoped to the master slip (match_data snapshot)
2. the global matches registry for whatever tier 1 left unresolved

Ids found in neither tier are left out of the result; callers fold that
into empty team names.
"""

import logging
from typing import Any, Dict, Iterable, List, Set

from ..config import MASTER_SLIP_MATCHES, MATCHES
from ..utils import IDFlex, resolve_team_names

logger = logging.getLogger("slip_api.services")


class MatchResolver:
    """Two-tier team-name lookup over the storage gateway."""

    def __init__(self, gateway):
        self.gateway = gateway

    async def resolve(
        self,
        master_slip_id: Any,
        match_ids: Iterable[Any],
        request_id: str = "unknown"
    ) -> Dict[int, Dict[str, str]]:
        """
        Resolve match ids to `{home_team, away_team}`.

        Args:
            master_slip_id: Master slip scope for tier 1
            match_ids: Referenced match ids (ints, or numeric strings)
            request_id: Request identifier for logging

        Returns:
            Map of integer match id to team names; unresolved ids are absent
        """
        wanted: Set[int] = {
            match_id for match_id in (IDFlex.to_int(raw) for raw in match_ids)
            if match_id is not None
        }
        resolved: Dict[int, Dict[str, str]] = {}
        if not wanted:
            return resolved

        # Tier 1: scoped match_data snapshots. Scoped matches are stored under
        # the numeric master slip id, so a non-numeric id has no scope.
        scope = IDFlex.to_int(master_slip_id)
        scoped = []
        if scope is not None:
            scoped = await self.gateway.collection(MASTER_SLIP_MATCHES).find({
                "master_slip_id": scope,
                "match_id": {"$in": _id_variants(wanted)},
            }).to_list(length=None)

        for record in scoped:
            match_id = IDFlex.to_int(record.get("match_id"))
            match_data = record.get("match_data")
            if match_id is None or match_id not in wanted or not isinstance(match_data, dict):
                continue
            if match_id not in resolved:
                resolved[match_id] = resolve_team_names(match_data)

        # Tier 2: global registry
        remaining = wanted - set(resolved)
        if remaining:
            registry = await self.gateway.collection(MATCHES).find({
                "id": {"$in": _id_variants(remaining)},
            }).to_list(length=None)

            for record in registry:
                match_id = IDFlex.to_int(record.get("id"))
                if match_id is None or match_id not in remaining or match_id in resolved:
                    continue
                resolved[match_id] = {
                    "home_team": IDFlex.to_text(record.get("home_team")),
                    "away_team": IDFlex.to_text(record.get("away_team")),
                }

        logger.debug(
            f"[{request_id}] [RESOLVER] Resolved {len(resolved)}/{len(wanted)} matches "
            f"(scoped: {len(wanted) - len(remaining)})"
        )
        return resolved


def _id_variants(match_ids: Set[int]) -> List[Any]:
    """Stored match ids may be ints or numeric strings; query both forms."""
    ordered = sorted(match_ids)
    return ordered + [str(match_id) for match_id in ordered]
