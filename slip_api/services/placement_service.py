"""
Placement Slip Service

Builds the legacy-compatible placement response for one master slip:
- Loads the master slip (404 when unknown, before any match lookup)
- Loads its generated slips and their legs
- Resolves team names through the MatchResolver
- Normalizes every slip to the contracted field set and ordering

The contract is consumed byte-for-byte downstream. In particular
confidence_score is emitted as text yet ordered numerically, and the slip
order is confidence desc, total_odds desc, slip_id asc.
"""

import logging
from collections import defaultdict
from datetime import datetime
from typing import Dict, Any, List, Optional, Tuple

from ..config import (
    ENGINE_VERSION,
    MASTER_SLIPS,
    GENERATED_SLIPS,
    GENERATED_SLIP_LEGS,
    ERROR_MESSAGES,
)
from ..exceptions import NotFoundError
from ..utils import (
    IDFlex,
    first_non_empty,
    resolve_slip_field,
    resolve_team_names,
    to_iso_timestamp,
    utcnow,
)
from ..utils.field_aliases import SLIP_ID_ALIASES
from .match_resolver import MatchResolver

logger = logging.getLogger("slip_api.services")

_EMPTY_TEAMS = {"home_team": "", "away_team": ""}


def _embedded_match(leg: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    match = leg.get("match")
    if isinstance(match, dict) and match:
        return match
    return None


def normalize_leg(leg: Dict[str, Any], match_map: Dict[int, Dict[str, str]]) -> Dict[str, Any]:
    """Embedded match snapshot first, then the resolved map, then empty names."""
    match_id = IDFlex.to_int(leg.get("match_id"))
    snapshot = _embedded_match(leg)
    if snapshot is not None:
        teams = resolve_team_names(snapshot)
    else:
        teams = match_map.get(match_id, _EMPTY_TEAMS)

    return {
        "match_id": match_id,
        "home_team": IDFlex.to_text(teams.get("home_team")),
        "away_team": IDFlex.to_text(teams.get("away_team")),
        "market": IDFlex.to_text(leg.get("market")),
        "selection": IDFlex.to_text(leg.get("selection")),
        "odds": IDFlex.to_float(leg.get("odds")),
    }


def _format_created_at(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return to_iso_timestamp(value)
    return str(value)


def normalize_slip(slip: Dict[str, Any], match_map: Dict[int, Dict[str, str]]) -> Dict[str, Any]:
    """Map one stored generated slip onto the placement contract."""
    slip_id = first_non_empty(slip, SLIP_ID_ALIASES)
    risk_category = resolve_slip_field(slip, "risk_category")
    diversity_score = slip.get("diversity_score")
    confidence_score = slip.get("confidence_score")

    return {
        "slip_id": IDFlex.to_text(slip_id),
        "master_slip_id": IDFlex.to_int(slip.get("master_slip_id")),
        "confidence_score": IDFlex.to_text(0 if confidence_score is None else confidence_score),
        "total_odds": IDFlex.to_float(slip.get("total_odds")),
        "stake": IDFlex.to_float(slip.get("stake")),
        "estimated_return": IDFlex.to_float(resolve_slip_field(slip, "estimated_return")),
        "risk_category": str("unknown" if risk_category is None else risk_category).lower(),
        "diversity_score": (
            IDFlex.to_float(diversity_score, default=None)
            if diversity_score is not None else None
        ),
        "created_at": _format_created_at(resolve_slip_field(slip, "created_at")),
        "legs": [
            normalize_leg(leg, match_map)
            for leg in (slip.get("legs") or [])
            if isinstance(leg, dict)
        ],
    }


def placement_sort_key(slip: Dict[str, Any]) -> Tuple[float, float, str]:
    """confidence_score desc (parsed), total_odds desc, slip_id asc."""
    return (
        -IDFlex.to_float(slip["confidence_score"]),
        -slip["total_odds"],
        slip["slip_id"],
    )


def build_placement_response(
    master_slip: Dict[str, Any],
    slips: List[Dict[str, Any]],
    match_map: Dict[int, Dict[str, str]],
    engine_version: str = ENGINE_VERSION,
    generated_at: Optional[datetime] = None
) -> Dict[str, Any]:
    """
    Build the placement envelope.

    Args:
        master_slip: Stored master slip (existence already checked)
        slips: Stored generated slips with their `legs` attached
        match_map: Output of MatchResolver.resolve
        engine_version: Value reported as engine_version
        generated_at: Response timestamp, now when omitted

    Returns:
        `{master_slip_id, engine_version, generated_at, slips}`
    """
    normalized = [normalize_slip(slip, match_map) for slip in slips]
    normalized.sort(key=placement_sort_key)

    return {
        "master_slip_id": IDFlex.to_int(master_slip.get("master_slip_id")),
        "engine_version": engine_version,
        "generated_at": to_iso_timestamp(generated_at or utcnow()),
        "slips": normalized,
    }


class PlacementService:
    """Service reading placement slips through the storage gateway."""

    def __init__(self, gateway, resolver: Optional[MatchResolver] = None):
        self.gateway = gateway
        self.resolver = resolver or MatchResolver(gateway)

    async def get_placement_slips(
        self,
        master_slip_id: Any,
        request_id: str = "unknown"
    ) -> Dict[str, Any]:
        """
        Fetch and normalize all generated slips of a master slip.

        Raises:
            NotFoundError: If no master slip has this id
            StorageUnavailableError: If storage is not connected
        """
        key = IDFlex.to_string(master_slip_id)

        master_slip = await self.gateway.collection(MASTER_SLIPS).find_one(
            {"master_slip_id": key}
        )
        if master_slip is None:
            raise NotFoundError(
                ERROR_MESSAGES["MASTER_SLIP_NOT_FOUND"],
                message=f"No master slip found with ID: {key}",
                resource="master_slip"
            )

        slips = await self.gateway.collection(GENERATED_SLIPS).find(
            {"master_slip_id": key}
        ).to_list(length=None)
        await self._attach_legs(slips)

        match_ids = {
            leg.get("match_id")
            for slip in slips
            for leg in slip["legs"]
            if isinstance(leg, dict)
            and leg.get("match_id") is not None
            and _embedded_match(leg) is None
        }
        match_map = await self.resolver.resolve(key, match_ids, request_id)

        response = build_placement_response(master_slip, slips, match_map)

        logger.info(
            f"[{request_id}] [PLACEMENT] Master slip {key} | "
            f"Slips: {len(response['slips'])} | "
            f"Match lookups: {len(match_ids)} | Resolved: {len(match_map)}"
        )
        return response

    async def _attach_legs(self, slips: List[Dict[str, Any]]) -> None:
        """Prefer externally stored legs; fall back to the embedded array."""
        slip_ids = [slip["slip_id"] for slip in slips if slip.get("slip_id")]
        grouped: Dict[str, List[Dict[str, Any]]] = defaultdict(list)

        if slip_ids:
            stored_legs = await self.gateway.collection(GENERATED_SLIP_LEGS).find(
                {"slip_id": {"$in": slip_ids}}
            ).to_list(length=None)
            for leg in stored_legs:
                grouped[leg["slip_id"]].append(leg)

        for slip in slips:
            external = grouped.get(slip.get("slip_id"))
            if external:
                slip["legs"] = sorted(external, key=_leg_position)
            elif isinstance(slip.get("legs"), list):
                slip["legs"] = list(slip["legs"])
            else:
                slip["legs"] = []


def _leg_position(leg: Dict[str, Any]) -> Tuple[bool, int]:
    position = leg.get("position")
    return (position is None, position if isinstance(position, int) else 0)
