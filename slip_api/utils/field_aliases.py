"""
Ordered alias resolution for fields the upstream engine names inconsistently.

Each canonical field maps to the list of source keys tried in order. New
upstream shapes are supported by appending a key to the relevant list.
"""

from typing import Any, Dict, List, Mapping, Optional

# Generated slip fields, first non-null wins
SLIP_FIELD_ALIASES: Dict[str, List[str]] = {
    "estimated_return": ["estimated_return", "estimated_payout", "possible_return"],
    "risk_category": ["risk_category", "risk_level"],
    "created_at": ["created_at", "generated_at"],
}

# Generated slip identifier, first non-empty wins
SLIP_ID_ALIASES: List[str] = ["slip_id", "id"]

# Team names inside match_data snapshots, first non-empty wins
TEAM_FIELD_ALIASES: Dict[str, List[str]] = {
    "home_team": ["home_team", "homeTeam"],
    "away_team": ["away_team", "awayTeam"],
}

# Business key of an inbound master slip, first non-null wins
MASTER_SLIP_KEY_ALIASES: List[str] = ["id", "master_slip_id"]

# Identifier of an inbound generated slip, first non-null wins
SYNC_SLIP_KEY_ALIASES: List[str] = ["id", "slip_id"]


def first_present(source: Mapping[str, Any], keys: List[str]) -> Optional[Any]:
    """Return the value of the first key holding a non-null value."""
    for key in keys:
        value = source.get(key)
        if value is not None:
            return value
    return None


def first_non_empty(source: Mapping[str, Any], keys: List[str]) -> Optional[Any]:
    """Return the value of the first key holding a non-null, non-empty value."""
    for key in keys:
        value = source.get(key)
        if value is None or value == "" or value == 0 or value is False:
            continue
        return value
    return None


def resolve_slip_field(slip: Mapping[str, Any], field: str) -> Optional[Any]:
    """Resolve a canonical generated-slip field through its alias list."""
    return first_present(slip, SLIP_FIELD_ALIASES[field])


def resolve_team_names(match_data: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    """
    Extract home/away team names preferring snake_case over camelCase keys.

    Missing names resolve to empty strings.
    """
    if not match_data:
        return {"home_team": "", "away_team": ""}
    resolved = {}
    for field, keys in TEAM_FIELD_ALIASES.items():
        value = first_non_empty(match_data, keys)
        resolved[field] = "" if value is None else str(value)
    return resolved
