"""
Shared helpers: identifier coercion, field alias resolution, serialization.
"""

from .id_handler import IDFlex
from .field_aliases import (
    first_present,
    first_non_empty,
    resolve_slip_field,
    resolve_team_names,
)
from .serialization import utcnow, to_iso_timestamp, serialize_document

__all__ = [
    "IDFlex",
    "first_present",
    "first_non_empty",
    "resolve_slip_field",
    "resolve_team_names",
    "utcnow",
    "to_iso_timestamp",
    "serialize_document",
]
