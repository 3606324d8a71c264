"""
Helpers turning stored documents into JSON-safe structures.
"""

from datetime import datetime, timezone
from typing import Any

from bson import ObjectId


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def to_iso_timestamp(value: datetime) -> str:
    """
    Render a datetime as `YYYY-MM-DDTHH:MM:SS.mmmZ`.

    Naive datetimes (what pymongo returns by default) are taken as UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def serialize_document(value: Any) -> Any:
    """Recursively convert ObjectIds and datetimes inside a stored document."""
    if isinstance(value, dict):
        return {key: serialize_document(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize_document(item) for item in value]
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return to_iso_timestamp(value)
    return value
