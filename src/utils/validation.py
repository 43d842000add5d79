"""Input validation helpers shared by services and handlers."""

from datetime import datetime
from typing import Any, Optional

from src.utils.errors import ValidationError
from src.utils.timestamps import parse_timestamp


def require_id(value: Any, label: str) -> str:
    """Non-empty identifier, stripped."""
    if value is None or not str(value).strip():
        raise ValidationError(f"{label} is required")
    return str(value).strip()


def optional_timestamp(value: Any, label: str) -> Optional[datetime]:
    """Parse an optional ISO timestamp; garbage is a client error."""
    if value is None or value == "":
        return None
    parsed = parse_timestamp(value)
    if parsed is None:
        raise ValidationError(f"{label} must be an ISO-8601 timestamp")
    return parsed


def optional_non_negative_int(value: Any, label: str) -> Optional[int]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be a non-negative integer")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{label} must be a non-negative integer")
    if number < 0 or (isinstance(value, float) and not value.is_integer()):
        raise ValidationError(f"{label} must be a non-negative integer")
    return number
