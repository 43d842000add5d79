"""Timestamp helpers for values exchanged with Supabase."""

from datetime import datetime, timezone
from typing import Optional, Union


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """
    Parse a timestamp column value into an aware UTC datetime.

    Accepts ISO-8601 strings (with `Z` or an offset), naive values
    (treated as UTC) and datetimes. Empty or unparseable input yields None.
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def to_iso(value: datetime) -> str:
    """Format a datetime as a UTC ISO-8601 string with a `Z` suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def period_key(value: datetime) -> str:
    """Calendar-month key (YYYY-MM) used for per-period bookkeeping."""
    value = parse_timestamp(value)
    return f"{value.year:04d}-{value.month:02d}"
