"""
Engagement counters - profile views, contact clicks and search appearances.

Tracking is anonymous. Each increment is a conditional update on the value
that was read, so two visitors counted at the same moment both land.
"""

from enum import Enum
from typing import Any

from src.services.supabase_client import get_profile_row, update_where
from src.utils.config import AppConfig
from src.utils.errors import ConflictError, ErrorCode, NotFoundError, ValidationError, VelvetError
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)

TRACK_BATCH_LIMIT = 50


class TrackType(str, Enum):
    VIEW = "view"
    CONTACT = "contact"
    SEARCH = "search"

    @property
    def column(self) -> str:
        return _COUNTER_COLUMNS[self]


_COUNTER_COLUMNS = {
    TrackType.VIEW: "clicks",
    TrackType.CONTACT: "contactClicks",
    TrackType.SEARCH: "searchAppearances",
}


def parse_track_type(value: Any) -> TrackType:
    try:
        return TrackType(value)
    except ValueError:
        raise ValidationError("Invalid type")


def _counter_value(raw: Any) -> int:
    if isinstance(raw, bool):
        return 0
    try:
        return max(int(raw), 0)
    except (TypeError, ValueError):
        return 0


async def increment_counter(profile_id: str, track_type: TrackType) -> int:
    """
    Add one to a profile counter and return the new value.

    Raises:
        NotFoundError: the profile does not exist.
        ConflictError: CONCURRENT_MODIFICATION when every attempt lost a race.
    """
    column = track_type.column
    for attempt in range(AppConfig.CAS_MAX_ATTEMPTS):
        row = await get_profile_row(profile_id)
        if not row:
            raise NotFoundError("Profile not found")

        current = row.get(column)
        new_value = _counter_value(current) + 1
        written = await update_where("profiles", {column: new_value}, {"id": profile_id, column: current})
        if written:
            return new_value

        logger.debug("Counter increment lost a concurrent update, re-reading",
                      profile_id=profile_id, column=column, attempt=attempt + 1)

    raise ConflictError(ErrorCode.CONCURRENT_MODIFICATION, "Profile was modified concurrently, try again")


async def track_event(profile_id: Any, track_type: Any) -> dict:
    """Count one view, contact click or search appearance of a profile."""
    if not profile_id or not track_type:
        raise ValidationError("Missing profileId or type")
    parsed = parse_track_type(track_type)
    await increment_counter(str(profile_id).strip(), parsed)
    return {"success": True}


async def track_search_batch(profile_ids: Any, track_type: Any = TrackType.SEARCH.value) -> dict:
    """
    Count a search appearance for each profile on a results page.

    Only the first TRACK_BATCH_LIMIT ids are taken. Unknown profiles and
    failed increments are skipped; the returned count is the number of ids
    accepted, not the number written.
    """
    if not isinstance(profile_ids, list) or not profile_ids:
        raise ValidationError("Missing or invalid profileIds")
    if track_type != TrackType.SEARCH.value:
        raise ValidationError("Invalid type")

    accepted = profile_ids[:TRACK_BATCH_LIMIT]
    skipped = 0
    for profile_id in accepted:
        if not isinstance(profile_id, str) or not profile_id.strip():
            skipped += 1
            continue
        try:
            await increment_counter(profile_id.strip(), TrackType.SEARCH)
        except VelvetError as e:
            skipped += 1
            logger.warning("Search impression not counted", profile_id=profile_id, error=str(e))

    if len(profile_ids) > TRACK_BATCH_LIMIT:
        logger.info("Search impression batch truncated", received=len(profile_ids), limit=TRACK_BATCH_LIMIT)
    if skipped:
        logger.info("Search impression batch partially counted", accepted=len(accepted), skipped=skipped)
    return {"success": True, "count": len(accepted)}
