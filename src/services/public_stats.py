"""Public aggregate statistics. Never exposes per-profile data."""

from datetime import datetime, timedelta
from typing import Optional

from src.services.supabase_client import count_active_profiles
from src.utils.config import AppConfig
from src.utils.errors import SupabaseError
from src.utils.logging import get_structured_logger
from src.utils.timestamps import to_iso, utc_now

logger = get_structured_logger(__name__)


async def get_public_stats(now: Optional[datetime] = None) -> dict:
    """
    Count of enabled profiles active within the configured window.

    Store errors degrade to zero so the landing page keeps rendering.
    """
    now = now or utc_now()
    cutoff = now - timedelta(days=AppConfig.ACTIVE_PROFILE_WINDOW_DAYS)
    try:
        active = await count_active_profiles(to_iso(cutoff))
    except SupabaseError as e:
        logger.error("Failed to count active profiles", error=str(e))
        active = 0
    return {"activeProfiles": active}
