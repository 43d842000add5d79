"""
Boost scheduler - 24-hour visibility boosts for profiles.

Self-service activation is a compare-and-swap: the update only lands if the
profile still has the tier and allowance that were read and no boost is
active. A concurrent request that loses the race re-reads and then fails
the eligibility checks, so one allowance unit can never be spent twice.
"""

import math
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Optional

from src.models.actor import Actor
from src.services import tier_catalog
from src.services.auth import require_admin, require_owner_or_admin
from src.services.entitlements import describe_profile_tier, load_profile
from src.services.supabase_client import update_where
from src.utils.config import AppConfig
from src.utils.errors import ConflictError, ErrorCode, ValidationError, VelvetError
from src.utils.logging import audit_log, get_structured_logger, mask_user_id
from src.utils.timestamps import to_iso, utc_now

logger = get_structured_logger(__name__)

BOOST_DURATION = timedelta(hours=24)


class BoostAction(str, Enum):
    """Operator overrides; they skip the self-service eligibility checks."""
    RESET = "reset"
    GRANT = "grant"
    ACTIVATE = "activate"
    DEACTIVATE = "deactivate"


def _not_boosted_filter(now: datetime) -> str:
    """PostgREST `or` filter: no boost set, or the boost already ended."""
    return f"boosted_until.is.null,boosted_until.lte.{to_iso(now)}"


def _remaining_hours(boosted_until: datetime, now: datetime) -> int:
    return math.ceil((boosted_until - now).total_seconds() / 3600)


async def activate_boost(actor: Actor, profile_id: Any, now: Optional[datetime] = None) -> dict:
    """
    Activate a 24-hour boost for a profile the actor owns.

    Raises:
        ConflictError: ALREADY_BOOSTED, TIER_NOT_ALLOWED or NO_BOOSTS_REMAINING,
            or CONCURRENT_MODIFICATION if the row kept changing under us.
        NotFoundError / ValidationError / AuthorizationError.
    """
    now = now or utc_now()

    for attempt in range(AppConfig.CAS_MAX_ATTEMPTS):
        profile, row = await load_profile(profile_id)
        require_owner_or_admin(actor, profile.user_id)

        if profile.is_boosted(now):
            hours = _remaining_hours(profile.boosted_until, now)
            raise ConflictError(
                ErrorCode.ALREADY_BOOSTED,
                f"Profile is already boosted. {hours} hours remaining."
            )

        if not tier_catalog.can_boost(profile.tier):
            raise ConflictError(
                ErrorCode.TIER_NOT_ALLOWED,
                "Your tier does not support boosts. Upgrade to Premium or Elite."
            )

        allowance = tier_catalog.boost_allowance(profile.tier)
        unlimited = tier_catalog.is_unlimited(allowance)
        if not unlimited and profile.boosts_remaining <= 0:
            raise ConflictError(
                ErrorCode.NO_BOOSTS_REMAINING,
                "No boosts remaining this month. Wait for next month or upgrade to Elite for unlimited boosts."
            )

        boosted_until = now + BOOST_DURATION
        updates: dict[str, Any] = {"boosted_until": to_iso(boosted_until)}
        filters: dict[str, Any] = {"id": profile.id, "tier": row.get("tier")}
        if not unlimited:
            updates["boosts_remaining"] = profile.boosts_remaining - 1
            filters["boosts_remaining"] = row.get("boosts_remaining")

        written = await update_where("profiles", updates, filters, or_filter=_not_boosted_filter(now))
        if written:
            remaining = "unlimited" if unlimited else updates["boosts_remaining"]
            logger.info(
                "Boost activated",
                profile_id=profile.id,
                actor_id=mask_user_id(actor.id),
                boosted_until=to_iso(boosted_until),
                boosts_remaining=remaining,
            )
            return {
                "success": True,
                "boostedUntil": to_iso(boosted_until),
                "boostsRemaining": remaining,
                "message": "Boost activated! Your profile will appear at the top of search results for 24 hours.",
            }

        logger.info("Boost activation lost a concurrent update, re-reading", profile_id=profile.id, attempt=attempt + 1)

    raise ConflictError(ErrorCode.CONCURRENT_MODIFICATION, "Profile was modified concurrently, try again")


async def get_boost_status(actor: Actor, profile_id: Any, now: Optional[datetime] = None) -> dict:
    """Tier, eligibility, active window and remaining allowance of a profile."""
    now = now or utc_now()
    profile, _ = await load_profile(profile_id)
    require_owner_or_admin(actor, profile.user_id)

    allowance = tier_catalog.boost_allowance(profile.tier)
    boosted = profile.is_boosted(now)
    return {
        "profileId": profile.id,
        "tier": profile.tier.value,
        "canBoost": tier_catalog.can_boost(profile.tier),
        "isBoosted": boosted,
        "boostedUntil": to_iso(profile.boosted_until) if boosted else None,
        "remainingSeconds": int((profile.boosted_until - now).total_seconds()) if boosted else 0,
        "boostsRemaining": "unlimited" if tier_catalog.is_unlimited(allowance) else profile.boosts_remaining,
        "boostsPerMonth": tier_catalog.describe_allowance(allowance),
    }


async def admin_boost_action(
    actor: Actor,
    profile_id: Any,
    action: Any,
    now: Optional[datetime] = None,
) -> dict:
    """Apply an operator boost override (reset, grant, activate, deactivate)."""
    require_admin(actor)
    now = now or utc_now()
    subject_id = profile_id if isinstance(profile_id, str) else None
    try:
        try:
            boost_action = BoostAction(action)
        except ValueError:
            raise ValidationError("Invalid action. Must be reset, grant, activate, or deactivate")

        for attempt in range(AppConfig.CAS_MAX_ATTEMPTS):
            profile, row = await load_profile(profile_id)
            filters: dict[str, Any] = {"id": profile.id}

            if boost_action == BoostAction.RESET:
                allowance = tier_catalog.boost_allowance(profile.tier)
                updates = {"boosts_remaining": tier_catalog.allowance_to_counter(allowance)}
                filters["tier"] = row.get("tier")
                message = f"Boosts reset to {tier_catalog.describe_allowance(allowance)}"
            elif boost_action == BoostAction.GRANT:
                allowance = tier_catalog.boost_allowance(profile.tier)
                filters["tier"] = row.get("tier")
                if tier_catalog.is_unlimited(allowance):
                    # The sentinel is rewritten, never incremented
                    updates = {"boosts_remaining": tier_catalog.allowance_to_counter(allowance)}
                    message = "Tier has unlimited boosts, nothing to add"
                else:
                    updates = {"boosts_remaining": profile.boosts_remaining + 1}
                    filters["boosts_remaining"] = row.get("boosts_remaining")
                    message = f"Added 1 boost (now {profile.boosts_remaining + 1})"
            elif boost_action == BoostAction.ACTIVATE:
                boosted_until = now + BOOST_DURATION
                updates = {"boosted_until": to_iso(boosted_until)}
                message = f"Profile boosted until {to_iso(boosted_until)}"
            else:
                updates = {"boosted_until": None}
                message = "Boost deactivated"

            written = await update_where("profiles", updates, filters)
            if written:
                audit_log(
                    "profile_boost_admin", actor, "profile", profile.id,
                    before={"boosts_remaining": profile.boosts_remaining,
                            "boosted_until": to_iso(profile.boosted_until) if profile.boosted_until else None},
                    after=updates,
                    boost_action=boost_action.value,
                )
                updated = written[0]
                unlimited = tier_catalog.is_unlimited(tier_catalog.boost_allowance(profile.tier))
                return {
                    "success": True,
                    "action": boost_action.value,
                    "profileId": profile.id,
                    "boostsRemaining": "unlimited" if unlimited else (updated.get("boosts_remaining", 0) or 0),
                    "boostedUntil": updated.get("boosted_until"),
                    "message": message,
                }

            logger.info("Boost override lost a concurrent update, retrying", profile_id=profile.id, attempt=attempt + 1)

        raise ConflictError(ErrorCode.CONCURRENT_MODIFICATION, "Profile was modified concurrently, try again")
    except VelvetError as e:
        audit_log(
            "profile_boost_admin", actor, "profile", subject_id,
            success=False, boost_action=str(action), error=str(e),
        )
        raise


async def get_admin_boost_view(actor: Actor, profile_id: Any, now: Optional[datetime] = None) -> dict:
    """Admin read of a profile's boost state."""
    require_admin(actor)
    now = now or utc_now()
    profile, _ = await load_profile(profile_id)
    view = describe_profile_tier(profile)
    boosted = profile.is_boosted(now)
    view.update({
        "name": profile.name,
        "isBoosted": boosted,
        "boostedUntil": to_iso(profile.boosted_until) if boosted else None,
    })
    return view
