"""
Entitlement / tier state for profiles and agencies.

Tier writes are single-row conditional updates keyed on the tier that was
read, so two admins editing the same record concurrently can never leave a
mix of both edits behind: the loser re-reads and re-applies on top of the
winner's state.
"""

from datetime import datetime
from typing import Any, Optional

from src.models.actor import Actor
from src.models.agency import Agency
from src.models.profile import ModelTier, Profile
from src.services import tier_catalog
from src.services.auth import require_admin
from src.services.supabase_client import (
    count_agency_profiles,
    get_agency_row,
    get_profile_row,
    update_where,
)
from src.utils.config import AppConfig
from src.utils.errors import (
    AuthorizationError,
    ConflictError,
    ErrorCode,
    NotFoundError,
    VelvetError,
)
from src.utils.logging import audit_log, get_structured_logger, sanitize_for_log
from src.utils.timestamps import to_iso, utc_now
from src.utils.validation import optional_non_negative_int, optional_timestamp, require_id

logger = get_structured_logger(__name__)

PAID_TIERS = (ModelTier.PREMIUM, ModelTier.ELITE)


async def load_profile(profile_id: Any) -> tuple[Profile, dict]:
    """Fetch a profile; returns the model and the raw row (for conditional writes)."""
    profile_id = require_id(profile_id, "Profile ID")
    row = await get_profile_row(profile_id)
    if not row:
        raise NotFoundError("Profile not found")
    return Profile.model_validate(row), row


async def load_agency(agency_id: Any) -> tuple[Agency, dict]:
    agency_id = require_id(agency_id, "Agency ID")
    row = await get_agency_row(agency_id)
    if not row:
        raise NotFoundError("Agency not found")
    return Agency.model_validate(row), row


def _iso_or_none(value: Optional[datetime]) -> Optional[str]:
    return to_iso(value) if value else None


def describe_profile_tier(profile: Profile) -> dict:
    """Tier view shared by the admin tier and boost endpoints."""
    allowance = tier_catalog.boost_allowance(profile.tier)
    return {
        "profileId": profile.id,
        "tier": profile.tier.value,
        "isPremium": profile.tier in PAID_TIERS,
        "boostsRemaining": (
            "unlimited" if tier_catalog.is_unlimited(allowance) else profile.boosts_remaining
        ),
        "boostsPerMonth": tier_catalog.describe_allowance(allowance),
        "boostedUntil": _iso_or_none(profile.boosted_until),
        "subscriptionExpiresAt": _iso_or_none(profile.subscription_expires_at),
    }


def get_profile_entitlements(profile: Profile, now: Optional[datetime] = None) -> dict:
    """Capabilities derived from a profile's tier and boost state."""
    now = now or utc_now()
    limits = tier_catalog.get_tier_limits(profile.tier)
    boosted = profile.is_boosted(now)
    expired = bool(profile.subscription_expires_at and profile.subscription_expires_at <= now)
    return {
        "tier": profile.tier.value,
        "canBoost": tier_catalog.can_boost(profile.tier),
        "isBoosted": boosted,
        "searchPriority": tier_catalog.search_priority(profile.tier, is_boosted=boosted),
        "photoLimit": limits.photos,
        "videoLimit": limits.videos,
        "serviceLimit": limits.services,
        "contactLimit": limits.contacts,
        "schedule": limits.schedule,
        "statistics": limits.statistics,
        "advancedStatistics": limits.advanced_statistics,
        "onlineIndicator": limits.online_indicator,
        "badge": limits.badge,
        "subscriptionExpired": expired,
    }


async def get_agency_slot_usage(agency: Agency) -> dict:
    """
    Occupied model slots against the agency's limit.

    Over-limit agencies are flagged for operators, never blocked.
    """
    occupied = await count_agency_profiles(agency.id)
    over_limit = occupied > agency.model_limit
    if over_limit:
        logger.warning(
            "Agency exceeds model limit",
            agency_id=agency.id,
            occupied=occupied,
            model_limit=agency.model_limit,
        )
    return {
        "modelLimit": agency.model_limit,
        "occupied": occupied,
        "available": max(agency.model_limit - occupied, 0),
        "overLimit": over_limit,
        "canAdvertise": tier_catalog.can_advertise(agency.subscription_tier),
    }


async def get_profile_tier(actor: Actor, profile_id: Any) -> dict:
    """Admin read of a profile's tier state."""
    require_admin(actor)
    profile, _ = await load_profile(profile_id)
    result = describe_profile_tier(profile)
    result["name"] = profile.name
    return result


async def get_agency_tier(actor: Actor, agency_id: Any) -> dict:
    """Admin read of an agency's tier state and slot usage."""
    require_admin(actor)
    agency, _ = await load_agency(agency_id)
    result = {
        "agencyId": agency.id,
        "name": agency.name,
        "tier": agency.subscription_tier.value,
        "subscriptionExpiresAt": _iso_or_none(agency.subscription_expires_at),
    }
    result.update(await get_agency_slot_usage(agency))
    return result


async def change_profile_tier(
    actor: Actor,
    profile_id: Any,
    tier: Any,
    expires_at: Any = None,
    notes: Optional[str] = None,
) -> dict:
    """
    Admin tier change for a profile.

    Writes tier, the legacy isPremium flag, a fresh boost allowance when the
    tier actually changes, and the optional expiry in one statement.
    """
    require_admin(actor)
    subject_id = profile_id if isinstance(profile_id, str) else None
    try:
        profile_id = require_id(profile_id, "Profile ID")
        new_tier = tier_catalog.parse_model_tier(tier)
        expiry = optional_timestamp(expires_at, "expiresAt")

        for attempt in range(AppConfig.CAS_MAX_ATTEMPTS):
            profile, row = await load_profile(profile_id)
            old_tier = profile.tier

            if new_tier == old_tier and expiry is None:
                raise ConflictError(ErrorCode.TIER_UNCHANGED, f"Profile is already on the {new_tier.value} tier")

            updates: dict[str, Any] = {
                "tier": new_tier.value,
                "isPremium": new_tier in PAID_TIERS,
            }
            if expiry is not None:
                updates["subscription_expires_at"] = to_iso(expiry)
            if new_tier != old_tier:
                updates["boosts_remaining"] = tier_catalog.default_boosts(new_tier)

            written = await update_where("profiles", updates, {"id": profile_id, "tier": row.get("tier")})
            if written:
                boosts = updates.get("boosts_remaining", profile.boosts_remaining)
                audit_log(
                    "profile_tier_change", actor, "profile", profile_id,
                    before={"tier": old_tier.value},
                    after={"tier": new_tier.value, "boosts_remaining": boosts},
                    expires_at=_iso_or_none(expiry),
                    notes=sanitize_for_log(notes),
                )
                return {
                    "success": True,
                    "profileId": profile_id,
                    "oldTier": old_tier.value,
                    "newTier": new_tier.value,
                    "boostsRemaining": boosts,
                    "expiresAt": _iso_or_none(expiry),
                    "message": f"Profile tier updated from {old_tier.value} to {new_tier.value}",
                }

            logger.info("Profile tier changed concurrently, retrying", profile_id=profile_id, attempt=attempt + 1)

        raise ConflictError(ErrorCode.CONCURRENT_MODIFICATION, "Profile was modified concurrently, try again")
    except VelvetError as e:
        audit_log(
            "profile_tier_change", actor, "profile", subject_id,
            after={"tier": str(tier)}, success=False, error=str(e),
        )
        raise


async def change_agency_tier(
    actor: Actor,
    agency_id: Any,
    tier: Any,
    model_limit: Any = None,
    expires_at: Any = None,
) -> dict:
    """Admin tier change for an agency; model limit defaults from the tier table."""
    require_admin(actor)
    subject_id = agency_id if isinstance(agency_id, str) else None
    try:
        agency_id = require_id(agency_id, "Agency ID")
        new_tier = tier_catalog.parse_agency_tier(tier)
        limit_override = optional_non_negative_int(model_limit, "modelLimit")
        expiry = optional_timestamp(expires_at, "expiresAt")
        new_limit = limit_override if limit_override is not None else tier_catalog.default_model_limit(new_tier)

        for attempt in range(AppConfig.CAS_MAX_ATTEMPTS):
            agency, row = await load_agency(agency_id)
            old_tier = agency.subscription_tier

            if (
                new_tier == old_tier
                and new_limit == agency.model_limit
                and expiry is None
            ):
                raise ConflictError(ErrorCode.TIER_UNCHANGED, f"Agency is already on the {new_tier.value} tier")

            updates: dict[str, Any] = {
                "subscriptionTier": new_tier.value,
                "modelLimit": new_limit,
            }
            if expiry is not None:
                updates["subscriptionExpiresAt"] = to_iso(expiry)

            written = await update_where(
                "agencies", updates, {"id": agency_id, "subscriptionTier": row.get("subscriptionTier")}
            )
            if written:
                audit_log(
                    "agency_tier_change", actor, "agency", agency_id,
                    before={"tier": old_tier.value, "model_limit": agency.model_limit},
                    after={"tier": new_tier.value, "model_limit": new_limit},
                    expires_at=_iso_or_none(expiry),
                )
                updated = agency.model_copy(update={"subscription_tier": new_tier, "model_limit": new_limit})
                usage = await get_agency_slot_usage(updated)
                return {
                    "success": True,
                    "agencyId": agency_id,
                    "oldTier": old_tier.value,
                    "newTier": new_tier.value,
                    "modelLimit": new_limit,
                    "occupied": usage["occupied"],
                    "overLimit": usage["overLimit"],
                    "expiresAt": _iso_or_none(expiry),
                    "message": f"Agency tier updated from {old_tier.value} to {new_tier.value}",
                }

            logger.info("Agency tier changed concurrently, retrying", agency_id=agency_id, attempt=attempt + 1)

        raise ConflictError(ErrorCode.CONCURRENT_MODIFICATION, "Agency was modified concurrently, try again")
    except VelvetError as e:
        audit_log(
            "agency_tier_change", actor, "agency", subject_id,
            after={"tier": str(tier)}, success=False, error=str(e),
        )
        raise


async def apply_paid_upgrade(actor: Actor, profile_id: Any, tier: Any, boosts: Any = None) -> dict:
    """
    Put a profile on a paid tier after payment (or renewal).

    Re-applying the current tier is allowed here; the allowance is reset to
    `boosts` or the tier default.
    """
    if not actor.is_privileged:
        raise AuthorizationError("Unauthorized")
    profile_id = require_id(profile_id, "Profile ID")
    new_tier = tier_catalog.parse_model_tier(tier)
    boosts_override = optional_non_negative_int(boosts, "boosts")
    profile, _ = await load_profile(profile_id)

    boosts_remaining = boosts_override if boosts_override is not None else tier_catalog.default_boosts(new_tier)
    updates = {
        "tier": new_tier.value,
        "isPremium": new_tier in PAID_TIERS,
        "boosts_remaining": boosts_remaining,
    }
    written = await update_where("profiles", updates, {"id": profile_id})
    if not written:
        raise NotFoundError("Profile not found")

    audit_log(
        "profile_paid_upgrade", actor, "profile", profile_id,
        before={"tier": profile.tier.value},
        after={"tier": new_tier.value, "boosts_remaining": boosts_remaining},
    )
    return {
        "success": True,
        "profileId": profile_id,
        "tier": new_tier.value,
        "boostsRemaining": boosts_remaining,
        "message": f"Profile upgraded to {new_tier.value}",
    }


async def downgrade_to_free(actor: Actor, profile_id: str, reason: str) -> bool:
    """
    Drop a profile to the free tier with no boosts left.

    Idempotent; returns False when the profile no longer exists. Photos and
    services beyond the free limits are kept and hidden by the frontend.
    """
    written = await update_where(
        "profiles",
        {"tier": ModelTier.FREE.value, "isPremium": False, "boosts_remaining": 0},
        {"id": profile_id},
    )
    if written:
        audit_log(
            "profile_downgrade", actor, "profile", profile_id,
            after={"tier": ModelTier.FREE.value, "boosts_remaining": 0},
            reason=reason,
        )
    return bool(written)
