"""
Expiry sweeper - periodic reconciliation of subscriptions and boost allowances.

Safe to re-run: subscriptions are only expired while still active, and the
monthly boost reset claims a `sweep_runs` marker for the period first.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from src.models.actor import Actor
from src.models.profile import ModelTier
from src.models.subscription import Subscription, SubscriptionStatus
from src.services import tier_catalog
from src.services.entitlements import downgrade_to_free
from src.services.supabase_client import (
    claim_sweep_marker,
    get_expired_subscriptions,
    release_sweep_marker,
    reset_boosts_for_tier,
    update_where,
)
from src.utils.config import AppConfig
from src.utils.errors import AuthorizationError, ValidationError, VelvetError
from src.utils.logging import audit_log, get_structured_logger, log_timing
from src.utils.timestamps import period_key, to_iso, utc_now

logger = get_structured_logger(__name__)

BOOST_RESET_KIND = "boost_reset"


class SweepMode(str, Enum):
    CHECK_SUBSCRIPTIONS = "check-subscriptions"
    RESET_BOOSTS = "reset-boosts"
    ALL = "all"


def parse_sweep_mode(value: Any) -> SweepMode:
    """No mode means a full sweep."""
    if value is None or value == "":
        return SweepMode.ALL
    try:
        return SweepMode(value)
    except ValueError:
        raise ValidationError("Invalid action. Must be check-subscriptions, reset-boosts, or all")


def _require_privileged(actor: Actor) -> None:
    if not actor.is_privileged:
        raise AuthorizationError("Unauthorized")


async def _expire_one(actor: Actor, subscription: Subscription, now: datetime) -> tuple[bool, Optional[str]]:
    """
    Downgrade the linked profile, then mark the subscription expired.

    The profile goes first so a crash in between leaves the subscription
    active and the next sweep picks it up again.
    """
    profile_id = subscription.profile_id
    downgraded = None
    if profile_id:
        if await downgrade_to_free(actor, profile_id, reason="subscription_expired"):
            downgraded = profile_id

    written = await update_where(
        "subscriptions",
        {"status": SubscriptionStatus.EXPIRED.value, "updated_at": to_iso(now)},
        {"id": subscription.id, "status": SubscriptionStatus.ACTIVE.value},
    )
    return bool(written), downgraded


async def handle_expired_subscriptions(actor: Actor, now: Optional[datetime] = None) -> dict:
    """
    Expire every active subscription whose end date has passed.

    Each subscription is handled on its own; failures are collected and the
    rest of the batch continues.
    """
    _require_privileged(actor)
    now = now or utc_now()
    now_iso = to_iso(now)

    processed: list[str] = []
    downgraded: list[str] = []
    failures: list[dict] = []
    skip_ids: list[str] = []

    while True:
        batch = await get_expired_subscriptions(now_iso, AppConfig.SWEEP_BATCH_SIZE, exclude_ids=skip_ids)
        if not batch:
            break

        for row in batch:
            subscription_id = row["id"]
            try:
                subscription = Subscription.model_validate(row)
                expired, profile_id = await _expire_one(actor, subscription, now)
            except (VelvetError, PydanticValidationError) as e:
                logger.error(
                    "Failed to expire subscription",
                    subscription_id=subscription_id,
                    error=str(e),
                )
                failures.append({"subscriptionId": subscription_id, "error": str(e)})
                skip_ids.append(subscription_id)
                continue

            if profile_id:
                downgraded.append(profile_id)
            if expired:
                processed.append(subscription_id)
            else:
                # Another sweep expired it first
                skip_ids.append(subscription_id)

    logger.info(
        "Expired subscriptions swept",
        processed=len(processed),
        profiles_downgraded=len(downgraded),
        failures=len(failures),
    )
    result: dict[str, Any] = {
        "processed": len(processed),
        "profilesDowngraded": downgraded,
        "failures": failures,
    }
    if not processed and not failures:
        result["message"] = "No expired subscriptions found"
    return result


async def reset_monthly_boosts(actor: Actor, now: Optional[datetime] = None) -> dict:
    """Blind reset of premium and elite allowances, at most once per calendar month."""
    _require_privileged(actor)
    now = now or utc_now()
    period = period_key(now)

    if not await claim_sweep_marker(BOOST_RESET_KIND, period):
        logger.info("Boost reset already done for period", period=period)
        return {"skipped": True, "reason": f"Boosts already reset for {period}"}

    try:
        premium = await reset_boosts_for_tier(
            ModelTier.PREMIUM.value, tier_catalog.default_boosts(ModelTier.PREMIUM)
        )
        elite = await reset_boosts_for_tier(
            ModelTier.ELITE.value, tier_catalog.default_boosts(ModelTier.ELITE)
        )
    except VelvetError as e:
        logger.error("Monthly boost reset failed", period=period, error=str(e))
        released = True
        try:
            await release_sweep_marker(BOOST_RESET_KIND, period)
        except VelvetError as release_error:
            released = False
            # The marker stays claimed; the period needs a manual release
            logger.error(
                "Failed to release boost reset marker",
                period=period,
                error=str(release_error),
            )
        return {"success": False, "error": str(e), "period": period, "markerReleased": released}

    audit_log(
        "monthly_boost_reset", actor, "period", period,
        after={"premium_reset": len(premium), "elite_reset": len(elite)},
    )
    return {
        "success": True,
        "period": period,
        "premiumReset": len(premium),
        "eliteReset": len(elite),
    }


async def run_sweep(actor: Actor, mode: Any = None, now: Optional[datetime] = None) -> dict:
    """
    Scheduled entry point.

    The boost reset runs on the first day of the month (UTC), or whenever
    it is requested explicitly.
    """
    _require_privileged(actor)
    sweep_mode = parse_sweep_mode(mode)
    now = now or utc_now()
    results: dict[str, Any] = {"timestamp": to_iso(now)}

    with log_timing("expiry_sweep", logger=logger, mode=sweep_mode.value):
        if sweep_mode in (SweepMode.ALL, SweepMode.CHECK_SUBSCRIPTIONS):
            results["expiredSubscriptions"] = await handle_expired_subscriptions(actor, now)

        if sweep_mode in (SweepMode.ALL, SweepMode.RESET_BOOSTS):
            if now.day == 1 or sweep_mode == SweepMode.RESET_BOOSTS:
                results["boostReset"] = await reset_monthly_boosts(actor, now)
            else:
                results["boostReset"] = {"skipped": True, "reason": "Not first of month"}

    return results


async def expire_subscription(
    actor: Actor,
    subscription_id: Any = None,
    profile_id: Any = None,
    now: Optional[datetime] = None,
) -> dict:
    """Manually expire one subscription and/or downgrade one profile."""
    _require_privileged(actor)
    if not subscription_id and not profile_id:
        raise ValidationError("Missing subscriptionId or profileId")
    now = now or utc_now()

    subscription_expired = False
    if subscription_id:
        written = await update_where(
            "subscriptions",
            {"status": SubscriptionStatus.EXPIRED.value, "updated_at": to_iso(now)},
            {"id": str(subscription_id), "status": SubscriptionStatus.ACTIVE.value},
        )
        subscription_expired = bool(written)

    profile_downgraded = False
    if profile_id:
        profile_downgraded = await downgrade_to_free(actor, str(profile_id), reason="manual_expiry")

    return {
        "success": True,
        "subscriptionExpired": subscription_expired,
        "profileDowngraded": profile_downgraded,
        "message": "Subscription expired and profile downgraded",
    }
