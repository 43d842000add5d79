"""
Subscription read and cancel for account holders and admins.

Cancelling is the only state change offered here and it only moves an
`active` subscription to `cancelled`; the write is conditional on the
status, so it cannot resurrect or overwrite a subscription the expiry
sweep has already closed.
"""

from datetime import datetime
from typing import Any, Optional

from src.models.actor import Actor
from src.models.subscription import Subscription, SubscriptionStatus
from src.services.auth import require_admin, require_owner_or_admin
from src.services.supabase_client import (
    get_latest_subscription_for_user,
    get_subscription_row,
    list_subscription_rows,
    update_where,
)
from src.utils.errors import ConflictError, ErrorCode, NotFoundError, VelvetError
from src.utils.logging import audit_log, get_structured_logger, mask_user_id
from src.utils.timestamps import to_iso, utc_now
from src.utils.validation import require_id

logger = get_structured_logger(__name__)

CANCELLATION_REASON = "user_requested"


async def get_own_subscription(actor: Actor) -> dict:
    """The caller's most recent subscription, or None."""
    row = await get_latest_subscription_for_user(actor.id)
    return {"subscription": row}


async def list_subscriptions(actor: Actor) -> dict:
    require_admin(actor)
    rows = await list_subscription_rows()
    return {"subscriptions": rows}


async def _resolve_subscription(actor: Actor, subscription_id: Any) -> Subscription:
    if subscription_id is not None:
        row = await get_subscription_row(require_id(subscription_id, "Subscription ID"))
    else:
        row = await get_latest_subscription_for_user(actor.id)
    if not row:
        raise NotFoundError("No active subscription found")
    subscription = Subscription.model_validate(row)
    require_owner_or_admin(actor, subscription.user_id)
    return subscription


async def cancel_subscription(
    actor: Actor,
    subscription_id: Any = None,
    now: Optional[datetime] = None,
) -> dict:
    """
    Cancel an active subscription; access runs on until its end date.

    Without `subscription_id` the caller's latest subscription is used.

    Raises:
        NotFoundError: no subscription to cancel.
        AuthorizationError: the subscription belongs to someone else.
        ConflictError: INVALID_TRANSITION when the subscription is not active.
    """
    now = now or utc_now()
    subject_id = subscription_id if isinstance(subscription_id, str) else None
    try:
        subscription = await _resolve_subscription(actor, subscription_id)
        subject_id = subscription.id
        if subscription.status != SubscriptionStatus.ACTIVE:
            raise ConflictError(ErrorCode.INVALID_TRANSITION, "Subscription is not active")

        updates = {
            "status": SubscriptionStatus.CANCELLED.value,
            "cancelled_at": to_iso(now),
            "cancellation_reason": CANCELLATION_REASON,
            "updated_at": to_iso(now),
        }
        written = await update_where(
            "subscriptions", updates,
            {"id": subscription.id, "status": SubscriptionStatus.ACTIVE.value},
        )
        if not written:
            raise ConflictError(ErrorCode.INVALID_TRANSITION, "Subscription is not active")

        audit_log(
            "subscription_cancel", actor, "subscription", subscription.id,
            before={"status": SubscriptionStatus.ACTIVE.value},
            after={"status": SubscriptionStatus.CANCELLED.value},
            profile_id=subscription.profile_id,
        )
        until = to_iso(subscription.end_date) if subscription.end_date else "the end of the paid period"
        return {
            "success": True,
            "subscriptionId": subscription.id,
            "status": SubscriptionStatus.CANCELLED.value,
            "message": f"Subscription cancelled. Access continues until {until}.",
        }
    except VelvetError as e:
        audit_log(
            "subscription_cancel", actor, "subscription", subject_id,
            success=False, error=str(e),
        )
        raise


async def verify_payment(actor: Actor) -> dict:
    """Whether the caller's latest subscription has become active."""
    row = await get_latest_subscription_for_user(actor.id)
    if not row or row.get("status") != SubscriptionStatus.ACTIVE.value:
        logger.info("Payment not yet reflected in subscriptions", actor_id=mask_user_id(actor.id))
        return {"verified": False, "message": "Payment still processing. Please wait a moment."}
    return {"verified": True, "subscription": row}
