"""
Verification review - pending -> approved | rejected.

The application is claimed with a conditional update on `status = pending`,
so a second decision on the same application fails instead of overwriting
the first. Approval then flags the profile verified; if that write fails the
claim is rolled back to pending.
"""

from datetime import datetime
from typing import Any, Optional

from src.models.actor import Actor
from src.models.verification import (
    VerificationApplication,
    VerificationDecision,
    VerificationStatus,
)
from src.services.auth import require_admin, require_owner_or_admin
from src.services.entitlements import load_profile
from src.services.supabase_client import (
    get_latest_verification_row,
    get_verification_row,
    update_where,
)
from src.utils.errors import (
    ConflictError,
    ErrorCode,
    NotFoundError,
    ValidationError,
    VelvetError,
)
from src.utils.logging import audit_log, get_structured_logger, sanitize_for_log
from src.utils.timestamps import to_iso, utc_now
from src.utils.validation import require_id

logger = get_structured_logger(__name__)

TABLE = "verification_applications"

_DECISION_STATUS = {
    VerificationDecision.APPROVE: VerificationStatus.APPROVED,
    VerificationDecision.REJECT: VerificationStatus.REJECTED,
}


def parse_decision(value: Any) -> VerificationDecision:
    try:
        return VerificationDecision(value)
    except ValueError:
        raise ValidationError("Invalid decision. Must be approve or reject")


async def _load_application(application_id: str) -> VerificationApplication:
    row = await get_verification_row(application_id)
    if not row:
        raise NotFoundError("Verification application not found")
    return VerificationApplication.model_validate(row)


async def _release_claim(application: VerificationApplication, claimed_status: VerificationStatus) -> None:
    """Put a claimed application back to pending after a failed approval."""
    try:
        await update_where(
            TABLE,
            {
                "status": VerificationStatus.PENDING.value,
                "reviewed_at": None,
                "reviewed_by": None,
                "admin_notes": application.admin_notes,
            },
            {"id": application.id, "status": claimed_status.value},
        )
    except VelvetError as e:
        logger.error(
            "Failed to release verification claim",
            application_id=application.id,
            error=str(e),
        )


async def review_application(
    actor: Actor,
    application_id: Any,
    decision: Any,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> dict:
    """
    Approve or reject a pending verification application.

    Raises:
        ValidationError: unknown decision, or a rejection without notes.
        NotFoundError: application (or, on approval, its profile) is missing.
        ConflictError: INVALID_TRANSITION when the application is not pending.
    """
    require_admin(actor)
    now = now or utc_now()
    subject_id = application_id if isinstance(application_id, str) else None
    try:
        application_id = require_id(application_id, "Application ID")
        verdict = parse_decision(decision)
        notes = notes.strip() if isinstance(notes, str) else None
        if verdict == VerificationDecision.REJECT and not notes:
            raise ValidationError("Notes are required when rejecting an application")

        application = await _load_application(application_id)
        if application.status != VerificationStatus.PENDING:
            raise ConflictError(
                ErrorCode.INVALID_TRANSITION,
                f"Application is already {application.status.value}"
            )

        new_status = _DECISION_STATUS[verdict]
        updates: dict[str, Any] = {
            "status": new_status.value,
            "reviewed_at": to_iso(now),
            "reviewed_by": actor.id,
            "updatedAt": to_iso(now),
        }
        if notes:
            updates["admin_notes"] = notes

        claimed = await update_where(
            TABLE, updates, {"id": application_id, "status": VerificationStatus.PENDING.value}
        )
        if not claimed:
            raise ConflictError(ErrorCode.INVALID_TRANSITION, "Application was already reviewed")

        if verdict == VerificationDecision.APPROVE:
            try:
                verified = await update_where(
                    "profiles", {"isVerified": True}, {"id": application.profile_id}
                )
            except VelvetError:
                await _release_claim(application, new_status)
                raise
            if not verified:
                await _release_claim(application, new_status)
                raise NotFoundError("Profile not found")

        audit_log(
            "verification_review", actor, "verification_application", application_id,
            before={"status": VerificationStatus.PENDING.value},
            after={"status": new_status.value},
            profile_id=application.profile_id,
            notes=sanitize_for_log(notes),
        )
        return {
            "success": True,
            "applicationId": application_id,
            "profileId": application.profile_id,
            "status": new_status.value,
            "reviewedAt": to_iso(now),
            "reviewedBy": actor.id,
            "message": f"Application {new_status.value}",
        }
    except VelvetError as e:
        audit_log(
            "verification_review", actor, "verification_application", subject_id,
            after={"decision": str(decision)}, success=False, error=str(e),
        )
        raise


async def get_latest_verification(actor: Actor, profile_id: Any) -> Optional[dict]:
    """Latest application for a profile, readable by its owner or an admin."""
    profile, _ = await load_profile(profile_id)
    require_owner_or_admin(actor, profile.user_id)
    return await get_latest_verification_row(profile.id)
