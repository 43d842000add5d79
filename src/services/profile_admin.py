"""Admin moderation: disable toggle and fraud review of profiles."""

from datetime import datetime
from typing import Any, Optional

from src.models.actor import Actor
from src.models.fraud import FraudAnalysis, RiskLevel
from src.services.auth import require_admin
from src.services.entitlements import load_profile
from src.services.fraud_scoring import analyze_profile, analyze_profiles
from src.services.supabase_client import list_profile_rows, update_where
from src.utils.errors import NotFoundError, ValidationError, VelvetError
from src.utils.logging import audit_log, get_structured_logger, timed
from src.utils.timestamps import utc_now

logger = get_structured_logger(__name__)


def parse_risk_level(value: Any) -> Optional[RiskLevel]:
    if value is None or value == "":
        return None
    try:
        return RiskLevel(str(value).lower())
    except ValueError:
        raise ValidationError("Invalid minLevel. Must be safe, low, medium, high, or critical")


def serialize_analysis(analysis: FraudAnalysis, row: Optional[dict] = None) -> dict:
    """JSON shape used by the admin console."""
    result = {
        "profileId": analysis.profile_id,
        "score": analysis.score,
        "level": analysis.level.value,
        "indicators": [
            {
                "type": indicator.type.value,
                "severity": indicator.severity.value,
                "description": indicator.description,
                "points": indicator.points,
            }
            for indicator in analysis.indicators
        ],
    }
    if row is not None:
        result["name"] = row.get("name")
        result["isDisabled"] = bool(row.get("isDisabled"))
        result["isVerified"] = bool(row.get("isVerified"))
    return result


async def set_profile_disabled(actor: Actor, profile_id: Any, disabled: Any) -> dict:
    """Hide or re-enable a profile."""
    require_admin(actor)
    subject_id = profile_id if isinstance(profile_id, str) else None
    try:
        if not isinstance(disabled, bool):
            raise ValidationError("disabled must be true or false")
        profile, _ = await load_profile(profile_id)

        written = await update_where("profiles", {"isDisabled": disabled}, {"id": profile.id})
        if not written:
            raise NotFoundError("Profile not found")

        audit_log(
            "profile_disable_toggle", actor, "profile", profile.id,
            before={"is_disabled": bool(profile.is_disabled)},
            after={"is_disabled": disabled},
        )
        return {"success": True, "profileId": profile.id, "isDisabled": disabled}
    except VelvetError as e:
        audit_log(
            "profile_disable_toggle", actor, "profile", subject_id,
            after={"is_disabled": disabled}, success=False, error=str(e),
        )
        raise


async def get_fraud_analysis(actor: Actor, profile_id: Any, now: Optional[datetime] = None) -> dict:
    require_admin(actor)
    _, row = await load_profile(profile_id)
    return serialize_analysis(analyze_profile(row, now=now or utc_now()), row)


@timed("fraud_review_listing")
async def list_fraud_analyses(
    actor: Actor,
    min_level: Any = None,
    now: Optional[datetime] = None,
) -> list[dict]:
    """Every profile with its analysis, riskiest first."""
    require_admin(actor)
    level = parse_risk_level(min_level)
    rows = await list_profile_rows()
    rows_by_id = {str(row.get("id")): row for row in rows}

    analyses = analyze_profiles(rows, min_level=level, now=now or utc_now())
    logger.info(
        "Fraud review listing built",
        profiles=len(rows),
        flagged=len(analyses),
        min_level=level.value if level else None,
    )
    return [serialize_analysis(a, rows_by_id.get(a.profile_id)) for a in analyses]
