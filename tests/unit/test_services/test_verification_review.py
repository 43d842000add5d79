"""Tests for the verification review state machine."""

import pytest

from src.services import verification_review
from src.utils.errors import AuthorizationError, ErrorCode, NotFoundError, SupabaseError, ValidationError
from src.utils.timestamps import to_iso
from tests.conftest import ADMIN_ID, OWNER_ID
from tests.utils.assertions import assert_conflict
from tests.utils.factories import create_profile_row, create_verification_row


def _seed(fake_supabase, now, status="pending"):
    fake_supabase.seed("profiles", create_profile_row(profile_id="p-1", user_id=OWNER_ID, now=now))
    fake_supabase.seed("verification_applications", create_verification_row("p-1", application_id="v-1", status=status))


@pytest.mark.unit
@pytest.mark.asyncio
async def test_approve_pending_application(fake_supabase, admin_actor, now):
    """Test that approval verifies the profile and stamps the reviewer."""
    _seed(fake_supabase, now)

    result = await verification_review.review_application(admin_actor, "v-1", "approve", now=now)

    application = fake_supabase.get("verification_applications", "v-1")
    assert application["status"] == "approved"
    assert application["reviewed_by"] == ADMIN_ID
    assert application["reviewed_at"] == to_iso(now)
    assert fake_supabase.get("profiles", "p-1")["isVerified"] is True
    assert result["status"] == "approved"
    assert result["profileId"] == "p-1"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_second_approval_is_invalid_transition(fake_supabase, admin_actor, now):
    """Test that terminal applications cannot be reviewed again."""
    _seed(fake_supabase, now)
    await verification_review.review_application(admin_actor, "v-1", "approve", now=now)

    with pytest.raises(Exception) as exc_info:
        await verification_review.review_application(admin_actor, "v-1", "approve", now=now)

    assert_conflict(exc_info.value, ErrorCode.INVALID_TRANSITION, 409)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_reject_requires_notes(fake_supabase, admin_actor, now):
    """Test that a rejection without notes is refused."""
    _seed(fake_supabase, now)

    with pytest.raises(ValidationError):
        await verification_review.review_application(admin_actor, "v-1", "reject", notes="   ", now=now)

    assert fake_supabase.get("verification_applications", "v-1")["status"] == "pending"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_reject_keeps_profile_unverified(fake_supabase, admin_actor, now):
    """Test that rejection stores notes and leaves the profile alone."""
    _seed(fake_supabase, now)

    await verification_review.review_application(
        admin_actor, "v-1", "reject", notes="ID photo unreadable", now=now
    )

    application = fake_supabase.get("verification_applications", "v-1")
    assert application["status"] == "rejected"
    assert application["admin_notes"] == "ID photo unreadable"
    assert fake_supabase.get("profiles", "p-1")["isVerified"] is False

    with pytest.raises(Exception) as exc_info:
        await verification_review.review_application(admin_actor, "v-1", "approve", now=now)
    assert_conflict(exc_info.value, ErrorCode.INVALID_TRANSITION, 409)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_failed_profile_update_rolls_back_claim(fake_supabase, admin_actor, now):
    """Test that the application returns to pending if the profile write fails."""
    _seed(fake_supabase, now)
    fake_supabase.fail("profiles", "update")

    with pytest.raises(SupabaseError):
        await verification_review.review_application(admin_actor, "v-1", "approve", now=now)

    application = fake_supabase.get("verification_applications", "v-1")
    assert application["status"] == "pending"
    assert application["reviewed_by"] is None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_review_validation(fake_supabase, admin_actor, owner_actor, now):
    """Test decision parsing, missing applications and admin gating."""
    _seed(fake_supabase, now)

    with pytest.raises(ValidationError):
        await verification_review.review_application(admin_actor, "v-1", "maybe", now=now)
    with pytest.raises(NotFoundError):
        await verification_review.review_application(admin_actor, "v-404", "approve", now=now)
    with pytest.raises(AuthorizationError):
        await verification_review.review_application(owner_actor, "v-1", "approve", now=now)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_latest_verification_for_owner(fake_supabase, owner_actor, stranger_actor, now):
    """Test that owners see their newest application and others are refused."""
    _seed(fake_supabase, now)
    fake_supabase.seed("verification_applications", create_verification_row(
        "p-1", application_id="v-2", status="rejected", created_at="2024-01-01T00:00:00Z"
    ))

    latest = await verification_review.get_latest_verification(owner_actor, "p-1")
    assert latest["id"] == "v-1"

    with pytest.raises(AuthorizationError):
        await verification_review.get_latest_verification(stranger_actor, "p-1")
