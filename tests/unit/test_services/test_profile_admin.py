"""Tests for admin moderation and public statistics."""

import logging
import pytest
from datetime import timedelta

from src.services import profile_admin, public_stats
from src.utils.errors import AuthorizationError, ValidationError
from src.utils.timestamps import to_iso
from tests.utils.factories import create_profile_row


@pytest.mark.unit
@pytest.mark.asyncio
async def test_disable_toggle(fake_supabase, admin_actor, now, caplog):
    """Test disabling and re-enabling a profile, with audit records."""
    fake_supabase.seed("profiles", create_profile_row(profile_id="p-1", now=now))

    with caplog.at_level(logging.INFO, logger="velvet.audit"):
        result = await profile_admin.set_profile_disabled(admin_actor, "p-1", True)
        assert result["isDisabled"] is True
        assert fake_supabase.get("profiles", "p-1")["isDisabled"] is True

        await profile_admin.set_profile_disabled(admin_actor, "p-1", False)
        assert fake_supabase.get("profiles", "p-1")["isDisabled"] is False

    actions = [r for r in caplog.records if getattr(r, "action", None) == "profile_disable_toggle"]
    assert [r.after for r in actions] == [{"is_disabled": True}, {"is_disabled": False}]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_disable_toggle_validation(fake_supabase, admin_actor, owner_actor, now):
    """Test non-boolean flags and non-admin callers."""
    fake_supabase.seed("profiles", create_profile_row(profile_id="p-1", now=now))

    with pytest.raises(ValidationError):
        await profile_admin.set_profile_disabled(admin_actor, "p-1", "yes")
    with pytest.raises(AuthorizationError):
        await profile_admin.set_profile_disabled(owner_actor, "p-1", True)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_fraud_listing_sorted_and_filtered(fake_supabase, admin_actor, now):
    """Test the admin fraud listing."""
    fake_supabase.seed(
        "profiles",
        create_profile_row(profile_id="clean", now=now),
        create_profile_row(profile_id="minor", age=16, now=now),
        create_profile_row(profile_id="bare", images=[], now=now),
    )

    everything = await profile_admin.list_fraud_analyses(admin_actor, now=now)
    assert [a["profileId"] for a in everything] == ["minor", "bare", "clean"]
    assert everything[0]["level"] == "critical"
    assert everything[0]["indicators"][0]["type"] == "underage"
    assert "name" in everything[0]

    critical = await profile_admin.list_fraud_analyses(admin_actor, min_level="critical", now=now)
    assert [a["profileId"] for a in critical] == ["minor"]

    with pytest.raises(ValidationError):
        await profile_admin.list_fraud_analyses(admin_actor, min_level="extreme", now=now)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_single_fraud_analysis(fake_supabase, admin_actor, now):
    """Test scoring one stored profile."""
    fake_supabase.seed("profiles", create_profile_row(profile_id="p-1", images=[], now=now))

    analysis = await profile_admin.get_fraud_analysis(admin_actor, "p-1", now=now)

    assert analysis["score"] == 30
    assert analysis["level"] == "medium"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_public_stats_counts_active_enabled_profiles(fake_supabase, now):
    """Test the active-profile window and disabled exclusion."""
    fake_supabase.seed(
        "profiles",
        create_profile_row(profile_id="recent", now=now),
        create_profile_row(profile_id="never", lastActive=None, now=now),
        create_profile_row(profile_id="stale", lastActive=to_iso(now - timedelta(days=45)), now=now),
        create_profile_row(profile_id="disabled", isDisabled=True, now=now),
        create_profile_row(profile_id="null-flag", isDisabled=None, now=now),
    )

    stats = await public_stats.get_public_stats(now)

    assert stats == {"activeProfiles": 3}


@pytest.mark.unit
@pytest.mark.asyncio
async def test_public_stats_degrades_to_zero(fake_supabase, now):
    """Test that store errors yield zero instead of failing."""
    fake_supabase.fail("profiles", "select")

    assert await public_stats.get_public_stats(now) == {"activeProfiles": 0}
