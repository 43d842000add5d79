"""Tests for the expiry sweeper."""

import pytest
from datetime import datetime, timedelta, timezone

from src.services import expiry_sweeper
from src.utils.config import AppConfig
from src.utils.errors import AuthorizationError, ValidationError
from src.utils.timestamps import to_iso
from tests.utils.factories import create_profile_row, create_subscription_row


FIRST_OF_MONTH = datetime(2024, 12, 1, 0, 5, 0, tzinfo=timezone.utc)


def _seed_expired(fake_supabase, now, subscription_id, profile_id, tier="premium"):
    fake_supabase.seed("profiles", create_profile_row(profile_id=profile_id, tier=tier, boosts_remaining=2, now=now))
    fake_supabase.seed("subscriptions", create_subscription_row(
        profile_id, end_date=to_iso(now - timedelta(days=1)), subscription_id=subscription_id
    ))


@pytest.mark.unit
@pytest.mark.asyncio
async def test_expired_subscription_downgrades_profile(fake_supabase, system_actor, now):
    """Test that an expired subscription drops its profile to free."""
    _seed_expired(fake_supabase, now, "s-1", "p-1")
    fake_supabase.seed("profiles", create_profile_row(profile_id="p-2", tier="elite", boosts_remaining=999, now=now))
    fake_supabase.seed("subscriptions", create_subscription_row(
        "p-2", end_date=to_iso(now + timedelta(days=5)), subscription_id="s-2"
    ))

    result = await expiry_sweeper.handle_expired_subscriptions(system_actor, now)

    assert result["processed"] == 1
    assert result["profilesDowngraded"] == ["p-1"]
    assert result["failures"] == []
    profile = fake_supabase.get("profiles", "p-1")
    assert profile["tier"] == "free"
    assert profile["boosts_remaining"] == 0
    assert profile["isPremium"] is False
    assert fake_supabase.get("subscriptions", "s-1")["status"] == "expired"
    assert fake_supabase.get("subscriptions", "s-1")["updated_at"] == to_iso(now)
    assert fake_supabase.get("subscriptions", "s-2")["status"] == "active"
    assert fake_supabase.get("profiles", "p-2")["tier"] == "elite"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_sweep_is_idempotent(fake_supabase, system_actor, now):
    """Test that a second sweep finds nothing left to downgrade."""
    _seed_expired(fake_supabase, now, "s-1", "p-1")

    await expiry_sweeper.handle_expired_subscriptions(system_actor, now)
    second = await expiry_sweeper.handle_expired_subscriptions(system_actor, now)

    assert second["processed"] == 0
    assert second["profilesDowngraded"] == []
    assert second["message"] == "No expired subscriptions found"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_one_failure_does_not_abort_sweep(fake_supabase, system_actor, now):
    """Test per-record failure isolation."""
    _seed_expired(fake_supabase, now, "s-1", "p-1")
    _seed_expired(fake_supabase, now, "s-2", "p-2")
    fake_supabase.fail("profiles", "update", row_id="p-1")

    result = await expiry_sweeper.handle_expired_subscriptions(system_actor, now)

    assert result["processed"] == 1
    assert result["profilesDowngraded"] == ["p-2"]
    assert [f["subscriptionId"] for f in result["failures"]] == ["s-1"]
    assert fake_supabase.get("subscriptions", "s-1")["status"] == "active"
    assert fake_supabase.get("subscriptions", "s-2")["status"] == "expired"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_malformed_subscription_row_is_isolated(fake_supabase, system_actor, now):
    """Test that a row the model rejects is reported and the sweep carries on."""
    _seed_expired(fake_supabase, now, "s-1", "p-1")
    broken = create_subscription_row(
        "p-2", end_date=to_iso(now - timedelta(days=1)), subscription_id="s-bad"
    )
    broken["profile_id"] = {"not": "an id"}
    fake_supabase.seed("subscriptions", broken)

    result = await expiry_sweeper.handle_expired_subscriptions(system_actor, now)

    assert result["processed"] == 1
    assert result["profilesDowngraded"] == ["p-1"]
    assert [f["subscriptionId"] for f in result["failures"]] == ["s-bad"]
    assert fake_supabase.get("subscriptions", "s-bad")["status"] == "active"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_sweep_processes_in_batches(fake_supabase, system_actor, now, monkeypatch):
    """Test that more expired rows than one batch are all handled."""
    monkeypatch.setattr(AppConfig, "SWEEP_BATCH_SIZE", 2)
    for index in range(5):
        _seed_expired(fake_supabase, now, f"s-{index}", f"p-{index}")

    result = await expiry_sweeper.handle_expired_subscriptions(system_actor, now)

    assert result["processed"] == 5
    assert all(row["status"] == "expired" for row in fake_supabase.rows("subscriptions"))


@pytest.mark.unit
@pytest.mark.asyncio
async def test_subscription_without_profile(fake_supabase, system_actor, now):
    """Test that orphaned subscriptions are still expired."""
    fake_supabase.seed("subscriptions", create_subscription_row(
        None, end_date=to_iso(now - timedelta(hours=1)), subscription_id="s-1"
    ))

    result = await expiry_sweeper.handle_expired_subscriptions(system_actor, now)

    assert result["processed"] == 1
    assert result["profilesDowngraded"] == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_boost_reset_skipped_mid_month(fake_supabase, system_actor, now):
    """Test that a full sweep only resets boosts on the first of the month."""
    result = await expiry_sweeper.run_sweep(system_actor, "all", now=now)

    assert result["timestamp"] == to_iso(now)
    assert result["boostReset"] == {"skipped": True, "reason": "Not first of month"}
    assert "expiredSubscriptions" in result


@pytest.mark.unit
@pytest.mark.asyncio
async def test_boost_reset_on_first_of_month(fake_supabase, system_actor):
    """Test the monthly reset and its once-per-period guard."""
    now = FIRST_OF_MONTH
    fake_supabase.seed(
        "profiles",
        create_profile_row(profile_id="free", tier="free", boosts_remaining=0, now=now),
        create_profile_row(profile_id="premium", tier="premium", boosts_remaining=0, now=now),
        create_profile_row(profile_id="elite", tier="elite", boosts_remaining=3, now=now),
    )

    first = await expiry_sweeper.run_sweep(system_actor, None, now=now)

    assert first["boostReset"]["premiumReset"] == 1
    assert first["boostReset"]["eliteReset"] == 1
    assert fake_supabase.get("profiles", "premium")["boosts_remaining"] == 2
    assert fake_supabase.get("profiles", "elite")["boosts_remaining"] == 999
    assert fake_supabase.get("profiles", "free")["boosts_remaining"] == 0

    fake_supabase.tables["profiles"][1]["boosts_remaining"] = 1
    second = await expiry_sweeper.run_sweep(system_actor, None, now=now + timedelta(hours=1))

    assert second["boostReset"]["skipped"] is True
    assert fake_supabase.get("profiles", "premium")["boosts_remaining"] == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_explicit_reset_mid_month(fake_supabase, system_actor, now):
    """Test that reset-boosts runs regardless of the day."""
    fake_supabase.seed("profiles", create_profile_row(profile_id="p-1", tier="premium", boosts_remaining=0, now=now))

    result = await expiry_sweeper.run_sweep(system_actor, "reset-boosts", now=now)

    assert result["boostReset"]["success"] is True
    assert result["boostReset"]["period"] == "2024-12"
    assert "expiredSubscriptions" not in result
    assert fake_supabase.rows("sweep_runs") == [{"kind": "boost_reset", "period": "2024-12"}]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_failed_reset_releases_marker(fake_supabase, system_actor, now):
    """Test that a failed reset can be retried."""
    fake_supabase.fail("profiles", "update")

    result = await expiry_sweeper.reset_monthly_boosts(system_actor, now)

    assert result["success"] is False
    assert fake_supabase.rows("sweep_runs") == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_failed_marker_release_keeps_sweep_report(fake_supabase, system_actor, now):
    """Test that a reset failure plus a failed release still returns the full report."""
    _seed_expired(fake_supabase, FIRST_OF_MONTH, "s-1", "p-1")
    fake_supabase.fail("profiles", "update", row_id="p-9")
    fake_supabase.seed("profiles", create_profile_row(profile_id="p-9", tier="premium", boosts_remaining=0, now=now))
    fake_supabase.fail("sweep_runs", "delete")

    result = await expiry_sweeper.run_sweep(system_actor, "all", now=FIRST_OF_MONTH)

    assert result["expiredSubscriptions"]["processed"] == 1
    assert result["boostReset"]["success"] is False
    assert result["boostReset"]["markerReleased"] is False
    assert fake_supabase.rows("sweep_runs") == [{"kind": "boost_reset", "period": "2024-12"}]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_run_sweep_validation(fake_supabase, system_actor, owner_actor, now):
    """Test unknown modes and unprivileged callers."""
    with pytest.raises(ValidationError):
        await expiry_sweeper.run_sweep(system_actor, "everything", now=now)
    with pytest.raises(AuthorizationError):
        await expiry_sweeper.run_sweep(owner_actor, "all", now=now)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_manual_expire(fake_supabase, system_actor, now):
    """Test the single-record expiry trigger."""
    _seed_expired(fake_supabase, now, "s-1", "p-1")

    result = await expiry_sweeper.expire_subscription(system_actor, "s-1", "p-1", now=now)

    assert result["subscriptionExpired"] is True
    assert result["profileDowngraded"] is True
    assert fake_supabase.get("profiles", "p-1")["tier"] == "free"

    with pytest.raises(ValidationError):
        await expiry_sweeper.expire_subscription(system_actor)
