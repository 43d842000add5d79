"""Tests for the Profile and Agency models."""

import pytest
from datetime import datetime, timedelta, timezone

from src.models.agency import Agency, AgencyTier
from src.models.profile import District, ModelTier, Profile
from tests.utils.factories import create_agency_row, create_profile_row


NOW = datetime(2024, 12, 9, 12, 0, 0, tzinfo=timezone.utc)


@pytest.mark.unit
def test_profile_from_row_aliases():
    """Test that store column names map onto model fields."""
    row = create_profile_row(profile_id="p-1", user_id="u-1", tier="premium", boosts_remaining=2, now=NOW)
    profile = Profile.model_validate(row)

    assert profile.id == "p-1"
    assert profile.user_id == "u-1"
    assert profile.tier == ModelTier.PREMIUM
    assert profile.boosts_remaining == 2
    assert profile.district == District.MITTE
    assert profile.price_start == row["priceStart"]
    assert profile.last_active == NOW - timedelta(days=1)


@pytest.mark.unit
def test_profile_missing_tier_and_boosts_default():
    """Test that null tier and counter read as free / 0."""
    profile = Profile.model_validate({"id": "p-1", "tier": None, "boosts_remaining": None})

    assert profile.tier == ModelTier.FREE
    assert profile.boosts_remaining == 0


@pytest.mark.unit
def test_profile_unknown_values_degrade():
    """Test that an unknown tier reads as free and an unknown district as None."""
    profile = Profile.model_validate({"id": "p-1", "tier": "platinum", "district": "Spandau"})

    assert profile.tier == ModelTier.FREE
    assert profile.district is None


@pytest.mark.unit
def test_profile_naive_timestamp_is_utc():
    """Test that naive timestamps from the store are read as UTC."""
    profile = Profile.model_validate({"id": "p-1", "boosted_until": "2024-12-09T18:00:00"})

    assert profile.boosted_until == datetime(2024, 12, 9, 18, 0, tzinfo=timezone.utc)


@pytest.mark.unit
def test_profile_is_boosted():
    """Test the strict-future boost window."""
    active = Profile(id="p-1", boosted_until=NOW + timedelta(hours=1))
    ended = Profile(id="p-2", boosted_until=NOW - timedelta(seconds=1))
    exact = Profile(id="p-3", boosted_until=NOW)
    never = Profile(id="p-4")

    assert active.is_boosted(NOW) is True
    assert ended.is_boosted(NOW) is False
    assert exact.is_boosted(NOW) is False
    assert never.is_boosted(NOW) is False


@pytest.mark.unit
def test_profile_contact_channels():
    """Test that blank channels are ignored."""
    profile = Profile(id="p-1", phone="+49 30 1", whatsapp="  ", telegram="@velvet")

    assert profile.contact_channels() == ["phone", "telegram"]


@pytest.mark.unit
def test_agency_from_row():
    """Test agency column aliases and defaults."""
    agency = Agency.model_validate(create_agency_row(agency_id="a-1", tier="starter", model_limit=5))

    assert agency.id == "a-1"
    assert agency.subscription_tier == AgencyTier.STARTER
    assert agency.model_limit == 5


@pytest.mark.unit
def test_agency_null_values_default():
    """Test that null tier and limit read as none / 0."""
    agency = Agency.model_validate({"id": "a-1", "subscriptionTier": None, "modelLimit": None})

    assert agency.subscription_tier == AgencyTier.NONE
    assert agency.model_limit == 0
