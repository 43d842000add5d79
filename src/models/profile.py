"""Profile model - a service-provider listing in the directory."""

from enum import Enum
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.utils.timestamps import parse_timestamp, utc_now


class District(str, Enum):
    """The eight city districts a listing can be placed in."""
    MITTE = "Mitte"
    CHARLOTTENBURG = "Charlottenburg"
    KREUZBERG = "Kreuzberg"
    PRENZLAUER_BERG = "Prenzlauer Berg"
    SCHONEBERG = "Schöneberg"
    WILMERSDORF = "Wilmersdorf"
    FRIEDRICHSHAIN = "Friedrichshain"
    ZEHLENDORF = "Zehlendorf"


class ModelTier(str, Enum):
    """Subscription tier of a profile."""
    FREE = "free"
    PREMIUM = "premium"
    ELITE = "elite"


class Profile(BaseModel):
    """Profile row from the `profiles` table."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., description="Profile ID")
    user_id: Optional[str] = Field(None, alias="userId", description="Owning account ID")
    agency_id: Optional[str] = Field(None, alias="agencyId", description="Agency ID (optional FK)")
    name: Optional[str] = Field(None, description="Display name")
    age: Optional[int] = Field(None, description="Age in years")
    district: Optional[District] = Field(None, description="City district")
    price_start: Optional[float] = Field(None, alias="priceStart", description="Starting price (EUR)")
    description: Optional[str] = Field(None, description="Free-text description")
    images: Optional[list[str]] = Field(default_factory=list, description="Ordered image URIs")
    services: Optional[list[str]] = Field(default_factory=list, description="Services offered")
    languages: Optional[list[str]] = Field(default_factory=list, description="Languages spoken")

    is_verified: Optional[bool] = Field(False, alias="isVerified")
    is_disabled: Optional[bool] = Field(False, alias="isDisabled")
    is_velvet_choice: Optional[bool] = Field(False, alias="isVelvetChoice", description="Editorial pick")
    is_premium: Optional[bool] = Field(False, alias="isPremium", description="Legacy flag, mirrors tier")
    last_active: Optional[datetime] = Field(None, alias="lastActive")
    created_at: Optional[datetime] = Field(None, alias="createdAt")

    phone: Optional[str] = None
    whatsapp: Optional[str] = None
    telegram: Optional[str] = None

    clicks: Optional[int] = Field(0, description="Profile views")
    contact_clicks: Optional[int] = Field(0, alias="contactClicks")
    search_appearances: Optional[int] = Field(0, alias="searchAppearances")

    tier: ModelTier = Field(default=ModelTier.FREE, description="free, premium or elite")
    boosts_remaining: int = Field(default=0, description="Boosts left this period")
    boosted_until: Optional[datetime] = Field(None, description="Active boost expiry")
    subscription_expires_at: Optional[datetime] = Field(None, description="Subscription expiry")

    @field_validator("tier", mode="before")
    @classmethod
    def _default_tier(cls, value):
        # Unknown tier names read as free
        try:
            return ModelTier(value)
        except ValueError:
            return ModelTier.FREE

    @field_validator("district", mode="before")
    @classmethod
    def _known_district(cls, value):
        try:
            return District(value) if value else None
        except ValueError:
            return None

    @field_validator("boosted_until", "subscription_expires_at", "last_active", "created_at", mode="before")
    @classmethod
    def _utc_timestamp(cls, value):
        return parse_timestamp(value)

    @field_validator("boosts_remaining", mode="before")
    @classmethod
    def _default_boosts(cls, value):
        return value or 0

    def is_boosted(self, now: Optional[datetime] = None) -> bool:
        """True when a boost window is set and strictly in the future."""
        if self.boosted_until is None:
            return False
        return self.boosted_until > (now or utc_now())

    def contact_channels(self) -> list[str]:
        """Names of the contact channels this profile fills in."""
        return [
            channel for channel in ("phone", "whatsapp", "telegram")
            if (getattr(self, channel) or "").strip()
        ]
