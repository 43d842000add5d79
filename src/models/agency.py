"""Agency model - an agency that links several profiles."""

from enum import Enum
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.models.profile import District


class AgencyTier(str, Enum):
    """Subscription tier of an agency."""
    NONE = "none"
    STARTER = "starter"
    PRO = "pro"


class Agency(BaseModel):
    """Agency row from the `agencies` table."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., description="Agency ID")
    user_id: Optional[str] = Field(None, alias="userId", description="Owning account ID")
    name: Optional[str] = Field(None, description="Agency name")
    description: Optional[str] = None
    district: Optional[District] = None
    phone: Optional[str] = None
    whatsapp: Optional[str] = None
    telegram: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    logo: Optional[str] = Field(None, description="Logo image URI")
    banner: Optional[str] = Field(None, description="Banner image URI")
    is_featured: Optional[bool] = Field(False, alias="isFeatured")

    subscription_tier: AgencyTier = Field(
        default=AgencyTier.NONE,
        alias="subscriptionTier",
        description="none, starter or pro"
    )
    model_limit: int = Field(default=0, ge=0, alias="modelLimit", description="Linked profile cap")
    subscription_expires_at: Optional[datetime] = Field(None, alias="subscriptionExpiresAt")

    @field_validator("subscription_tier", mode="before")
    @classmethod
    def _default_tier(cls, value):
        try:
            return AgencyTier(value)
        except ValueError:
            return AgencyTier.NONE

    @field_validator("model_limit", mode="before")
    @classmethod
    def _default_limit(cls, value):
        return value or 0
