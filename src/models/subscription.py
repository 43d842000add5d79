"""Subscription model."""

from enum import Enum
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field


class SubscriptionStatus(str, Enum):
    """Lifecycle states of a paid subscription."""
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class Subscription(BaseModel):
    """Subscription row from the `subscriptions` table."""
    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., description="Subscription ID")
    user_id: Optional[str] = Field(None, description="Paying account ID")
    profile_id: Optional[str] = Field(None, description="Profile the plan applies to")
    plan: Optional[str] = Field(None, description="Plan name")
    status: SubscriptionStatus = Field(default=SubscriptionStatus.ACTIVE)
    end_date: Optional[datetime] = Field(None, description="End of the paid period")
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
