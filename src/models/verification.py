"""Verification application model."""

from enum import Enum
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field


class VerificationStatus(str, Enum):
    """Review states; approved and rejected are terminal."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class VerificationDecision(str, Enum):
    """Decisions an admin can take on a pending application."""
    APPROVE = "approve"
    REJECT = "reject"


class VerificationApplication(BaseModel):
    """Identity-proof request from the `verification_applications` table."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., description="Application ID")
    profile_id: str = Field(..., alias="profileId", description="Profile being verified")
    user_id: Optional[str] = Field(None, alias="userId", description="Submitting account ID")
    status: VerificationStatus = Field(default=VerificationStatus.PENDING)
    id_photo_url: Optional[str] = Field(None, alias="idPhotoUrl", description="ID document image")
    selfie_with_id_url: Optional[str] = Field(None, alias="selfieWithIdUrl", description="Selfie holding the ID")
    notes: Optional[str] = Field(None, description="Submitter notes")
    admin_notes: Optional[str] = Field(None, description="Reviewer notes")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[str] = None
