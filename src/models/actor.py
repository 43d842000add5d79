"""Actor model - who is performing an operation."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class Role(str, Enum):
    """Account roles, plus the internal system role used by scheduled jobs."""
    CUSTOMER = "customer"
    MODEL = "model"
    AGENCY = "agency"
    ADMIN = "admin"
    SYSTEM = "system"


class Actor(BaseModel):
    """Explicit caller context passed into every mutating operation."""
    id: str = Field(..., description="Account ID (or a system identifier)")
    role: Role = Field(default=Role.CUSTOMER)
    email: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_privileged(self) -> bool:
        """Admins and scheduled system jobs bypass ownership checks."""
        return self.role in (Role.ADMIN, Role.SYSTEM)


SYSTEM_ACTOR = Actor(id="system:cron", role=Role.SYSTEM)
