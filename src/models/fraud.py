"""Fraud analysis models - derived from a profile, never persisted."""

from enum import Enum
from pydantic import BaseModel, ConfigDict, Field


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RiskLevel(str, Enum):
    SAFE = "safe"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return list(RiskLevel).index(self)


class IndicatorType(str, Enum):
    """Fraud indicators, in evaluation order."""
    NO_IMAGES = "no_images"
    SINGLE_IMAGE = "single_image"
    STOCK_PHOTO = "stock_photo"
    NO_CONTACT = "no_contact"
    SHORT_DESCRIPTION = "short_description"
    SUSPICIOUS_KEYWORDS = "suspicious_keywords"
    LOW_PRICE = "low_price"
    HIGH_PRICE = "high_price"
    UNDERAGE = "underage"
    UNUSUAL_AGE = "unusual_age"
    NEVER_ACTIVE = "never_active"
    LONG_INACTIVITY = "long_inactivity"
    INCOMPLETE_PROFILE = "incomplete_profile"
    NO_SERVICES = "no_services"
    GENERATED_NAME = "generated_name"


class FraudIndicator(BaseModel):
    """One triggered rule."""
    model_config = ConfigDict(frozen=True)

    type: IndicatorType
    severity: Severity
    description: str
    points: int = Field(..., ge=0)


class FraudAnalysis(BaseModel):
    """Score, level and the triggered indicators for one profile snapshot."""
    model_config = ConfigDict(frozen=True)

    profile_id: str
    score: int = Field(..., ge=0)
    level: RiskLevel
    indicators: tuple[FraudIndicator, ...] = ()
