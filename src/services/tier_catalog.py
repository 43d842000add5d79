"""
Tier catalog - static limits and prices for profile and agency tiers.

Boost allowances are tagged values (`Finite(n)` or `UNLIMITED`). The store
keeps `boosts_remaining` as a plain integer, so unlimited tiers are written
as `UNLIMITED_BOOSTS_SENTINEL`; convert with `allowance_to_counter` and
never compare a counter against the sentinel directly.
"""

from dataclasses import dataclass, field
from typing import Optional, Union

from src.models.agency import AgencyTier
from src.models.profile import ModelTier
from src.utils.errors import ValidationError


UNLIMITED_BOOSTS_SENTINEL = 999


@dataclass(frozen=True)
class Finite:
    """A bounded per-period allowance."""
    count: int


@dataclass(frozen=True)
class Unlimited:
    """An allowance with no bound."""

    def __repr__(self) -> str:
        return "Unlimited()"


UNLIMITED = Unlimited()

Allowance = Union[Finite, Unlimited]


def is_unlimited(allowance: Allowance) -> bool:
    return isinstance(allowance, Unlimited)


def allowance_to_counter(allowance: Allowance) -> int:
    """Integer written to `boosts_remaining` when an allowance is granted."""
    if is_unlimited(allowance):
        return UNLIMITED_BOOSTS_SENTINEL
    return allowance.count


def describe_allowance(allowance: Allowance) -> Union[int, str]:
    """JSON-friendly form: the count, or "unlimited"."""
    return "unlimited" if is_unlimited(allowance) else allowance.count


@dataclass(frozen=True)
class TierLimits:
    """Feature bundle of a profile tier. `None` means unlimited."""
    photos: Optional[int]
    videos: int
    services: Optional[int]
    contacts: Optional[int]
    schedule: bool
    statistics: bool
    advanced_statistics: bool
    badge: Optional[str]
    search_priority: int
    homepage: Optional[str]
    boosts_per_month: Allowance
    online_indicator: bool
    verification_priority: bool


@dataclass(frozen=True)
class AgencyTierLimits:
    """Feature bundle of an agency tier."""
    max_models: int
    photos: Optional[int]
    videos: int
    services: Optional[int]
    badge: Optional[str]
    search_priority: int
    homepage: Optional[str]
    boosts_per_month: Allowance
    online_indicator: bool


TIER_LIMITS: dict[ModelTier, TierLimits] = {
    ModelTier.FREE: TierLimits(
        photos=1,
        videos=0,
        services=3,
        contacts=1,
        schedule=False,
        statistics=False,
        advanced_statistics=False,
        badge=None,
        search_priority=0,
        homepage=None,
        boosts_per_month=Finite(0),
        online_indicator=False,
        verification_priority=False,
    ),
    ModelTier.PREMIUM: TierLimits(
        photos=5,
        videos=1,
        services=None,
        contacts=None,
        schedule=True,
        statistics=True,
        advanced_statistics=False,
        badge="premium",
        search_priority=1,
        homepage="grid",
        boosts_per_month=Finite(2),
        online_indicator=False,
        verification_priority=False,
    ),
    ModelTier.ELITE: TierLimits(
        photos=None,
        videos=3,
        services=None,
        contacts=None,
        schedule=True,
        statistics=True,
        advanced_statistics=True,
        badge="elite",
        search_priority=2,
        homepage="carousel",
        boosts_per_month=UNLIMITED,
        online_indicator=True,
        verification_priority=True,
    ),
}

AGENCY_TIER_LIMITS: dict[AgencyTier, AgencyTierLimits] = {
    AgencyTier.NONE: AgencyTierLimits(
        max_models=0,
        photos=1,
        videos=0,
        services=3,
        badge=None,
        search_priority=0,
        homepage=None,
        boosts_per_month=Finite(0),
        online_indicator=False,
    ),
    AgencyTier.STARTER: AgencyTierLimits(
        max_models=5,
        photos=5,
        videos=1,
        services=None,
        badge="premium",
        search_priority=1,
        homepage="grid",
        boosts_per_month=Finite(2),
        online_indicator=False,
    ),
    AgencyTier.PRO: AgencyTierLimits(
        max_models=15,
        photos=None,
        videos=3,
        services=None,
        badge="elite",
        search_priority=2,
        homepage="carousel",
        boosts_per_month=UNLIMITED,
        online_indicator=True,
    ),
}


@dataclass(frozen=True)
class Package:
    """A priced plan shown on the packages page."""
    id: str
    name: str
    type: str
    tier: str
    price: int
    duration_days: Optional[int]
    extra_model_price: Optional[int] = None
    original_price: Optional[int] = None
    highlights: tuple[str, ...] = field(default_factory=tuple)


MODEL_PACKAGES: tuple[Package, ...] = (
    Package(
        id="model-free", name="Free", type="model", tier=ModelTier.FREE.value,
        price=0, duration_days=None,
        highlights=("1 photo", "1 contact method", "Visible in search"),
    ),
    Package(
        id="model-premium", name="Premium", type="model", tier=ModelTier.PREMIUM.value,
        price=99, duration_days=30,
        highlights=("5 photos + 1 video", "Premium badge", "2 boosts per month"),
    ),
    Package(
        id="model-elite", name="Elite", type="model", tier=ModelTier.ELITE.value,
        price=149, duration_days=30,
        highlights=("Unlimited photos + 3 videos", "Elite badge", "Unlimited boosts"),
    ),
)

AGENCY_PACKAGES: tuple[Package, ...] = (
    Package(
        id="agency-starter", name="Agency Starter", type="agency", tier=AgencyTier.STARTER.value,
        price=499, duration_days=30, extra_model_price=80,
        highlights=("Up to 5 models", "Agency profile page"),
    ),
    Package(
        id="agency-pro", name="Agency Pro", type="agency", tier=AgencyTier.PRO.value,
        price=899, original_price=1099, duration_days=30, extra_model_price=60,
        highlights=("Up to 15 models", "Featured agency spot", "Advanced analytics"),
    ),
)


def parse_model_tier(value) -> ModelTier:
    """Strict parse for mutating operations."""
    try:
        return ModelTier(value)
    except ValueError:
        raise ValidationError("Invalid tier. Must be free, premium, or elite")


def parse_agency_tier(value) -> AgencyTier:
    """Strict parse for mutating operations."""
    try:
        return AgencyTier(value)
    except ValueError:
        raise ValidationError("Invalid tier. Must be none, starter, or pro")


def get_tier_limits(tier) -> TierLimits:
    """Limits for a tier; unknown names fall back to free."""
    try:
        return TIER_LIMITS[ModelTier(tier)]
    except ValueError:
        return TIER_LIMITS[ModelTier.FREE]


def get_agency_tier_limits(tier) -> AgencyTierLimits:
    """Limits for an agency tier; unknown names fall back to none."""
    try:
        return AGENCY_TIER_LIMITS[AgencyTier(tier)]
    except ValueError:
        return AGENCY_TIER_LIMITS[AgencyTier.NONE]


def boost_allowance(tier) -> Allowance:
    return get_tier_limits(tier).boosts_per_month


def can_boost(tier) -> bool:
    """Whether a tier may activate boosts at all."""
    allowance = boost_allowance(tier)
    return is_unlimited(allowance) or allowance.count > 0


def default_boosts(tier) -> int:
    """Counter value for a fresh period on this tier."""
    return allowance_to_counter(boost_allowance(tier))


def search_priority(tier, is_boosted: bool = False) -> int:
    """Search rank bucket; an active boost lifts non-free tiers one step."""
    limits = get_tier_limits(tier)
    if is_boosted and limits is not TIER_LIMITS[ModelTier.FREE]:
        return limits.search_priority + 1
    return limits.search_priority


def default_model_limit(tier) -> int:
    return get_agency_tier_limits(tier).max_models


def can_advertise(tier) -> bool:
    """Agencies on a paid tier may list linked models."""
    return get_agency_tier_limits(tier).max_models > 0


def get_package_by_id(package_id: str) -> Optional[Package]:
    for package in MODEL_PACKAGES + AGENCY_PACKAGES:
        if package.id == package_id:
            return package
    return None
