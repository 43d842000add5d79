"""
Fraud scoring engine - rule-based risk analysis of a profile snapshot.

Each rule is evaluated independently and contributes its points once; the
score is the plain sum. Rules run in a fixed order so the indicator list is
reproducible. Missing or malformed fields never raise: they are treated as
the value that fails the check.
"""

import re
from collections.abc import Mapping
from datetime import datetime, timedelta
from typing import Any, Iterable, Optional, Union

from src.models.fraud import FraudAnalysis, FraudIndicator, IndicatorType, RiskLevel, Severity
from src.models.profile import District, Profile
from src.utils.timestamps import parse_timestamp, utc_now


STOCK_PHOTO_HOSTS = (
    "shutterstock",
    "istockphoto",
    "gettyimages",
    "stock.adobe",
    "depositphotos",
    "dreamstime",
    "123rf",
    "unsplash",
    "pexels",
    "pixabay",
)

SUSPICIOUS_KEYWORDS = (
    "western union",
    "moneygram",
    "bitcoin",
    "crypto",
    "gift card",
    "giftcard",
    "paysafecard",
    "steam card",
    "amazon voucher",
    "vorkasse",
    "prepayment",
    "advance payment",
    "deposit first",
)

GENERATED_NAME_PATTERN = re.compile(r"^[a-z]+\d{2,}$", re.IGNORECASE)

MIN_DESCRIPTION_LENGTH = 50
LOW_PRICE_THRESHOLD = 50
HIGH_PRICE_THRESHOLD = 1000
LEGAL_AGE = 18
UNUSUAL_AGE_THRESHOLD = 65
INACTIVITY_DAYS = 30
INCOMPLETE_FIELD_POINTS = 5

# Highest threshold first
LEVEL_THRESHOLDS = (
    (80, RiskLevel.CRITICAL),
    (50, RiskLevel.HIGH),
    (30, RiskLevel.MEDIUM),
    (10, RiskLevel.LOW),
)

REQUIRED_FIELDS = ("name", "age", "district", "description", "price_start")

_ALIASES = {
    "price_start": "priceStart",
    "last_active": "lastActive",
}


def score_to_level(score: int) -> RiskLevel:
    for threshold, level in LEVEL_THRESHOLDS:
        if score >= threshold:
            return level
    return RiskLevel.SAFE


def _read(profile: Union[Profile, Mapping], field: str) -> Any:
    if isinstance(profile, Mapping):
        value = profile.get(field) if field in profile else profile.get(_ALIASES.get(field, field))
    else:
        value = getattr(profile, field, None)
    if field == "district":
        return _as_district(value)
    return value


def _as_district(value: Any) -> Optional[District]:
    """Unknown district names count as missing, as they do on the Profile model."""
    if not value:
        return None
    try:
        return District(value)
    except ValueError:
        return None


def _as_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _as_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _as_strings(value: Any) -> list[str]:
    if not value or isinstance(value, (str, bytes)):
        return []
    try:
        return [str(item) for item in value if item]
    except TypeError:
        return []


def _as_text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _indicator(kind: IndicatorType, severity: Severity, description: str, points: int) -> FraudIndicator:
    return FraudIndicator(type=kind, severity=severity, description=description, points=points)


def _contains_any(text: str, needles: Iterable[str]) -> list[str]:
    lowered = text.lower()
    return [needle for needle in needles if needle in lowered]


def analyze_profile(profile: Union[Profile, Mapping], now: Optional[datetime] = None) -> FraudAnalysis:
    """
    Score a profile snapshot.

    Args:
        profile: A Profile, or a raw row mapping using either model field
            names or store column names.
        now: Evaluation time for the inactivity rules (defaults to now, UTC).

    Returns:
        FraudAnalysis with score, level and indicators in rule order.
    """
    now = now or utc_now()
    indicators: list[FraudIndicator] = []

    images = _as_strings(_read(profile, "images"))
    description = _as_text(_read(profile, "description"))
    price = _as_float(_read(profile, "price_start"))
    age = _as_int(_read(profile, "age"))
    name = _as_text(_read(profile, "name"))
    services = _as_strings(_read(profile, "services"))
    last_active = parse_timestamp(_read(profile, "last_active"))
    contacts = [
        channel for channel in ("phone", "whatsapp", "telegram")
        if _as_text(_read(profile, channel)).strip()
    ]

    if not images:
        indicators.append(_indicator(
            IndicatorType.NO_IMAGES, Severity.CRITICAL, "Profile has no images", 30))
    elif len(images) == 1:
        indicators.append(_indicator(
            IndicatorType.SINGLE_IMAGE, Severity.MEDIUM, "Profile has only one image", 15))

    stock_hosts = sorted({host for url in images for host in _contains_any(url, STOCK_PHOTO_HOSTS)})
    if stock_hosts:
        indicators.append(_indicator(
            IndicatorType.STOCK_PHOTO, Severity.CRITICAL,
            f"Images hosted on stock-photo sites ({', '.join(stock_hosts)})", 40))

    if not contacts:
        indicators.append(_indicator(
            IndicatorType.NO_CONTACT, Severity.HIGH, "No phone or messaging contact", 25))

    if len(description) < MIN_DESCRIPTION_LENGTH:
        indicators.append(_indicator(
            IndicatorType.SHORT_DESCRIPTION, Severity.MEDIUM,
            f"Description shorter than {MIN_DESCRIPTION_LENGTH} characters", 10))

    keywords = _contains_any(description, SUSPICIOUS_KEYWORDS)
    if keywords:
        indicators.append(_indicator(
            IndicatorType.SUSPICIOUS_KEYWORDS, Severity.CRITICAL,
            f"Description mentions payment-fraud terms ({', '.join(keywords)})", 35))

    if price is None or price < LOW_PRICE_THRESHOLD:
        indicators.append(_indicator(
            IndicatorType.LOW_PRICE, Severity.HIGH,
            f"Starting price below {LOW_PRICE_THRESHOLD} or missing", 25))
    elif price > HIGH_PRICE_THRESHOLD:
        indicators.append(_indicator(
            IndicatorType.HIGH_PRICE, Severity.LOW,
            f"Starting price above {HIGH_PRICE_THRESHOLD}", 5))

    if age is None or age < LEGAL_AGE:
        indicators.append(_indicator(
            IndicatorType.UNDERAGE, Severity.CRITICAL,
            f"Age below {LEGAL_AGE} or not stated", 100))
    elif age > UNUSUAL_AGE_THRESHOLD:
        indicators.append(_indicator(
            IndicatorType.UNUSUAL_AGE, Severity.LOW, f"Age above {UNUSUAL_AGE_THRESHOLD}", 5))

    if last_active is None:
        indicators.append(_indicator(
            IndicatorType.NEVER_ACTIVE, Severity.MEDIUM, "Profile has never been active", 10))
    elif now - last_active > timedelta(days=INACTIVITY_DAYS):
        indicators.append(_indicator(
            IndicatorType.LONG_INACTIVITY, Severity.LOW,
            f"Inactive for more than {INACTIVITY_DAYS} days", 5))

    missing = [field for field in REQUIRED_FIELDS if not _read(profile, field)]
    if missing:
        indicators.append(_indicator(
            IndicatorType.INCOMPLETE_PROFILE, Severity.MEDIUM,
            f"Missing fields: {', '.join(missing)}", INCOMPLETE_FIELD_POINTS * len(missing)))

    if not services:
        indicators.append(_indicator(
            IndicatorType.NO_SERVICES, Severity.MEDIUM, "No services listed", 10))

    if any(GENERATED_NAME_PATTERN.match(token) for token in name.split()):
        indicators.append(_indicator(
            IndicatorType.GENERATED_NAME, Severity.HIGH, "Name looks auto-generated", 20))

    score = sum(indicator.points for indicator in indicators)
    return FraudAnalysis(
        profile_id=str(_read(profile, "id") or ""),
        score=score,
        level=score_to_level(score),
        indicators=tuple(indicators),
    )


def analyze_profiles(
    profiles: Iterable[Union[Profile, Mapping]],
    min_level: Optional[RiskLevel] = None,
    now: Optional[datetime] = None,
) -> list[FraudAnalysis]:
    """Analyze many profiles, riskiest first, optionally keeping only `min_level` and above."""
    now = now or utc_now()
    analyses = [analyze_profile(profile, now=now) for profile in profiles]
    if min_level is not None:
        analyses = [a for a in analyses if a.level.rank >= RiskLevel(min_level).rank]
    return sorted(analyses, key=lambda a: (-a.score, a.profile_id))
