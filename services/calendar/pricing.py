"""
services/calendar/pricing.py
Pricing-tier and guest-capacity derivation for a calendar date.
Pure functions of (date, weekday, CalendarConfig).
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from config.calendar import CalendarConfig
from shared.models.models import PricingTier


@dataclass(frozen=True)
class Pricing:
    food_amount: Decimal
    cleaning_amount: Decimal
    total: Decimal
    tier: PricingTier
    description: str


def is_last_ten_nights(day: date, config: CalendarConfig) -> bool:
    return day in config.last_ten_nights_dates


def is_weekend(weekday: str, config: CalendarConfig) -> bool:
    return weekday in config.weekend_days


def derive_pricing(day: date, weekday: str, config: CalendarConfig) -> Pricing:
    """Last-ten-nights membership wins over the weekend/weekday split."""
    if is_last_ten_nights(day, config):
        rates, tier = config.last_ten_nights, PricingTier.LAST_TEN_NIGHTS
    elif is_weekend(weekday, config):
        rates, tier = config.weekend, PricingTier.WEEKEND
    else:
        rates, tier = config.weekday, PricingTier.WEEKDAY

    return Pricing(
        food_amount=rates.food,
        cleaning_amount=rates.cleaning,
        total=rates.food + rates.cleaning,
        tier=tier,
        description=rates.description,
    )


def derive_expected_guests(weekday: str, config: CalendarConfig) -> int:
    return config.weekend_guests if is_weekend(weekday, config) else config.weekday_guests


def pricing_description(tier: Optional[PricingTier], config: CalendarConfig) -> Optional[str]:
    if tier is None:
        return None
    return {
        PricingTier.WEEKDAY: config.weekday,
        PricingTier.WEEKEND: config.weekend,
        PricingTier.LAST_TEN_NIGHTS: config.last_ten_nights,
    }[PricingTier(tier)].description
