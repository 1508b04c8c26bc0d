"""
config/calendar.py
Immutable calendar configuration: pricing tiers, guest capacity,
last-ten-nights set and special nights.

Built once from Settings and handed to the CalendarStore and the
BookingLifecycleEngine at construction time.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from functools import lru_cache
from types import MappingProxyType
from typing import Mapping, Optional

from config.settings import Settings, settings


@dataclass(frozen=True)
class TierRates:
    food: Decimal
    cleaning: Decimal
    description: str

    @property
    def total(self) -> Decimal:
        return self.food + self.cleaning


@dataclass(frozen=True)
class SpecialNight:
    name: str
    description: str


# Odd nights of the last ten (possible Laylat al-Qadr)
DEFAULT_SPECIAL_NIGHTS: Mapping[date, SpecialNight] = MappingProxyType({
    date(2026, 3, 10): SpecialNight("21st Night", "Possible Laylat al-Qadr"),
    date(2026, 3, 12): SpecialNight("23rd Night", "Possible Laylat al-Qadr"),
    date(2026, 3, 14): SpecialNight("25th Night", "Possible Laylat al-Qadr"),
    date(2026, 3, 16): SpecialNight("27th Night", "Most Likely Laylat al-Qadr"),
    date(2026, 3, 18): SpecialNight("29th Night", "Possible Laylat al-Qadr"),
})

WEEKEND_DAYS = frozenset({"Friday", "Saturday", "Sunday"})


@dataclass(frozen=True)
class CalendarConfig:
    weekday: TierRates
    weekend: TierRates
    last_ten_nights: TierRates
    last_ten_nights_dates: frozenset
    weekday_guests: int
    weekend_guests: int
    org_sponsor_label: str
    zelle_email: str
    calendar_year: int
    religious_year: int
    weekend_days: frozenset = WEEKEND_DAYS
    special_nights: Mapping[date, SpecialNight] = field(
        default_factory=lambda: DEFAULT_SPECIAL_NIGHTS
    )

    def special_night(self, day: date) -> Optional[SpecialNight]:
        return self.special_nights.get(day)

    def public_pricing(self) -> dict:
        """Pricing table in the shape the public API publishes."""
        return {
            name: {
                "food": rates.food,
                "cleaning": rates.cleaning,
                "total": rates.total,
                "description": rates.description,
            }
            for name, rates in (
                ("weekday", self.weekday),
                ("weekend", self.weekend),
                ("lastTenNights", self.last_ten_nights),
            )
        }


def build_calendar_config(source: Settings) -> CalendarConfig:
    return CalendarConfig(
        weekday=TierRates(
            source.WEEKDAY_FOOD_AMOUNT,
            source.WEEKDAY_CLEANING_AMOUNT,
            source.WEEKDAY_DESCRIPTION,
        ),
        weekend=TierRates(
            source.WEEKEND_FOOD_AMOUNT,
            source.WEEKEND_CLEANING_AMOUNT,
            source.WEEKEND_DESCRIPTION,
        ),
        last_ten_nights=TierRates(
            source.LAST_TEN_NIGHTS_FOOD_AMOUNT,
            source.LAST_TEN_NIGHTS_CLEANING_AMOUNT,
            source.LAST_TEN_NIGHTS_DESCRIPTION,
        ),
        last_ten_nights_dates=frozenset(source.last_ten_nights_list),
        weekday_guests=source.WEEKDAY_GUESTS,
        weekend_guests=source.WEEKEND_GUESTS,
        org_sponsor_label=source.ORG_SPONSOR_LABEL,
        zelle_email=source.ZELLE_EMAIL,
        calendar_year=source.CALENDAR_YEAR,
        religious_year=source.RELIGIOUS_YEAR,
    )


@lru_cache()
def get_calendar_config() -> CalendarConfig:
    """FastAPI dependency: the process-wide calendar configuration."""
    return build_calendar_config(settings)
