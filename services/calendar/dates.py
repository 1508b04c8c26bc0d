"""
services/calendar/dates.py
The fixed Ramadan 1447 (2026) calendar seeded at startup.

Feb 18-20: blocked (mosque arrangements)
Feb 21:    sponsored by the organization
Feb 22+:   open for booking through the last iftar on Mar 19
Mar 20:    Eid ul Fitr
"""

from datetime import date
from typing import NamedTuple, Optional

from shared.models.models import BookingStatus


class DateDefinition(NamedTuple):
    date: date
    religious_date: str
    religious_day: Optional[int]
    weekday: str
    initial_status: BookingStatus = BookingStatus.AVAILABLE


def _ramadan(day: date, ordinal: int, status: BookingStatus = BookingStatus.AVAILABLE) -> DateDefinition:
    return DateDefinition(
        date=day,
        religious_date=f"{ordinal} Ramadan 1447",
        religious_day=ordinal,
        weekday=day.strftime("%A"),
        initial_status=status,
    )


RAMADAN_2026: tuple[DateDefinition, ...] = (
    _ramadan(date(2026, 2, 18), 1, BookingStatus.BLOCKED),
    _ramadan(date(2026, 2, 19), 2, BookingStatus.BLOCKED),
    _ramadan(date(2026, 2, 20), 3, BookingStatus.BLOCKED),
    _ramadan(date(2026, 2, 21), 4, BookingStatus.ORG_SPONSORED),
    _ramadan(date(2026, 2, 22), 5),
    _ramadan(date(2026, 2, 23), 6),
    _ramadan(date(2026, 2, 24), 7),
    _ramadan(date(2026, 2, 25), 8),
    _ramadan(date(2026, 2, 26), 9),
    _ramadan(date(2026, 2, 27), 10),
    _ramadan(date(2026, 2, 28), 11),
    _ramadan(date(2026, 3, 1), 12),
    _ramadan(date(2026, 3, 2), 13),
    _ramadan(date(2026, 3, 3), 14),
    _ramadan(date(2026, 3, 4), 15),
    _ramadan(date(2026, 3, 5), 16),
    _ramadan(date(2026, 3, 6), 17),
    _ramadan(date(2026, 3, 7), 18),
    _ramadan(date(2026, 3, 8), 19),
    _ramadan(date(2026, 3, 9), 20),
    _ramadan(date(2026, 3, 10), 21),
    _ramadan(date(2026, 3, 11), 22),
    _ramadan(date(2026, 3, 12), 23),
    _ramadan(date(2026, 3, 13), 24),
    _ramadan(date(2026, 3, 14), 25),
    _ramadan(date(2026, 3, 15), 26),
    _ramadan(date(2026, 3, 16), 27),
    _ramadan(date(2026, 3, 17), 28),
    _ramadan(date(2026, 3, 18), 29),
    _ramadan(date(2026, 3, 19), 30),
    DateDefinition(
        date=date(2026, 3, 20),
        religious_date="1 Shawwal 1447 - Eid ul Fitr",
        religious_day=None,
        weekday="Friday",
        initial_status=BookingStatus.HOLIDAY,
    ),
)
