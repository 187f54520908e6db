from __future__ import annotations

from datetime import date, datetime, time, timedelta, tzinfo
from typing import Optional, Protocol
from zoneinfo import ZoneInfo


class Clock(Protocol):
    def now(self) -> datetime:
        raise NotImplementedError


class SystemClock:
    """Wall clock in the clinic time zone.

    Note: Wrapped so tests can inject a controllable clock.
    """

    def __init__(self, tz: Optional[tzinfo] = None):
        self._tz = tz

    @classmethod
    def for_zone(cls, zone_name: str | None) -> "SystemClock":
        return cls(ZoneInfo(zone_name) if zone_name else None)

    def now(self) -> datetime:
        if self._tz is None:
            return datetime.now()
        return datetime.now(self._tz).replace(tzinfo=None)


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """[start, end) of a calendar day as naive datetimes."""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def parse_iso_datetime(value: str) -> datetime:
    """Parse an ISO-8601 string (``YYYY-MM-DDTHH:MM[:SS]``) into a naive datetime."""
    parsed = datetime.fromisoformat(value.strip())
    return parsed.replace(tzinfo=None) if parsed.tzinfo else parsed


def format_br_date(value: date) -> str:
    return value.strftime("%d/%m/%Y")
