"""
Timezone Utilities

The only place the engine reads the wall clock. "What day is it at the
clinic" is answered once per request, converted straight into a date
string and a minute-of-day, and from there on everything is plain
calendar arithmetic.
"""

import logging
from datetime import datetime
from typing import Callable, NamedTuple, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "UTC"

# Returns a timezone-aware datetime; injected so tests can pin "now"
Clock = Callable[[ZoneInfo], datetime]


class ClinicMoment(NamedTuple):
    """Clinic-local date and minute of day."""

    date: str
    minutes: int


def system_clock(tz: ZoneInfo) -> datetime:
    return datetime.now(tz)


def resolve_timezone(timezone_str: Optional[str]) -> ZoneInfo:
    """
    Resolve a timezone name, falling back to UTC for unknown names.

    Args:
        timezone_str: IANA name such as 'America/Mexico_City'

    Returns:
        ZoneInfo instance
    """
    try:
        return ZoneInfo(timezone_str or DEFAULT_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone {timezone_str!r}, falling back to {DEFAULT_TIMEZONE}")
        return ZoneInfo(DEFAULT_TIMEZONE)


def clinic_now(timezone_str: str = DEFAULT_TIMEZONE, clock: Optional[Clock] = None) -> ClinicMoment:
    """
    Current clinic-local date and minute of day.

    Args:
        timezone_str: Clinic timezone
        clock: Optional clock override

    Returns:
        ClinicMoment
    """
    tz = resolve_timezone(timezone_str)
    now = (clock or system_clock)(tz)
    if now.tzinfo is None:
        now = now.replace(tzinfo=tz)
    local = now.astimezone(tz)
    return ClinicMoment(
        date=f"{local.year:04d}-{local.month:02d}-{local.day:02d}",
        minutes=local.hour * 60 + local.minute,
    )


def today_in_timezone(timezone_str: str = DEFAULT_TIMEZONE, clock: Optional[Clock] = None) -> str:
    """Clinic-local date as YYYY-MM-DD."""
    return clinic_now(timezone_str, clock).date
