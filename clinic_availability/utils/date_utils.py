"""
Immutable Date Utilities

Calendar dates travel through the engine as canonical ``YYYY-MM-DD``
strings and are parsed into ``(year, month, day)`` triples for arithmetic.
Nothing here reads a clock or a timezone: a date never passes through an
instant that could be re-rendered on the wrong side of midnight.

Ordinal arithmetic uses the proleptic Gregorian calendar of ``datetime.date``,
which carries no time component and no UTC offset.
"""

import calendar
import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import List, NamedTuple, Optional

from clinic_availability.exceptions import InvalidDateFormat, InvalidDateValue, InvalidRange, InvalidTimeFormat

logger = logging.getLogger(__name__)

# ASCII digits only, matched with fullmatch() so a trailing newline is rejected
DATE_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
TIME_PATTERN = re.compile(r"([0-9]{1,2}):([0-9]{2})(?::([0-9]{2}))?")

MINUTES_PER_DAY = 24 * 60

# Indexed by day_of_week (0 = Sunday)
DAY_NAMES = {
    "es": ["Domingo", "Lunes", "Martes", "Miércoles", "Jueves", "Viernes", "Sábado"],
    "en": ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"],
}

MONTH_NAMES = {
    "es": [
        "enero", "febrero", "marzo", "abril", "mayo", "junio",
        "julio", "agosto", "septiembre", "octubre", "noviembre", "diciembre",
    ],
    "en": [
        "January", "February", "March", "April", "May", "June",
        "July", "August", "September", "October", "November", "December",
    ],
}


class CalendarDate(NamedTuple):
    """A calendar day. Arithmetic returns new values."""

    year: int
    month: int
    day: int

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}-{self.day:02d}"

    def to_ordinal(self) -> int:
        return date(self.year, self.month, self.day).toordinal()

    @classmethod
    def from_ordinal(cls, ordinal: int) -> "CalendarDate":
        try:
            d = date.fromordinal(ordinal)
        except (ValueError, OverflowError) as e:
            raise InvalidDateValue(str(ordinal), f"day ordinal outside 0001-01-01..9999-12-31: {e}") from e
        return cls(d.year, d.month, d.day)

    def add_days(self, days: int) -> "CalendarDate":
        return CalendarDate.from_ordinal(self.to_ordinal() + days)

    def day_of_week(self) -> int:
        # calendar.weekday() is Monday-based
        return (calendar.weekday(self.year, self.month, self.day) + 1) % 7


@dataclass(frozen=True)
class DateValidationResult:
    """Outcome of validate_and_normalize()."""

    is_valid: bool
    normalized_date: Optional[str] = None
    error: Optional[str] = None
    displacement_detected: bool = False
    days_difference: Optional[int] = None


def is_valid_date_format(value) -> bool:
    """Check a value against the canonical YYYY-MM-DD shape (no range check)."""
    return isinstance(value, str) and bool(DATE_PATTERN.fullmatch(value))


def parse_date(value: str, field: str = "date") -> CalendarDate:
    """
    Parse a canonical date string.

    Args:
        value: Date string in YYYY-MM-DD format
        field: Name of the request field, reported back in errors

    Returns:
        CalendarDate triple

    Raises:
        InvalidDateFormat: value does not match YYYY-MM-DD
        InvalidDateValue: month or day out of range for that year
    """
    if not is_valid_date_format(value):
        raise InvalidDateFormat(value, field=field)

    year, month, day = (int(part) for part in value.split("-"))

    if year < 1:
        raise InvalidDateValue(value, f"year {year} out of range", field=field)
    if not 1 <= month <= 12:
        raise InvalidDateValue(value, f"month {month} out of range", field=field)

    days_in_month = calendar.monthrange(year, month)[1]
    if not 1 <= day <= days_in_month:
        raise InvalidDateValue(
            value,
            f"day {day} out of range for {year:04d}-{month:02d} ({days_in_month} days)",
            field=field,
        )

    return CalendarDate(year, month, day)


def add_days(value: str, days: int) -> str:
    """Return the date ``days`` after ``value`` (negative moves backwards)."""
    return str(parse_date(value).add_days(days))


def compare_dates(a: str, b: str) -> int:
    """Compare two dates on their parsed triples. Returns -1, 0 or 1."""
    left, right = parse_date(a), parse_date(b)
    if left < right:
        return -1
    if left > right:
        return 1
    return 0


def days_difference(a: str, b: str) -> int:
    """Signed number of days from ``a`` to ``b``."""
    return parse_date(b).to_ordinal() - parse_date(a).to_ordinal()


def generate_range(start: str, end: str) -> List[str]:
    """
    Generate every date from start to end, both inclusive.

    Raises:
        InvalidRange: start is after end
    """
    first = parse_date(start, field="start_date")
    last = parse_date(end, field="end_date")
    if first > last:
        raise InvalidRange(start, end)

    first_ordinal = first.to_ordinal()
    return [
        str(CalendarDate.from_ordinal(ordinal))
        for ordinal in range(first_ordinal, last.to_ordinal() + 1)
    ]


def day_of_week(value: str) -> int:
    """Day of week with 0 = Sunday ... 6 = Saturday."""
    return parse_date(value).day_of_week()


def day_of_week_name(value: str, locale: str = "es") -> str:
    """Localized weekday name for a date."""
    names = DAY_NAMES.get(locale, DAY_NAMES["es"])
    return names[day_of_week(value)]


def is_weekend(value: str) -> bool:
    return day_of_week(value) in (0, 6)


def start_of_week(value: str) -> str:
    """The Sunday on or before ``value``."""
    parsed = parse_date(value)
    return str(parsed.add_days(-parsed.day_of_week()))


def generate_week_dates(start: str) -> List[str]:
    """Seven consecutive dates beginning at ``start``."""
    return generate_range(start, add_days(start, 6))


def format_for_display(value: str, locale: str = "es") -> str:
    """
    Human-readable long date, e.g. "Lunes, 2 de junio de 2025".

    Falls back to the raw value when it cannot be parsed, so a bad date in
    a label never breaks rendering.
    """
    try:
        parsed = parse_date(value)
    except (InvalidDateFormat, InvalidDateValue):
        logger.warning(f"Cannot format invalid date for display: {value!r}")
        return value

    day_name = day_of_week_name(value, locale)
    month_name = MONTH_NAMES.get(locale, MONTH_NAMES["es"])[parsed.month - 1]
    if locale == "en":
        return f"{day_name}, {month_name} {parsed.day}, {parsed.year}"
    return f"{day_name}, {parsed.day} de {month_name} de {parsed.year}"


def detect_displacement(original: str, processed: str) -> int:
    """
    Signed day shift between a date and the value it came back as.

    Zero means the round trip preserved the calendar day.
    """
    return days_difference(original, processed)


def validate_and_normalize(
    value,
    component: Optional[str] = None,
    processed: Optional[str] = None,
) -> DateValidationResult:
    """
    Validate a date and report displacement instead of propagating it.

    Never raises. When ``processed`` is given it is the value the date came
    back as after passing through some other layer (a serializer, a UI
    control, a timezone-aware parser). If that value lands on a different
    day the displacement is reported and the original date is returned as
    the normalized value.

    Args:
        value: Candidate date string
        component: Caller name for log correlation
        processed: Optional round-tripped value to check against ``value``

    Returns:
        DateValidationResult
    """
    if not value or not isinstance(value, str):
        return DateValidationResult(is_valid=False, error="Date must be a non-empty string")

    try:
        normalized = str(parse_date(value))
    except (InvalidDateFormat, InvalidDateValue) as e:
        return DateValidationResult(is_valid=False, error=str(e))

    if processed is None or processed == normalized:
        return DateValidationResult(
            is_valid=True,
            normalized_date=normalized,
            days_difference=0 if processed is not None else None,
        )

    try:
        shift = detect_displacement(normalized, processed)
    except (InvalidDateFormat, InvalidDateValue):
        logger.error(
            f"Date displacement check failed in {component or 'unknown'}: "
            f"{normalized} came back as unparseable {processed!r}"
        )
        return DateValidationResult(
            is_valid=True,
            normalized_date=normalized,
            error=f"Processed date is not a valid date: {processed!r}",
            displacement_detected=True,
        )

    if shift != 0:
        logger.error(
            f"Date displacement detected in {component or 'unknown'}: "
            f"{normalized} -> {processed} ({shift:+d} days)"
        )

    return DateValidationResult(
        is_valid=True,
        normalized_date=normalized,
        displacement_detected=shift != 0,
        days_difference=shift,
    )


def parse_time(value: str, field: str = "time") -> int:
    """
    Parse ``HH:MM`` (or ``HH:MM:SS`` as stored by Postgres) to minutes since midnight.

    Seconds are truncated.

    Raises:
        InvalidTimeFormat: malformed, or outside 00:00-23:59
    """
    match = TIME_PATTERN.fullmatch(value) if isinstance(value, str) else None
    if not match:
        raise InvalidTimeFormat(value, field=field)

    hours, minutes = int(match.group(1)), int(match.group(2))
    seconds = int(match.group(3) or 0)
    if hours > 23 or minutes > 59 or seconds > 59:
        raise InvalidTimeFormat(value, field=field)

    return hours * 60 + minutes


def format_time(minutes: int) -> str:
    """Minutes since midnight to ``HH:MM``."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"
