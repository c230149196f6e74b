"""
Utility modules for the availability engine.
"""
from clinic_availability.utils.date_utils import (
    CalendarDate,
    DateValidationResult,
    add_days,
    compare_dates,
    day_of_week,
    day_of_week_name,
    generate_range,
    parse_date,
    validate_and_normalize,
)

__all__ = [
    "CalendarDate",
    "DateValidationResult",
    "add_days",
    "compare_dates",
    "day_of_week",
    "day_of_week_name",
    "generate_range",
    "parse_date",
    "validate_and_normalize",
]
