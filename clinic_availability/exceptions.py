"""
Custom exceptions for the availability engine.

Input validation errors are raised synchronously and are always the
caller's fault. Consistency violations are never raised; the integrity
validator reports them as structured results instead.
"""


class AvailabilityError(Exception):
    """Base class for availability engine errors."""


class InvalidDateFormat(AvailabilityError):
    """Raised when a date string is not in canonical YYYY-MM-DD form."""

    def __init__(self, value, field: str = "date"):
        self.value = value
        self.field = field
        super().__init__(f"Invalid date format for '{field}': {value!r}. Expected YYYY-MM-DD")


class InvalidDateValue(AvailabilityError):
    """Raised when a well-formed date does not exist on the calendar."""

    def __init__(self, value: str, reason: str, field: str = "date"):
        self.value = value
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid date value for '{field}': {value} ({reason})")


class InvalidRange(AvailabilityError):
    """Raised when a date range starts after it ends."""

    def __init__(self, start_date: str, end_date: str):
        self.start_date = start_date
        self.end_date = end_date
        self.field = "end_date"
        super().__init__(f"Invalid range: start_date {start_date} is after end_date {end_date}")


class InvalidDuration(AvailabilityError):
    """Raised when a slot duration is outside the supported bounds."""

    def __init__(self, value, minimum: int, maximum: int):
        self.value = value
        self.minimum = minimum
        self.maximum = maximum
        self.field = "duration"
        super().__init__(
            f"Invalid slot duration: {value!r}. Must be between {minimum} and {maximum} minutes"
        )


class InvalidTimeFormat(AvailabilityError):
    """Raised when a time string is not HH:MM (optionally HH:MM:SS)."""

    def __init__(self, value, field: str = "time"):
        self.value = value
        self.field = field
        super().__init__(f"Invalid time for '{field}': {value!r}. Expected HH:MM")


class RepositoryError(AvailabilityError):
    """Raised when the backing store cannot answer a query."""

    def __init__(self, operation: str, message: str = None):
        self.operation = operation
        self.message = message or f"Repository operation '{operation}' failed"
        super().__init__(self.message)
