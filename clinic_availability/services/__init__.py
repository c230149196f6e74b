"""Availability services."""

from clinic_availability.services.availability_service import AvailabilityService
from clinic_availability.services.monitoring import (
    ActiveQueryRegistry,
    CancellationToken,
    TransformationLog,
)
from clinic_availability.services.repository import (
    AvailabilityRepository,
    SupabaseAvailabilityRepository,
)

__all__ = [
    "ActiveQueryRegistry",
    "AvailabilityRepository",
    "AvailabilityService",
    "CancellationToken",
    "SupabaseAvailabilityRepository",
    "TransformationLog",
]
