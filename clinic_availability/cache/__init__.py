"""
Cache package - re-exports only, no logic.
"""
from clinic_availability.cache.availability_cache import AvailabilityCache

__all__ = ["AvailabilityCache"]
