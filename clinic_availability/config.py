"""
Availability Engine Configuration
Centralized configuration for slot generation, booking rules and caching
"""
import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

# Slot duration bounds (minutes)
MIN_SLOT_DURATION = 5
MAX_SLOT_DURATION = 480
DEFAULT_SLOT_DURATION = int(os.getenv("AVAILABILITY_DEFAULT_DURATION", "30"))

# Booking rules
MINIMUM_NOTICE_HOURS = int(os.getenv("AVAILABILITY_MINIMUM_NOTICE_HOURS", "24"))
MAX_ADVANCE_BOOKING_DAYS = int(os.getenv("AVAILABILITY_MAX_ADVANCE_BOOKING_DAYS", "90"))

# Memoization of identical availability queries (seconds)
CACHE_TTL_SECONDS = int(os.getenv("AVAILABILITY_CACHE_TTL_SECONDS", "300"))
CACHE_ENABLED = os.getenv("AVAILABILITY_CACHE_ENABLED", "true").lower() == "true"
CACHE_MAX_ENTRIES = int(os.getenv("AVAILABILITY_CACHE_MAX_ENTRIES", "512"))

# Optimal appointment lookahead windows (days)
LOOKAHEAD_DAYS = int(os.getenv("AVAILABILITY_LOOKAHEAD_DAYS", "14"))
QUICK_BOOKING_DAYS = int(os.getenv("AVAILABILITY_QUICK_BOOKING_DAYS", "7"))

CLINIC_TIMEZONE = os.getenv("CLINIC_TIMEZONE", "UTC")
DISPLAY_LOCALE = os.getenv("AVAILABILITY_LOCALE", "es")
LOG_LEVEL = os.getenv("AVAILABILITY_LOG_LEVEL", "INFO")
SUPABASE_SCHEMA = os.getenv("AVAILABILITY_SUPABASE_SCHEMA", "public")


@dataclass
class AvailabilityConfig:
    """Availability engine configuration"""

    clinic_timezone: str = "UTC"
    locale: str = "es"
    log_level: str = "INFO"

    # Slots
    default_duration: int = 30
    min_duration: int = MIN_SLOT_DURATION
    max_duration: int = MAX_SLOT_DURATION

    # Booking rules
    minimum_notice_hours: int = 24
    max_advance_booking_days: int = 90

    # Memoization
    cache_enabled: bool = True
    cache_ttl_seconds: int = 300
    cache_max_entries: int = 512

    # Per-date evaluation
    parallel_dates: bool = False
    max_concurrency: int = 4

    # Optimal appointment search
    lookahead_days: int = 14
    quick_booking_days: int = 7

    # Auditing
    transformation_log_enabled: bool = True
    transformation_log_max_entries: int = 1000

    supabase_schema: str = "public"
    privileged_roles: tuple = field(default=("admin", "staff", "doctor", "superadmin"))

    @classmethod
    def from_env(cls) -> "AvailabilityConfig":
        """Build a configuration from environment variables."""
        return cls(
            clinic_timezone=CLINIC_TIMEZONE,
            locale=DISPLAY_LOCALE,
            log_level=LOG_LEVEL,
            default_duration=DEFAULT_SLOT_DURATION,
            minimum_notice_hours=MINIMUM_NOTICE_HOURS,
            max_advance_booking_days=MAX_ADVANCE_BOOKING_DAYS,
            cache_enabled=CACHE_ENABLED,
            cache_ttl_seconds=CACHE_TTL_SECONDS,
            cache_max_entries=CACHE_MAX_ENTRIES,
            parallel_dates=os.getenv("AVAILABILITY_PARALLEL_DATES", "false").lower() == "true",
            max_concurrency=int(os.getenv("AVAILABILITY_MAX_CONCURRENCY", "4")),
            lookahead_days=LOOKAHEAD_DAYS,
            quick_booking_days=QUICK_BOOKING_DAYS,
            transformation_log_enabled=os.getenv(
                "AVAILABILITY_TRANSFORMATION_LOG", "true"
            ).lower() == "true",
            supabase_schema=SUPABASE_SCHEMA,
        )


# Default configuration
DEFAULT_AVAILABILITY_CONFIG = AvailabilityConfig()


def get_availability_config(environment: Optional[str] = None) -> AvailabilityConfig:
    """Get availability configuration for a specific environment"""

    if environment == "production":
        return AvailabilityConfig.from_env()
    elif environment == "development":
        return AvailabilityConfig(
            cache_enabled=False,  # Always recompute while iterating locally
            transformation_log_enabled=True,
        )
    elif environment == "test":
        return AvailabilityConfig(
            cache_enabled=False,
            transformation_log_enabled=False,
        )
    return DEFAULT_AVAILABILITY_CONFIG
