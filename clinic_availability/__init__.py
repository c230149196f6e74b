"""Clinic availability engine."""

from typing import Optional

from supabase import Client

from clinic_availability.config import AvailabilityConfig
from clinic_availability.services.availability_service import AvailabilityService
from clinic_availability.services.repository import SupabaseAvailabilityRepository
from clinic_availability.services.scheduling.optimal_scorer import OptimalAppointmentFinder
from clinic_availability.utils.logging_config import configure_logging

__all__ = [
    "AvailabilityConfig",
    "AvailabilityService",
    "OptimalAppointmentFinder",
    "create_availability_service",
]


def create_availability_service(
    supabase_client: Optional[Client] = None,
    config: Optional[AvailabilityConfig] = None,
) -> AvailabilityService:
    """
    Wire an AvailabilityService against Supabase.

    Args:
        supabase_client: Existing client; one is created from SUPABASE_URL and
            SUPABASE_SERVICE_ROLE_KEY when omitted
        config: Engine configuration (environment defaults if not provided)
    """
    config = config or AvailabilityConfig.from_env()
    configure_logging(config.log_level)
    repository = SupabaseAvailabilityRepository(supabase_client, schema=config.supabase_schema)
    return AvailabilityService(repository, config=config)
