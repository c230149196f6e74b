"""
Availability Repository Adapters

Read-only access to schedules, appointments, blocks and doctor-service
associations. The adapter boundary owns normalization: PostgREST returns
embedded joins as either an object or a one-element list depending on the
relationship, and that is flattened here so the rest of the engine only
ever sees the models in ``models.availability``.
"""

import logging
import os
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Set

from supabase import Client, create_client

from clinic_availability.exceptions import RepositoryError
from clinic_availability.models.availability import (
    AppointmentStatus,
    AvailabilityBlock,
    DoctorWeeklySchedule,
    ExistingAppointment,
)

logger = logging.getLogger(__name__)

UNKNOWN_DOCTOR_NAME = "Doctor desconocido"


class AvailabilityRepository(ABC):
    """Queries the availability engine needs from the data store."""

    @abstractmethod
    async def fetch_doctor_schedules(
        self,
        organization_id: str,
        day_of_week: int,
        doctor_id: Optional[str] = None,
    ) -> List[DoctorWeeklySchedule]:
        """Active weekly schedule rows for a day of week (0 = Sunday)."""

    @abstractmethod
    async def fetch_appointments(
        self,
        organization_id: str,
        date: str,
        doctor_id: Optional[str] = None,
    ) -> List[ExistingAppointment]:
        """Non-cancelled appointments on a date."""

    @abstractmethod
    async def fetch_availability_blocks(
        self,
        organization_id: str,
        date: str,
        doctor_id: Optional[str] = None,
    ) -> List[AvailabilityBlock]:
        """Blocks overlapping any part of a date."""

    @abstractmethod
    async def fetch_doctor_ids_for_service(self, organization_id: str, service_id: str) -> Set[str]:
        """Doctors associated with a service in an organization."""


def _embedded(value: Any) -> Optional[Dict[str, Any]]:
    """Flatten a PostgREST embedded resource (object or list) to a dict."""
    if isinstance(value, list):
        return value[0] if value else None
    return value or None


class SupabaseAvailabilityRepository(AvailabilityRepository):
    """
    Repository backed by Supabase/PostgREST.

    Tables:
    - doctor_availability (weekly schedules, day_of_week 0 = Sunday)
    - appointments
    - availability_blocks
    - doctor_services
    Organization scoping goes through the doctor's profile.
    """

    def __init__(self, supabase_client: Client = None, schema: str = "public"):
        if supabase_client:
            self.supabase = supabase_client
        else:
            self.supabase: Client = create_client(
                os.environ.get("SUPABASE_URL"),
                os.environ.get("SUPABASE_SERVICE_ROLE_KEY")
            )
        self.schema = schema

    def _table(self, name: str):
        return self.supabase.schema(self.schema).table(name)

    async def fetch_doctor_schedules(
        self,
        organization_id: str,
        day_of_week: int,
        doctor_id: Optional[str] = None,
    ) -> List[DoctorWeeklySchedule]:
        try:
            query = self._table('doctor_availability').select(
                'doctor_id, day_of_week, start_time, end_time, is_active, location_id, '
                'doctor:profiles!inner(first_name, last_name, organization_id), '
                'doctor_profile:doctors(specialization, consultation_fee)'
            ).eq(
                'day_of_week', day_of_week
            ).eq(
                'is_active', True
            ).eq(
                'doctor.organization_id', organization_id
            )

            if doctor_id:
                query = query.eq('doctor_id', doctor_id)

            result = query.execute()

        except Exception as e:
            logger.error(f"Error fetching doctor schedules: {e}", exc_info=True)
            raise RepositoryError('fetch_doctor_schedules', str(e)) from e

        schedules = []
        for row in result.data or []:
            doctor = _embedded(row.get('doctor'))
            if doctor and doctor.get('organization_id') not in (None, organization_id):
                continue
            profile = _embedded(row.get('doctor_profile')) or {}

            schedules.append(DoctorWeeklySchedule(
                doctor_id=row['doctor_id'],
                day_of_week=row['day_of_week'],
                start_time=row['start_time'],
                end_time=row['end_time'],
                is_active=row.get('is_active', True),
                doctor_name=(
                    f"Dr. {doctor['first_name']} {doctor['last_name']}"
                    if doctor else UNKNOWN_DOCTOR_NAME
                ),
                specialization=profile.get('specialization'),
                consultation_fee=profile.get('consultation_fee'),
                location_id=row.get('location_id'),
            ))

        return schedules

    async def fetch_appointments(
        self,
        organization_id: str,
        date: str,
        doctor_id: Optional[str] = None,
    ) -> List[ExistingAppointment]:
        try:
            query = self._table('appointments').select(
                'doctor_id, appointment_date, start_time, end_time, status'
            ).eq(
                'organization_id', organization_id
            ).eq(
                'appointment_date', date
            ).neq(
                'status', AppointmentStatus.CANCELLED.value
            )

            if doctor_id:
                query = query.eq('doctor_id', doctor_id)

            result = query.execute()

        except Exception as e:
            logger.error(f"Error fetching existing appointments: {e}", exc_info=True)
            raise RepositoryError('fetch_appointments', str(e)) from e

        return [
            ExistingAppointment(
                doctor_id=row['doctor_id'],
                date=row.get('appointment_date', date),
                start_time=row['start_time'],
                end_time=row['end_time'],
                status=row.get('status') or AppointmentStatus.CONFIRMED.value,
            )
            for row in result.data or []
        ]

    async def fetch_availability_blocks(
        self,
        organization_id: str,
        date: str,
        doctor_id: Optional[str] = None,
    ) -> List[AvailabilityBlock]:
        start_of_day = f"{date}T00:00:00"
        end_of_day = f"{date}T23:59:59"

        try:
            query = self._table('availability_blocks').select(
                'doctor_id, start_datetime, end_datetime, reason, block_type, '
                'doctor:profiles!inner(organization_id)'
            ).lte(
                'start_datetime', end_of_day
            ).gte(
                'end_datetime', start_of_day
            ).eq(
                'doctor.organization_id', organization_id
            )

            if doctor_id:
                query = query.eq('doctor_id', doctor_id)

            result = query.execute()

        except Exception as e:
            logger.error(f"Error fetching availability blocks: {e}", exc_info=True)
            raise RepositoryError('fetch_availability_blocks', str(e)) from e

        blocks = []
        for row in result.data or []:
            doctor = _embedded(row.get('doctor'))
            if doctor and doctor.get('organization_id') not in (None, organization_id):
                continue
            blocks.append(AvailabilityBlock(
                doctor_id=row['doctor_id'],
                start_datetime=row['start_datetime'],
                end_datetime=row['end_datetime'],
                reason=row.get('reason'),
                block_type=row.get('block_type') or 'block',
            ))

        return blocks

    async def fetch_doctor_ids_for_service(self, organization_id: str, service_id: str) -> Set[str]:
        try:
            result = self._table('doctor_services').select(
                'doctor_id, doctor:profiles!inner(organization_id)'
            ).eq(
                'service_id', service_id
            ).eq(
                'doctor.organization_id', organization_id
            ).execute()

        except Exception as e:
            logger.error(f"Error fetching doctor services: {e}", exc_info=True)
            raise RepositoryError('fetch_doctor_ids_for_service', str(e)) from e

        doctor_ids = set()
        for row in result.data or []:
            doctor = _embedded(row.get('doctor'))
            if doctor and doctor.get('organization_id') not in (None, organization_id):
                continue
            doctor_ids.add(row['doctor_id'])

        if not doctor_ids:
            logger.warning(f"No doctors associated with service {service_id} in {organization_id}")

        return doctor_ids
