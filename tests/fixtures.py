"""
Test fixtures for the clinic availability engine
"""

from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Set

from clinic_availability.exceptions import RepositoryError
from clinic_availability.models.availability import (
    AvailabilityBlock,
    DayAvailability,
    DoctorWeeklySchedule,
    ExistingAppointment,
    TimeSlot,
)
from clinic_availability.services.repository import AvailabilityRepository
from clinic_availability.utils import date_utils

# Sample test data
TEST_ORG_ID = 'org-test-001'
TEST_DOCTOR_ID = 'doctor-001'
TEST_DOCTOR_NAME = 'Dr. Ana García'
OTHER_DOCTOR_ID = 'doctor-002'
OTHER_DOCTOR_NAME = 'Dr. Luis Pérez'
TEST_SERVICE_ID = 'service-cleaning'
TEST_LOCATION_ID = 'location-centro'

# 2025-06-01 is a Sunday
MONDAY = '2025-06-02'
TUESDAY = '2025-06-03'
WEDNESDAY = '2025-06-04'
THURSDAY = '2025-06-05'


def fixed_clock(year, month, day, hour=9, minute=0):
    """Clock pinned to a UTC instant"""
    instant = datetime(year, month, day, hour, minute, tzinfo=timezone.utc)
    return lambda tz: instant.astimezone(tz)


# Friday before the test week, far enough ahead that the 24h notice rule never bites
FRIDAY_BEFORE = fixed_clock(2025, 5, 30, 9, 0)


# Fixture functions
def make_schedule(**kwargs) -> DoctorWeeklySchedule:
    """Create a weekly schedule row (Monday 08:00-12:00 by default)"""
    return DoctorWeeklySchedule(
        doctor_id=kwargs.get('doctor_id', TEST_DOCTOR_ID),
        day_of_week=kwargs.get('day_of_week', 1),
        start_time=kwargs.get('start_time', '08:00'),
        end_time=kwargs.get('end_time', '12:00'),
        is_active=kwargs.get('is_active', True),
        doctor_name=kwargs.get('doctor_name', TEST_DOCTOR_NAME),
        specialization=kwargs.get('specialization', 'Odontología general'),
        consultation_fee=kwargs.get('consultation_fee', 800.0),
        location_id=kwargs.get('location_id', TEST_LOCATION_ID),
    )


def make_appointment(**kwargs) -> ExistingAppointment:
    """Create an existing appointment"""
    return ExistingAppointment(
        doctor_id=kwargs.get('doctor_id', TEST_DOCTOR_ID),
        date=kwargs.get('date', MONDAY),
        start_time=kwargs.get('start_time', '09:00'),
        end_time=kwargs.get('end_time', '09:30'),
        status=kwargs.get('status', 'confirmed'),
    )


def make_block(**kwargs) -> AvailabilityBlock:
    """Create an availability block"""
    return AvailabilityBlock(
        doctor_id=kwargs.get('doctor_id', TEST_DOCTOR_ID),
        start_datetime=kwargs.get('start_datetime', f'{MONDAY}T00:00:00'),
        end_datetime=kwargs.get('end_datetime', f'{MONDAY}T23:59:59'),
        reason=kwargs.get('reason', 'Vacaciones'),
        block_type=kwargs.get('block_type', 'vacation'),
    )


def make_slot(date: str, start_time: str, **kwargs) -> TimeSlot:
    """Create a generated slot"""
    duration = kwargs.get('duration', 30)
    doctor_id = kwargs.get('doctor_id', TEST_DOCTOR_ID)
    end = date_utils.parse_time(start_time) + duration
    return TimeSlot(
        slot_id=f"{doctor_id}-{date}-{start_time}",
        date=kwargs.get('slot_date', date),
        start_time=start_time,
        end_time=date_utils.format_time(end),
        doctor_id=doctor_id,
        doctor_name=kwargs.get('doctor_name', TEST_DOCTOR_NAME),
        available=kwargs.get('available', True),
        reason=kwargs.get('reason'),
        duration_minutes=duration,
        location_id=kwargs.get('location_id', TEST_LOCATION_ID),
        consultation_fee=kwargs.get('consultation_fee', 800.0),
    )


def make_day(date: str, slots: List[TimeSlot], **kwargs) -> DayAvailability:
    """Create a consistent DayAvailability from slots"""
    return DayAvailability.from_slots(date, slots, **kwargs)


class InMemoryAvailabilityRepository(AvailabilityRepository):
    """
    Repository over plain lists, with call counting and failure injection.

    Args:
        schedules: Weekly schedule rows
        appointments: Existing appointments (their ``date`` selects the day)
        blocks: Availability blocks
        service_doctors: service_id -> doctor ids
        failing_dates: Dates whose weekday schedule lookup raises RepositoryError
        service_error: Raise this from the service-doctor lookup
        on_fetch_schedules: Hook called with the day of week before each schedule lookup
    """

    def __init__(
        self,
        schedules: Optional[List[DoctorWeeklySchedule]] = None,
        appointments: Optional[List[ExistingAppointment]] = None,
        blocks: Optional[List[AvailabilityBlock]] = None,
        service_doctors: Optional[Dict[str, Set[str]]] = None,
        failing_dates: Optional[Set[str]] = None,
        service_error: Optional[Exception] = None,
        on_fetch_schedules: Optional[Callable[[int], None]] = None,
    ):
        self.schedules = list(schedules or [])
        self.appointments = list(appointments or [])
        self.blocks = list(blocks or [])
        self.service_doctors = service_doctors or {}
        self.failing_days_of_week = {date_utils.day_of_week(d) for d in (failing_dates or set())}
        self.service_error = service_error
        self.on_fetch_schedules = on_fetch_schedules
        self.calls: Dict[str, int] = {
            'fetch_doctor_schedules': 0,
            'fetch_appointments': 0,
            'fetch_availability_blocks': 0,
            'fetch_doctor_ids_for_service': 0,
        }

    async def fetch_doctor_schedules(self, organization_id, day_of_week, doctor_id=None):
        self.calls['fetch_doctor_schedules'] += 1
        if self.on_fetch_schedules:
            self.on_fetch_schedules(day_of_week)
        if day_of_week in self.failing_days_of_week:
            raise RepositoryError('fetch_doctor_schedules', 'connection reset')
        return [
            s for s in self.schedules
            if s.day_of_week == day_of_week and s.is_active
            and (doctor_id is None or s.doctor_id == doctor_id)
        ]

    async def fetch_appointments(self, organization_id, date, doctor_id=None):
        self.calls['fetch_appointments'] += 1
        return [
            a for a in self.appointments
            if a.date == date and not a.is_cancelled
            and (doctor_id is None or a.doctor_id == doctor_id)
        ]

    async def fetch_availability_blocks(self, organization_id, date, doctor_id=None):
        self.calls['fetch_availability_blocks'] += 1
        return [
            b for b in self.blocks
            if b.start_date <= date <= b.end_date
            and (doctor_id is None or b.doctor_id == doctor_id)
        ]

    async def fetch_doctor_ids_for_service(self, organization_id, service_id):
        self.calls['fetch_doctor_ids_for_service'] += 1
        if self.service_error:
            raise self.service_error
        return set(self.service_doctors.get(service_id, set()))
