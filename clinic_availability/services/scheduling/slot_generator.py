"""
Slot Generator

Turns a doctor's weekly schedule rows into the ordered list of fixed-length
slots for one date, marking each slot available or not.

Pure computation: no clock, no timezone, no I/O. Identical inputs always
give identical output.
"""

import logging
from typing import Iterable, List, Optional

from clinic_availability.config import MAX_SLOT_DURATION, MIN_SLOT_DURATION
from clinic_availability.exceptions import InvalidDuration
from clinic_availability.models.availability import (
    AvailabilityBlock,
    DoctorWeeklySchedule,
    ExistingAppointment,
    TimeSlot,
)
from clinic_availability.utils import date_utils

logger = logging.getLogger(__name__)

BOOKED_REASON = "Ocupado"


class SlotGenerator:
    """
    Generates slots for (doctor, date) pairs.

    Unavailability precedence:
    1. Availability blocks (reason = block reason, else block type)
    2. Existing non-cancelled appointments ("Ocupado")
    """

    def __init__(self, min_duration: int = MIN_SLOT_DURATION, max_duration: int = MAX_SLOT_DURATION):
        self.min_duration = min_duration
        self.max_duration = max_duration

    def validate_duration(self, duration) -> int:
        """
        Check a slot duration against the configured bounds.

        Raises:
            InvalidDuration: not an integer, or outside [min_duration, max_duration]
        """
        if isinstance(duration, bool) or not isinstance(duration, int):
            raise InvalidDuration(duration, self.min_duration, self.max_duration)
        if not self.min_duration <= duration <= self.max_duration:
            raise InvalidDuration(duration, self.min_duration, self.max_duration)
        return duration

    def generate_for_schedule(
        self,
        date: str,
        schedule: DoctorWeeklySchedule,
        appointments: Iterable[ExistingAppointment],
        blocks: Iterable[AvailabilityBlock],
        duration: int,
        service_id: Optional[str] = None,
    ) -> List[TimeSlot]:
        """
        Generate the slots of a single schedule row.

        Appointments and blocks belonging to other doctors are ignored, so
        callers may pass the whole day's snapshot.

        Args:
            date: Date in YYYY-MM-DD format
            schedule: One weekly schedule row
            appointments: Existing appointments on that date
            blocks: Availability blocks overlapping that date
            duration: Slot length in minutes
            service_id: Service the slots are being generated for

        Returns:
            Slots ordered by start time
        """
        self.validate_duration(duration)
        date_utils.parse_date(date)

        if not schedule.is_active:
            return []

        schedule_start = date_utils.parse_time(schedule.start_time, field="start_time")
        schedule_end = date_utils.parse_time(schedule.end_time, field="end_time")

        doctor_appointments = [
            apt for apt in appointments
            if apt.doctor_id == schedule.doctor_id and not apt.is_cancelled
        ]
        doctor_blocks = [
            block for block in blocks
            if block.doctor_id == schedule.doctor_id and self._block_covers_date(block, date)
        ]

        slots = []
        current = schedule_start
        while current + duration <= schedule_end:
            slot_end = current + duration

            reason = self._block_reason(current, slot_end, doctor_blocks)
            if reason is None and self._is_booked(current, slot_end, doctor_appointments):
                reason = BOOKED_REASON

            start_label = date_utils.format_time(current)
            slots.append(TimeSlot(
                slot_id=f"{schedule.doctor_id}-{date}-{start_label}",
                date=date,
                start_time=start_label,
                end_time=date_utils.format_time(slot_end),
                doctor_id=schedule.doctor_id,
                doctor_name=schedule.doctor_name,
                available=reason is None,
                reason=reason,
                duration_minutes=duration,
                specialization=schedule.specialization,
                consultation_fee=schedule.consultation_fee,
                location_id=schedule.location_id,
                service_id=service_id,
            ))
            current = slot_end

        return slots

    def generate_for_date(
        self,
        date: str,
        schedules: Iterable[DoctorWeeklySchedule],
        appointments: Iterable[ExistingAppointment],
        blocks: Iterable[AvailabilityBlock],
        duration: int,
        service_id: Optional[str] = None,
    ) -> List[TimeSlot]:
        """
        Generate and merge slots for every schedule row of a date.

        Split shifts are generated independently and concatenated. Overlapping
        rows for the same doctor are not deduplicated.

        Returns:
            Slots ordered by start time, then doctor name
        """
        appointments = list(appointments)
        blocks = list(blocks)

        all_slots: List[TimeSlot] = []
        for schedule in schedules:
            all_slots.extend(
                self.generate_for_schedule(date, schedule, appointments, blocks, duration, service_id)
            )

        all_slots.sort(key=lambda slot: (slot.start_time, slot.doctor_name))
        return all_slots

    @staticmethod
    def _block_covers_date(block: AvailabilityBlock, date: str) -> bool:
        return (
            date_utils.compare_dates(block.start_date, date) <= 0
            and date_utils.compare_dates(date, block.end_date) <= 0
        )

    @staticmethod
    def _block_reason(start: int, end: int, blocks: List[AvailabilityBlock]) -> Optional[str]:
        for block in blocks:
            # A block spanning several days closes every date it touches
            if block.is_multi_day:
                return block.label()
            if start < block.end_minutes and end > block.start_minutes:
                return block.label()
        return None

    @staticmethod
    def _is_booked(start: int, end: int, appointments: List[ExistingAppointment]) -> bool:
        for apt in appointments:
            apt_start = date_utils.parse_time(apt.start_time, field="start_time")
            apt_end = date_utils.parse_time(apt.end_time, field="end_time")
            if apt_start < end and apt_end > start:
                return True
        return False
