"""
Booking Rules

Minimum-notice and advance-booking limits applied to generated slots.

The aggregator only ever sees explicit parameters (minimum_notice_hours,
bypass_minimum_notice). Mapping a user role onto those parameters happens
here, at the boundary, through bypass_for_role().
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from clinic_availability.models.availability import TimeSlot
from clinic_availability.utils import date_utils
from clinic_availability.utils.timezone_utils import ClinicMoment

logger = logging.getLogger(__name__)

PRIVILEGED_ROLES = ("admin", "staff", "doctor", "superadmin")

PAST_DATE_REASON = "Fecha pasada"
PAST_TIME_REASON = "Horario ya pasado"


def minimum_notice_reason(hours: int) -> str:
    return f"Los pacientes deben reservar citas con al menos {hours} horas de anticipación"


def advance_limit_reason(days: int) -> str:
    return f"No se pueden hacer reservas con más de {days} días de anticipación"


def bypass_for_role(
    user_role: Optional[str],
    use_standard_rules: bool = False,
    privileged_roles: Iterable[str] = PRIVILEGED_ROLES,
) -> bool:
    """
    Decide whether a caller skips the minimum-notice rule.

    Privileged staff can book into the notice window unless the caller
    explicitly asks for standard (patient-facing) rules, e.g. when staff
    book on behalf of a patient and want to see what the patient sees.

    Args:
        user_role: Role of the requesting user (None is treated as patient)
        use_standard_rules: Force standard rules even for privileged roles
        privileged_roles: Roles allowed to bypass

    Returns:
        True if the minimum-notice rule should be bypassed
    """
    if use_standard_rules:
        return False
    return (user_role or "patient") in tuple(privileged_roles)


@dataclass(frozen=True)
class BookingPolicy:
    """Notice rules for one availability request."""

    minimum_notice_hours: int = 24
    bypass_minimum_notice: bool = False
    max_advance_booking_days: Optional[int] = 90

    def apply(
        self,
        date: str,
        slots: List[TimeSlot],
        now: ClinicMoment,
    ) -> Tuple[List[TimeSlot], Optional[str]]:
        """
        Mark slots that the policy forbids as unavailable.

        Slots that are already unavailable keep their original reason.

        Args:
            date: Date the slots belong to
            slots: Generated slots for that date
            now: Clinic-local current date and minute of day

        Returns:
            (slots, block_reason) where block_reason is set when the whole
            date is closed by policy
        """
        days_ahead = date_utils.days_difference(now.date, date)

        if days_ahead < 0:
            return self._close_all(slots, PAST_DATE_REASON), PAST_DATE_REASON

        if self.max_advance_booking_days is not None and days_ahead > self.max_advance_booking_days:
            reason = advance_limit_reason(self.max_advance_booking_days)
            return self._close_all(slots, reason), reason

        notice_minutes = 0 if self.bypass_minimum_notice else self.minimum_notice_hours * 60
        reason = PAST_TIME_REASON if self.bypass_minimum_notice else minimum_notice_reason(
            self.minimum_notice_hours
        )

        result = []
        for slot in slots:
            if slot.available:
                start = date_utils.parse_time(slot.start_time)
                minutes_until = days_ahead * date_utils.MINUTES_PER_DAY + start - now.minutes
                too_soon = minutes_until <= 0 if self.bypass_minimum_notice else minutes_until < notice_minutes
                if too_soon:
                    slot = slot.mark_unavailable(reason)
            result.append(slot)

        return result, None

    @staticmethod
    def _close_all(slots: List[TimeSlot], reason: str) -> List[TimeSlot]:
        return [slot.mark_unavailable(reason) if slot.available else slot for slot in slots]
