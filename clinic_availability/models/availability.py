"""
Pydantic models for availability computation.

Inputs arrive already normalized from the repository adapters; nothing in
these models guesses at the storage layer's join shapes.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from clinic_availability.utils import date_utils


class AppointmentStatus(str, Enum):
    """Appointment lifecycle states as stored."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    NO_SHOW = "no_show"
    CANCELLED = "cancelled"


class AvailabilityLevel(str, Enum):
    """Coarse per-day availability indicator for calendar views."""
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def for_count(cls, available_slots: int) -> "AvailabilityLevel":
        if available_slots <= 0:
            return cls.NONE
        if available_slots <= 2:
            return cls.LOW
        if available_slots <= 5:
            return cls.MEDIUM
        return cls.HIGH


class TimePreference(str, Enum):
    """Time-of-day window for optimal appointment search."""
    ANY = "any"
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"


class DoctorWeeklySchedule(BaseModel):
    """Recurring weekly availability row for one doctor."""
    model_config = ConfigDict(frozen=True)

    doctor_id: str = Field(..., description="Doctor ID")
    day_of_week: int = Field(..., ge=0, le=6, description="0 = Sunday ... 6 = Saturday")
    start_time: str = Field(..., description="Shift start, HH:MM")
    end_time: str = Field(..., description="Shift end, HH:MM")
    is_active: bool = True
    doctor_name: str = "Doctor"
    specialization: Optional[str] = None
    consultation_fee: Optional[float] = None
    location_id: Optional[str] = None


class ExistingAppointment(BaseModel):
    """Booked appointment snapshot for one date."""
    model_config = ConfigDict(frozen=True)

    doctor_id: str
    start_time: str
    end_time: str
    status: str = AppointmentStatus.CONFIRMED.value
    date: Optional[str] = None

    @property
    def is_cancelled(self) -> bool:
        return self.status == AppointmentStatus.CANCELLED.value


class AvailabilityBlock(BaseModel):
    """Vacation, leave or other block-out interval. May span several days."""
    model_config = ConfigDict(frozen=True)

    doctor_id: str
    start_datetime: str = Field(..., description="Clinic-local YYYY-MM-DDTHH:MM[:SS]")
    end_datetime: str = Field(..., description="Clinic-local YYYY-MM-DDTHH:MM[:SS]")
    reason: Optional[str] = None
    block_type: str = "block"

    @property
    def start_date(self) -> str:
        return self.start_datetime[:10]

    @property
    def end_date(self) -> str:
        return self.end_datetime[:10]

    @property
    def start_minutes(self) -> int:
        return date_utils.parse_time(self.start_datetime[11:19] or "00:00", field="start_datetime")

    @property
    def end_minutes(self) -> int:
        # A bare end date covers the whole day
        if not self.end_datetime[11:19]:
            return date_utils.MINUTES_PER_DAY
        return date_utils.parse_time(self.end_datetime[11:19], field="end_datetime")

    @property
    def is_multi_day(self) -> bool:
        return self.start_date != self.end_date

    def label(self) -> str:
        return self.reason or self.block_type


class TimeSlot(BaseModel):
    """Generated appointment slot. Never persisted."""
    model_config = ConfigDict(frozen=True)

    slot_id: str
    date: str
    start_time: str
    end_time: str
    doctor_id: str
    doctor_name: str
    available: bool
    reason: Optional[str] = None
    duration_minutes: int
    specialization: Optional[str] = None
    consultation_fee: Optional[float] = None
    location_id: Optional[str] = None
    service_id: Optional[str] = None

    def mark_unavailable(self, reason: str) -> "TimeSlot":
        return self.model_copy(update={"available": False, "reason": reason})


class DayAvailability(BaseModel):
    """Slots and summary counts for one calendar date."""

    date: str
    day_name: str = ""
    slots: List[TimeSlot] = Field(default_factory=list)
    total_slots: int = 0
    available_slots: int = 0
    availability_level: AvailabilityLevel = AvailabilityLevel.NONE
    is_today: bool = False
    is_tomorrow: bool = False
    is_weekend: bool = False
    is_blocked: bool = False
    block_reason: Optional[str] = None
    note: Optional[str] = Field(None, description="Internal note, e.g. a per-date failure")

    @classmethod
    def from_slots(
        cls,
        date: str,
        slots: List[TimeSlot],
        today: Optional[str] = None,
        locale: str = "es",
        block_reason: Optional[str] = None,
        note: Optional[str] = None,
    ) -> "DayAvailability":
        """Build a day with counts derived from the slot list itself."""
        available = sum(1 for slot in slots if slot.available)
        return cls(
            date=date,
            day_name=date_utils.day_of_week_name(date, locale),
            slots=list(slots),
            total_slots=len(slots),
            available_slots=available,
            availability_level=AvailabilityLevel.for_count(available),
            is_today=today is not None and date == today,
            is_tomorrow=today is not None and date == date_utils.add_days(today, 1),
            is_weekend=date_utils.is_weekend(date),
            is_blocked=block_reason is not None,
            block_reason=block_reason,
            note=note,
        )


class AvailabilityQuery(BaseModel):
    """Availability request for one organization and a date range."""

    organization_id: str
    start_date: str
    end_date: Optional[str] = None
    doctor_id: Optional[str] = None
    service_id: Optional[str] = None
    location_id: Optional[str] = None
    duration: Optional[int] = Field(None, description="Slot length in minutes; the configured default when omitted")
    user_role: Optional[str] = None
    use_standard_rules: bool = False
    include_unavailable: bool = True
    bypass_minimum_notice: Optional[bool] = Field(
        None,
        description="Explicit notice-rule override; derived from user_role when omitted",
    )

    def signature(self) -> str:
        """Cache key covering every field that changes the result."""
        return "|".join(str(part) for part in (
            self.organization_id,
            self.start_date,
            self.end_date or self.start_date,
            self.doctor_id or "any",
            self.service_id or "any",
            self.location_id or "any",
            self.duration,
            self.user_role or "patient",
            self.use_standard_rules,
            self.include_unavailable,
            self.bypass_minimum_notice,
        ))


class ValidationIssue(BaseModel):
    """Consistency violation found by the integrity validator."""
    severity: str = Field(..., description="CRITICAL, HIGH, MEDIUM or LOW")
    code: str
    message: str
    date: Optional[str] = None
    component: Optional[str] = None
    expected: Any = None
    actual: Any = None
    impact: str = ""


class ValidationWarning(BaseModel):
    """Non-fatal data quality observation."""
    category: str = Field(..., description="PERFORMANCE, DATA_QUALITY, UX or BUSINESS_LOGIC")
    code: str
    message: str
    date: Optional[str] = None
    component: Optional[str] = None
    recommendation: str = ""


class ValidationMetadata(BaseModel):
    timestamp: str
    component: str
    data_source: str
    record_count: int
    validation_duration_ms: float
    checks_performed: List[str] = Field(default_factory=list)


class ValidationResult(BaseModel):
    """Structured validator outcome. Returned, never raised."""
    is_valid: bool
    errors: List[ValidationIssue] = Field(default_factory=list)
    warnings: List[ValidationWarning] = Field(default_factory=list)
    metadata: ValidationMetadata

    @property
    def error_codes(self) -> List[str]:
        return [error.code for error in self.errors]


class AvailabilityReport(BaseModel):
    """Availability result together with its validation outcome."""
    days: Dict[str, DayAvailability]
    validation: Optional[ValidationResult] = None
    cancelled: bool = False
    from_cache: bool = False


class AppointmentPreferences(BaseModel):
    """Patient preferences for optimal appointment search."""
    max_days_out: Optional[int] = Field(None, ge=1, description="Lookahead window in days")
    time_preference: TimePreference = TimePreference.ANY
    preferred_doctor_id: Optional[str] = None
    preferred_location_id: Optional[str] = None
    quick_booking: bool = False


class OptimalAppointmentCriteria(BaseModel):
    """Search criteria for the optimal appointment finder."""
    service_id: str
    organization_id: str
    user_location: Optional[Dict[str, float]] = Field(
        None, description="{'lat': ..., 'lng': ...}; not used for scoring yet"
    )
    preferences: AppointmentPreferences = Field(default_factory=AppointmentPreferences)
    duration: Optional[int] = Field(None, description="Slot length in minutes; the configured default when omitted")


class FactorScores(BaseModel):
    """Per-factor scores, each in [0, 1]."""
    time_proximity: float
    location_distance: float
    doctor_availability: float
    service_compatibility: float


class OptimalAppointmentCandidate(BaseModel):
    """Scored slot proposed as the best appointment."""
    doctor_id: str
    doctor_name: str
    location_id: Optional[str] = None
    date: str
    start_time: str
    end_time: str
    fee: Optional[float] = None
    composite_score: float
    scores: FactorScores
    rationale: str = ""
