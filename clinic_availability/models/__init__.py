"""Data models for the availability engine."""

from clinic_availability.models.availability import (
    AppointmentPreferences,
    AppointmentStatus,
    AvailabilityBlock,
    AvailabilityLevel,
    AvailabilityQuery,
    AvailabilityReport,
    DayAvailability,
    DoctorWeeklySchedule,
    ExistingAppointment,
    FactorScores,
    OptimalAppointmentCandidate,
    OptimalAppointmentCriteria,
    TimePreference,
    TimeSlot,
    ValidationIssue,
    ValidationMetadata,
    ValidationResult,
    ValidationWarning,
)

__all__ = [
    "AppointmentPreferences",
    "AppointmentStatus",
    "AvailabilityBlock",
    "AvailabilityLevel",
    "AvailabilityQuery",
    "AvailabilityReport",
    "DayAvailability",
    "DoctorWeeklySchedule",
    "ExistingAppointment",
    "FactorScores",
    "OptimalAppointmentCandidate",
    "OptimalAppointmentCriteria",
    "TimePreference",
    "TimeSlot",
    "ValidationIssue",
    "ValidationMetadata",
    "ValidationResult",
    "ValidationWarning",
]
