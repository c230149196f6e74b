"""Slot generation, ranking and integrity checks."""

from clinic_availability.services.scheduling.integrity_validator import DataIntegrityValidator
from clinic_availability.services.scheduling.optimal_scorer import (
    OptimalAppointmentFinder,
    OptimalAppointmentScorer,
    score_label,
)
from clinic_availability.services.scheduling.slot_generator import SlotGenerator

__all__ = [
    "DataIntegrityValidator",
    "OptimalAppointmentFinder",
    "OptimalAppointmentScorer",
    "SlotGenerator",
    "score_label",
]
