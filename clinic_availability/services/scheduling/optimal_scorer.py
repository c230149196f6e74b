"""
Optimal Appointment Scorer.

Picks the single best slot out of the availability computed for a lookahead
window. Every slot gets four factor scores in [0, 1] combined by fixed
weights; the highest composite wins.
"""

import logging
from typing import Dict, List, Mapping, Optional, Tuple

from clinic_availability.models.availability import (
    AppointmentPreferences,
    AvailabilityQuery,
    DayAvailability,
    FactorScores,
    OptimalAppointmentCandidate,
    OptimalAppointmentCriteria,
    TimePreference,
    TimeSlot,
)
from clinic_availability.utils import date_utils

logger = logging.getLogger(__name__)

DEFAULT_WEIGHTS = {
    "time_proximity": 0.40,
    "location_distance": 0.30,
    "doctor_availability": 0.20,
    "service_compatibility": 0.10,
}

# Minutes of day, half-open
TIME_WINDOWS = {
    TimePreference.MORNING: (6 * 60, 12 * 60),
    TimePreference.AFTERNOON: (12 * 60, 18 * 60),
    TimePreference.EVENING: (18 * 60, 22 * 60),
}

# No distance data is modeled yet; every location scores the same
NEUTRAL_LOCATION_SCORE = 0.7
PREFERRED_DOCTOR_SCORE = 1.0
ANY_DOCTOR_SCORE = 0.8
SERVICE_MATCH_SCORE = 0.9

FACTOR_EXPLANATIONS = {
    "time_proximity": "Cita disponible muy pronto",
    "location_distance": "Ubicación conveniente",
    "doctor_availability": "Tu doctor preferido",
    "service_compatibility": "Compatible con el servicio solicitado",
}

# Composites are compared at this precision so float noise never beats the date tie-break
SCORE_PRECISION = 9


def score_label(score: float) -> str:
    """Display label for a composite score."""
    if score >= 0.8:
        return "Excelente"
    if score >= 0.6:
        return "Buena"
    return "Aceptable"


class OptimalAppointmentScorer:
    """
    Scores and ranks available slots.

    Pure: the caller supplies the computed availability and "today", so
    the same inputs always rank the same way.
    """

    def __init__(self, weights: Optional[Dict[str, float]] = None):
        self.weights = dict(weights or DEFAULT_WEIGHTS)

        missing = set(DEFAULT_WEIGHTS) - set(self.weights)
        if missing:
            raise ValueError(f"Missing scoring weights: {sorted(missing)}")
        if abs(sum(self.weights.values()) - 1.0) > 1e-9:
            raise ValueError(f"Scoring weights must sum to 1.0, got {sum(self.weights.values())}")

    @staticmethod
    def score_time_proximity(days_until: int, window_days: int) -> float:
        """
        Linear decay over the lookahead window.

        Returns:
            1.0 today, falling to 0.0 at the edge of the window
        """
        if window_days <= 0:
            return 0.0
        return max(0.0, (window_days - days_until) / window_days)

    @staticmethod
    def score_location(
        slot: TimeSlot,
        user_location: Optional[Dict[str, float]] = None,
        preferred_location_id: Optional[str] = None,
    ) -> float:
        return NEUTRAL_LOCATION_SCORE

    @staticmethod
    def score_doctor(doctor_id: str, preferred_doctor_id: Optional[str] = None) -> float:
        if preferred_doctor_id and doctor_id == preferred_doctor_id:
            return PREFERRED_DOCTOR_SCORE
        return ANY_DOCTOR_SCORE

    @staticmethod
    def score_service(slot: TimeSlot) -> float:
        # Slots reaching the scorer are already filtered to the service
        return SERVICE_MATCH_SCORE

    @staticmethod
    def matches_time_preference(start_time: str, preference: TimePreference) -> bool:
        window = TIME_WINDOWS.get(preference)
        if window is None:
            return True
        minutes = date_utils.parse_time(start_time, field="start_time")
        return window[0] <= minutes < window[1]

    def composite(self, scores: FactorScores) -> float:
        return sum(getattr(scores, factor) * weight for factor, weight in self.weights.items())

    def explain(self, scores: FactorScores) -> str:
        """
        Human-readable rationale from the factors that stood out.

        Args:
            scores: Factor scores of the candidate

        Returns:
            Rationale string, e.g. "Seleccionado por: Cita disponible muy pronto"
        """
        reasons = []
        if scores.time_proximity >= 0.7:
            reasons.append(FACTOR_EXPLANATIONS["time_proximity"])
        if scores.doctor_availability >= PREFERRED_DOCTOR_SCORE:
            reasons.append(FACTOR_EXPLANATIONS["doctor_availability"])
        if scores.location_distance > NEUTRAL_LOCATION_SCORE:
            reasons.append(FACTOR_EXPLANATIONS["location_distance"])

        if not reasons:
            return "Seleccionado por: Mejor opción disponible"
        return "Seleccionado por: " + ", ".join(reasons)

    def score_slot(
        self,
        slot: TimeSlot,
        days_until: int,
        window_days: int,
        preferences: AppointmentPreferences,
        user_location: Optional[Dict[str, float]] = None,
    ) -> OptimalAppointmentCandidate:
        scores = FactorScores(
            time_proximity=self.score_time_proximity(days_until, window_days),
            location_distance=self.score_location(
                slot, user_location, preferences.preferred_location_id
            ),
            doctor_availability=self.score_doctor(slot.doctor_id, preferences.preferred_doctor_id),
            service_compatibility=self.score_service(slot),
        )
        return OptimalAppointmentCandidate(
            doctor_id=slot.doctor_id,
            doctor_name=slot.doctor_name,
            location_id=slot.location_id,
            date=slot.date,
            start_time=slot.start_time,
            end_time=slot.end_time,
            fee=slot.consultation_fee,
            composite_score=self.composite(scores),
            scores=scores,
            rationale=self.explain(scores),
        )

    def rank(
        self,
        days: Mapping[str, DayAvailability],
        today: str,
        window_days: int,
        preferences: Optional[AppointmentPreferences] = None,
        user_location: Optional[Dict[str, float]] = None,
    ) -> List[OptimalAppointmentCandidate]:
        """
        Score every available slot and order best first.

        The time-of-day preference removes slots before scoring. Equal
        composites fall back to the earlier date, then the earlier time.

        Args:
            days: Availability keyed by date
            today: Clinic-local today, YYYY-MM-DD
            window_days: Lookahead window used for time proximity
            preferences: Patient preferences
            user_location: Patient coordinates, if known

        Returns:
            Candidates, best first
        """
        preferences = preferences or AppointmentPreferences()

        candidates = []
        for date, day in days.items():
            days_until = date_utils.days_difference(today, date)
            for slot in day.slots:
                if not slot.available:
                    continue
                if not self.matches_time_preference(slot.start_time, preferences.time_preference):
                    continue
                candidates.append(
                    self.score_slot(slot, days_until, window_days, preferences, user_location)
                )

        candidates.sort(key=self._sort_key)
        return candidates

    @staticmethod
    def _sort_key(candidate: OptimalAppointmentCandidate) -> Tuple[float, int, int]:
        return (
            -round(candidate.composite_score, SCORE_PRECISION),
            date_utils.parse_date(candidate.date).to_ordinal(),
            date_utils.parse_time(candidate.start_time),
        )


class OptimalAppointmentFinder:
    """Runs the aggregator over the lookahead window and ranks the result."""

    def __init__(self, availability_service, scorer: Optional[OptimalAppointmentScorer] = None):
        """
        Args:
            availability_service: AvailabilityService used to compute slots
            scorer: Scorer (default weights if not provided)
        """
        self.availability_service = availability_service
        self.scorer = scorer or OptimalAppointmentScorer()

    def window_days(self, preferences: AppointmentPreferences) -> int:
        config = self.availability_service.config
        if preferences.max_days_out:
            return preferences.max_days_out
        if preferences.quick_booking:
            return config.quick_booking_days
        return config.lookahead_days

    async def rank_candidates(self, criteria: OptimalAppointmentCriteria) -> List[OptimalAppointmentCandidate]:
        """
        Every available slot in the window, best first.

        Raises:
            RepositoryError: the service-doctor lookup failed
        """
        preferences = criteria.preferences
        window = self.window_days(preferences)
        today = self.availability_service.today()

        days = await self.availability_service.get_availability(AvailabilityQuery(
            organization_id=criteria.organization_id,
            start_date=today,
            end_date=date_utils.add_days(today, window - 1),
            service_id=criteria.service_id,
            duration=criteria.duration,
            use_standard_rules=True,
            include_unavailable=False,
        ))

        return self.scorer.rank(days, today, window, preferences, criteria.user_location)

    async def find_optimal_appointment(
        self,
        criteria: OptimalAppointmentCriteria,
    ) -> Optional[OptimalAppointmentCandidate]:
        """
        Best appointment for the criteria, or None when nothing is bookable.

        Args:
            criteria: Service, organization and patient preferences

        Returns:
            OptimalAppointmentCandidate or None
        """
        candidates = await self.rank_candidates(criteria)
        if not candidates:
            logger.info(
                f"No optimal appointment for service {criteria.service_id} "
                f"in {criteria.organization_id}"
            )
            return None

        best = candidates[0]
        logger.info(
            f"Optimal appointment for service {criteria.service_id}: {best.doctor_name} "
            f"{best.date} {best.start_time} score={best.composite_score:.3f} "
            f"({score_label(best.composite_score)})"
        )
        return best
