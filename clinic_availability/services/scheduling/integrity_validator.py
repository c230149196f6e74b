"""
Data Integrity Validator

Final consistency pass over computed availability before it leaves the
engine. Problems come back as a ValidationResult; nothing is raised, so the
caller decides whether to serve with a warning or reject.

Error codes:
- AVAILABLE_SLOTS_MISMATCH: available_slots != count of available slots
- IMPOSSIBLE_SLOT_COUNT: available_slots > total_slots
- INVALID_DATE_FORMAT: date is not a real YYYY-MM-DD date
- TOTAL_SLOTS_MISMATCH: total_slots != len(slots)
- DATE_DISPLACEMENT_DETECTED: the day came back shifted from the date it claims

Warnings (NON_CONSECUTIVE_DATES, AVAILABILITY_LEVEL_MISMATCH,
MOCK_DATA_DETECTED, SLOW_VALIDATION) never make the result invalid.
"""

import logging
import time
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from clinic_availability.models.availability import (
    AvailabilityLevel,
    DayAvailability,
    ValidationIssue,
    ValidationMetadata,
    ValidationResult,
    ValidationWarning,
)
from clinic_availability.services.monitoring import TransformationLog
from clinic_availability.utils import date_utils

logger = logging.getLogger(__name__)

COMPONENT = "DataIntegrityValidator"
SLOW_VALIDATION_MS = 100


class DataIntegrityValidator:
    """Validates DayAvailability collections for internal consistency."""

    def __init__(self, transformation_log: Optional[TransformationLog] = None):
        self.transformation_log = transformation_log or TransformationLog()

    def validate_availability_data(
        self,
        days: Sequence[DayAvailability],
        source_label: str,
        data_source: str = "api",
    ) -> ValidationResult:
        """
        Validate availability data.

        Args:
            days: Per-date availability, in the order it will be served
            source_label: Caller name, carried into every issue
            data_source: 'api', 'cache' or 'mock'

        Returns:
            ValidationResult with errors, warnings and metadata
        """
        started = time.perf_counter()
        errors: List[ValidationIssue] = []
        warnings: List[ValidationWarning] = []
        checks: List[str] = []

        checks.append("DATE_FORMAT_VALIDATION")
        for day in days:
            self._check_date(day, source_label, errors)

        checks.append("SLOT_COUNT_CONSISTENCY")
        for day in days:
            self._check_counts(day, source_label, errors)

        checks.append("AVAILABILITY_LEVEL_CONSISTENCY")
        for day in days:
            expected = AvailabilityLevel.for_count(day.available_slots)
            if day.availability_level != expected:
                warnings.append(ValidationWarning(
                    category="UX",
                    code="AVAILABILITY_LEVEL_MISMATCH",
                    message=f"Availability level mismatch for {day.date}",
                    date=day.date,
                    component=source_label,
                    recommendation=(
                        f"Expected {expected.value} for {day.available_slots} available slots, "
                        f"got {day.availability_level.value}"
                    ),
                ))

        checks.append("DATE_SEQUENCE_VALIDATION")
        self._check_sequence(days, source_label, warnings)

        checks.append("MOCK_DATA_DETECTION")
        if data_source == "mock" or self._looks_like_mock(days):
            warnings.append(ValidationWarning(
                category="DATA_QUALITY",
                code="MOCK_DATA_DETECTED",
                message="Mock data is being used instead of real schedule data",
                component=source_label,
                recommendation="Investigate repository connectivity",
            ))

        checks.append("PERFORMANCE_VALIDATION")
        duration_ms = (time.perf_counter() - started) * 1000
        if duration_ms > SLOW_VALIDATION_MS:
            warnings.append(ValidationWarning(
                category="PERFORMANCE",
                code="SLOW_VALIDATION",
                message=f"Validation took {duration_ms:.1f}ms",
                component=source_label,
                recommendation="Narrow the requested date range",
            ))

        result = ValidationResult(
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            metadata=ValidationMetadata(
                timestamp=datetime.now(timezone.utc).isoformat(),
                component=source_label,
                data_source=data_source,
                record_count=len(days),
                validation_duration_ms=round(duration_ms, 3),
                checks_performed=checks,
            ),
        )

        self.transformation_log.record(
            component=COMPONENT,
            operation="validate_availability_data",
            input_summary={
                "source": source_label,
                "data_source": data_source,
                "dates": [day.date for day in days[:3]],
                "record_count": len(days),
            },
            output_summary={
                "is_valid": result.is_valid,
                "errors": result.error_codes,
                "warnings": [w.code for w in warnings],
            },
            rules_applied=checks,
            duration_ms=round(duration_ms, 3),
        )

        if errors:
            logger.error(
                f"Availability integrity check failed for {source_label}: "
                f"{', '.join(f'{e.code}@{e.date}' for e in errors)}"
            )
        elif warnings:
            logger.warning(
                f"Availability integrity warnings for {source_label}: "
                f"{', '.join(w.code for w in warnings)}"
            )

        return result

    @staticmethod
    def _check_date(day: DayAvailability, component: str, errors: List[ValidationIssue]):
        result = date_utils.validate_and_normalize(day.date, component)
        if not result.is_valid:
            errors.append(ValidationIssue(
                severity="CRITICAL",
                code="INVALID_DATE_FORMAT",
                message=f"Invalid date format: {day.date}",
                date=day.date,
                component=component,
                expected="YYYY-MM-DD",
                actual=day.date,
                impact="Date calculations will fail or shift the displayed day",
            ))
            return

        for slot in day.slots:
            if slot.date == day.date:
                continue
            check = date_utils.validate_and_normalize(day.date, component, processed=slot.date)
            if check.displacement_detected:
                errors.append(ValidationIssue(
                    severity="HIGH",
                    code="DATE_DISPLACEMENT_DETECTED",
                    message=f"Slots generated for {slot.date} are served under {day.date}",
                    date=day.date,
                    component=component,
                    expected=day.date,
                    actual=slot.date,
                    impact="Users will book a different day than the one shown",
                ))
                break

    @staticmethod
    def _check_counts(day: DayAvailability, component: str, errors: List[ValidationIssue]):
        actual_available = sum(1 for slot in day.slots if slot.available)
        actual_total = len(day.slots)

        if day.available_slots != actual_available:
            errors.append(ValidationIssue(
                severity="HIGH",
                code="AVAILABLE_SLOTS_MISMATCH",
                message=f"Available slots count mismatch for {day.date}",
                date=day.date,
                component=component,
                expected=actual_available,
                actual=day.available_slots,
                impact="Users will see incorrect availability information",
            ))

        if day.total_slots != actual_total:
            errors.append(ValidationIssue(
                severity="HIGH",
                code="TOTAL_SLOTS_MISMATCH",
                message=f"Total slots count mismatch for {day.date}",
                date=day.date,
                component=component,
                expected=actual_total,
                actual=day.total_slots,
                impact="Calendar summaries disagree with the slot list",
            ))

        if day.available_slots > day.total_slots:
            errors.append(ValidationIssue(
                severity="CRITICAL",
                code="IMPOSSIBLE_SLOT_COUNT",
                message=(
                    f"Available slots ({day.available_slots}) exceed total slots "
                    f"({day.total_slots}) for {day.date}"
                ),
                date=day.date,
                component=component,
                expected=f"available_slots <= {day.total_slots}",
                actual=day.available_slots,
                impact="Data corruption detected",
            ))

    @staticmethod
    def _looks_like_mock(days: Sequence[DayAvailability]) -> bool:
        """
        Heuristics for placeholder data.

        Either every day reports slots but carries no slot list, or the range
        follows the fixed demo template of 5 slots per weekday and 2 per
        weekend day.
        """
        if not days:
            return False

        if all(day.total_slots > 0 and not day.slots for day in days):
            return True

        weekdays = [day for day in days if not day.is_weekend]
        weekends = [day for day in days if day.is_weekend]
        return bool(weekdays and weekends) and (
            all(day.total_slots == 5 for day in weekdays)
            and all(day.total_slots == 2 for day in weekends)
        )

    @staticmethod
    def _check_sequence(days: Sequence[DayAvailability], component: str, warnings: List[ValidationWarning]):
        for previous, current in zip(days, days[1:]):
            if not (date_utils.validate_and_normalize(previous.date).is_valid
                    and date_utils.validate_and_normalize(current.date).is_valid):
                continue
            if date_utils.days_difference(previous.date, current.date) != 1:
                warnings.append(ValidationWarning(
                    category="DATA_QUALITY",
                    code="NON_CONSECUTIVE_DATES",
                    message=f"Non-consecutive dates detected: {previous.date} -> {current.date}",
                    date=current.date,
                    component=component,
                    recommendation="Verify date range generation",
                ))
