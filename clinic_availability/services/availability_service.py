"""
Availability Service

Computes bookable slots for an organization over a date range.

For every date in the range:
- fetch schedules, appointments and blocks from the repository
- generate per-doctor slots
- apply minimum-notice / advance-booking rules
- summarize into a DayAvailability whose counts come from its own slots

A failure on one date degrades that date to zero slots with a note; the
rest of the range is still served. The result is validated before it is
handed back, and identical queries within the cache TTL are memoized.
"""

import asyncio
import logging
import time
from typing import Dict, List, Optional, Set

from clinic_availability.cache.availability_cache import AvailabilityCache
from clinic_availability.config import AvailabilityConfig, DEFAULT_AVAILABILITY_CONFIG
from clinic_availability.models.availability import (
    AvailabilityQuery,
    AvailabilityReport,
    DayAvailability,
)
from clinic_availability.policies.booking_rules import BookingPolicy, bypass_for_role
from clinic_availability.services.monitoring import (
    ActiveQueryRegistry,
    CancellationToken,
    TransformationLog,
)
from clinic_availability.services.repository import AvailabilityRepository
from clinic_availability.services.scheduling.integrity_validator import DataIntegrityValidator
from clinic_availability.services.scheduling.slot_generator import SlotGenerator
from clinic_availability.utils import date_utils
from clinic_availability.utils.timezone_utils import ClinicMoment, Clock, clinic_now

logger = logging.getLogger(__name__)

COMPONENT = "AvailabilityService"


class AvailabilityService:
    """
    Availability aggregator.

    Stateless between calls apart from the memoization cache it owns.
    Every collaborator is injectable, so several instances can coexist
    (e.g. one per test) without sharing anything.
    """

    def __init__(
        self,
        repository: AvailabilityRepository,
        config: Optional[AvailabilityConfig] = None,
        cache: Optional[AvailabilityCache] = None,
        registry: Optional[ActiveQueryRegistry] = None,
        transformation_log: Optional[TransformationLog] = None,
        slot_generator: Optional[SlotGenerator] = None,
        clock: Optional[Clock] = None,
    ):
        """
        Args:
            repository: Read-only data access
            config: Engine configuration (defaults if not provided)
            cache: Memoization cache; created from config when omitted
            registry: Optional in-flight query registry owned by the caller
            transformation_log: Audit trail shared with the validator
            slot_generator: Slot generator; created from config when omitted
            clock: Wall clock override, used to pin "now" in tests
        """
        self.repository = repository
        self.config = config or DEFAULT_AVAILABILITY_CONFIG
        self.cache = cache or AvailabilityCache(
            ttl_seconds=self.config.cache_ttl_seconds,
            max_entries=self.config.cache_max_entries,
        )
        self.registry = registry
        self.transformation_log = transformation_log or TransformationLog(
            max_entries=self.config.transformation_log_max_entries,
            enabled=self.config.transformation_log_enabled,
        )
        self.validator = DataIntegrityValidator(self.transformation_log)
        self.slot_generator = slot_generator or SlotGenerator(
            self.config.min_duration, self.config.max_duration
        )
        self.clock = clock

    def now(self) -> ClinicMoment:
        return clinic_now(self.config.clinic_timezone, self.clock)

    def today(self) -> str:
        return self.now().date

    async def get_availability(
        self,
        query: AvailabilityQuery,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Dict[str, DayAvailability]:
        """
        Availability per date, keyed by YYYY-MM-DD in chronological order.

        Raises:
            InvalidDateFormat, InvalidDateValue, InvalidRange, InvalidDuration:
                the query itself is invalid
            RepositoryError: the service-doctor lookup failed before any
                date was computed
        """
        report = await self.get_availability_report(query, cancel_token)
        return report.days

    async def get_availability_report(
        self,
        query: AvailabilityQuery,
        cancel_token: Optional[CancellationToken] = None,
    ) -> AvailabilityReport:
        """
        Availability plus the integrity validation of the result.

        Args:
            query: Availability request
            cancel_token: Checked between dates; once cancelled the dates
                computed so far are returned and nothing is cached

        Returns:
            AvailabilityReport
        """
        started = time.perf_counter()

        # Keyed on the request as the caller built it, so registry.cancel() can use it
        signature = query.signature()
        if query.duration is None:
            query = query.model_copy(update={"duration": self.config.default_duration})

        self.slot_generator.validate_duration(query.duration)
        end_date = query.end_date or query.start_date
        dates = date_utils.generate_range(query.start_date, end_date)
        if self.config.cache_enabled:
            cached = self.cache.get(signature)
            if cached is not None:
                validation = self.validator.validate_availability_data(
                    list(cached.values()), COMPONENT, data_source="cache"
                )
                return AvailabilityReport(days=cached, validation=validation, from_cache=True)

        bypass = query.bypass_minimum_notice
        if bypass is None:
            bypass = bypass_for_role(
                query.user_role, query.use_standard_rules, self.config.privileged_roles
            )
        policy = BookingPolicy(
            minimum_notice_hours=self.config.minimum_notice_hours,
            bypass_minimum_notice=bypass,
            max_advance_booking_days=self.config.max_advance_booking_days,
        )
        now = self.now()

        # Failures here abort the whole query: nothing has been computed yet
        doctor_ids = None
        if query.service_id:
            doctor_ids = await self.repository.fetch_doctor_ids_for_service(
                query.organization_id, query.service_id
            )

        tokens = [t for t in (cancel_token,) if t is not None]
        registry_token = None
        if self.registry is not None:
            registry_token = self.registry.register(signature, query.organization_id)
            tokens.append(registry_token)

        try:
            if self.config.parallel_dates and len(dates) > 1:
                days = await self._compute_parallel(query, dates, doctor_ids, policy, now, tokens)
            else:
                days = await self._compute_sequential(query, dates, doctor_ids, policy, now, tokens)
        finally:
            if registry_token is not None:
                self.registry.unregister(signature, registry_token)

        cancelled = len(days) < len(dates)
        if cancelled:
            logger.info(
                f"Availability query cancelled after {len(days)}/{len(dates)} dates "
                f"for organization {query.organization_id}"
            )

        validation = self.validator.validate_availability_data(list(days.values()), COMPONENT)

        if self.config.cache_enabled and not cancelled:
            self.cache.set(signature, query.organization_id, days)

        duration_ms = round((time.perf_counter() - started) * 1000, 3)
        total = sum(day.total_slots for day in days.values())
        available = sum(day.available_slots for day in days.values())
        self.transformation_log.record(
            component=COMPONENT,
            operation="get_availability",
            input_summary={
                "organization_id": query.organization_id,
                "range": [query.start_date, end_date],
                "doctor_id": query.doctor_id,
                "service_id": query.service_id,
                "location_id": query.location_id,
                "duration": query.duration,
            },
            output_summary={"dates": len(days), "total_slots": total, "available_slots": available},
            rules_applied=self._rules_applied(query, policy),
            duration_ms=duration_ms,
        )

        logger.info(
            f"Availability for {query.organization_id} {query.start_date}..{end_date}: "
            f"{available}/{total} slots available across {len(days)} dates ({duration_ms}ms)"
        )

        return AvailabilityReport(days=days, validation=validation, cancelled=cancelled)

    async def get_available_start_times(
        self,
        organization_id: str,
        doctor_id: str,
        date: str,
        duration: Optional[int] = None,
        user_role: Optional[str] = None,
    ) -> List[str]:
        """
        Bookable start times (HH:MM) for one doctor on one date.

        Returns:
            Start times in ascending order
        """
        days = await self.get_availability(AvailabilityQuery(
            organization_id=organization_id,
            start_date=date,
            doctor_id=doctor_id,
            duration=duration,
            user_role=user_role,
        ))
        day = days.get(date)
        if day is None:
            return []
        return [slot.start_time for slot in day.slots if slot.available and slot.doctor_id == doctor_id]

    def invalidate(self, organization_id: str) -> int:
        """Forget memoized results after a booking or cancellation."""
        return self.cache.invalidate(organization_id)

    async def _compute_sequential(
        self,
        query: AvailabilityQuery,
        dates: List[str],
        doctor_ids: Optional[Set[str]],
        policy: BookingPolicy,
        now: ClinicMoment,
        tokens: List[CancellationToken],
    ) -> Dict[str, DayAvailability]:
        days: Dict[str, DayAvailability] = {}
        for date in dates:
            if any(token.cancelled for token in tokens):
                break
            days[date] = await self._compute_day_safely(query, date, doctor_ids, policy, now)
        return days

    async def _compute_parallel(
        self,
        query: AvailabilityQuery,
        dates: List[str],
        doctor_ids: Optional[Set[str]],
        policy: BookingPolicy,
        now: ClinicMoment,
        tokens: List[CancellationToken],
    ) -> Dict[str, DayAvailability]:
        semaphore = asyncio.Semaphore(max(1, self.config.max_concurrency))

        async def run(date: str) -> Optional[DayAvailability]:
            async with semaphore:
                if any(token.cancelled for token in tokens):
                    return None
                return await self._compute_day_safely(query, date, doctor_ids, policy, now)

        results = await asyncio.gather(*(run(date) for date in dates))

        # Keep the generated order; stop at the first date that was skipped
        days: Dict[str, DayAvailability] = {}
        for date, day in zip(dates, results):
            if day is None:
                break
            days[date] = day
        return days

    async def _compute_day_safely(
        self,
        query: AvailabilityQuery,
        date: str,
        doctor_ids: Optional[Set[str]],
        policy: BookingPolicy,
        now: ClinicMoment,
    ) -> DayAvailability:
        try:
            return await self._compute_day(query, date, doctor_ids, policy, now)
        except Exception as e:
            logger.error(
                f"Slot computation failed for {query.organization_id} on {date}: {e}",
                exc_info=True,
            )
            return DayAvailability.from_slots(
                date,
                [],
                today=now.date,
                locale=self.config.locale,
                note=f"Slot computation failed: {e}",
            )

    async def _compute_day(
        self,
        query: AvailabilityQuery,
        date: str,
        doctor_ids: Optional[Set[str]],
        policy: BookingPolicy,
        now: ClinicMoment,
    ) -> DayAvailability:
        schedules = await self.repository.fetch_doctor_schedules(
            query.organization_id, date_utils.day_of_week(date), query.doctor_id
        )

        if doctor_ids is not None:
            schedules = [s for s in schedules if s.doctor_id in doctor_ids]
        if query.location_id:
            schedules = [s for s in schedules if s.location_id == query.location_id]

        slots = []
        if schedules:
            appointments, blocks = await asyncio.gather(
                self.repository.fetch_appointments(query.organization_id, date, query.doctor_id),
                self.repository.fetch_availability_blocks(query.organization_id, date, query.doctor_id),
            )
            slots = self.slot_generator.generate_for_date(
                date, schedules, appointments, blocks, query.duration, query.service_id
            )

        slots, block_reason = policy.apply(date, slots, now)

        if not query.include_unavailable:
            slots = [slot for slot in slots if slot.available]

        return DayAvailability.from_slots(
            date,
            slots,
            today=now.date,
            locale=self.config.locale,
            block_reason=block_reason,
        )

    @staticmethod
    def _rules_applied(query: AvailabilityQuery, policy: BookingPolicy) -> List[str]:
        rules = ["block_precedence", "half_open_overlap"]
        rules.append("privileged_past_time" if policy.bypass_minimum_notice else "minimum_notice")
        if policy.max_advance_booking_days is not None:
            rules.append("max_advance_booking")
        if query.service_id:
            rules.append("service_filter")
        if query.location_id:
            rules.append("location_filter")
        if not query.include_unavailable:
            rules.append("available_only")
        return rules
