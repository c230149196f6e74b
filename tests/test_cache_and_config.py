"""
Tests for the availability cache, configuration and clinic clock
"""

from datetime import datetime, timezone

from clinic_availability.cache.availability_cache import AvailabilityCache
from clinic_availability.config import (
    DEFAULT_AVAILABILITY_CONFIG,
    AvailabilityConfig,
    get_availability_config,
)
from clinic_availability.utils.timezone_utils import clinic_now, resolve_timezone, today_in_timezone

from tests.fixtures import MONDAY, TUESDAY, fixed_clock, make_day, make_slot


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


def sample_days():
    return {MONDAY: make_day(MONDAY, [make_slot(MONDAY, "09:00")])}


class TestAvailabilityCache:
    """Test TTL memoization"""

    def test_hit_within_ttl(self):
        clock = FakeClock()
        cache = AvailabilityCache(ttl_seconds=300, clock=clock)
        cache.set("key", "org-1", sample_days())

        clock.now = 299
        assert cache.get("key")[MONDAY].total_slots == 1
        assert cache.stats()["hits"] == 1

    def test_expires_after_ttl(self):
        clock = FakeClock()
        cache = AvailabilityCache(ttl_seconds=300, clock=clock)
        cache.set("key", "org-1", sample_days())

        clock.now = 300
        assert cache.get("key") is None
        assert cache.stats()["size"] == 0
        assert cache.stats()["misses"] == 1

    def test_returns_copies(self):
        cache = AvailabilityCache()
        days = sample_days()
        cache.set("key", "org-1", days)

        days[MONDAY].slots.clear()
        cached = cache.get("key")
        cached[MONDAY].slots.clear()

        assert cache.get("key")[MONDAY].total_slots == 1
        assert len(cache.get("key")[MONDAY].slots) == 1

    def test_invalidate_by_organization(self):
        cache = AvailabilityCache()
        cache.set("a", "org-1", sample_days())
        cache.set("b", "org-1", {TUESDAY: make_day(TUESDAY, [])})
        cache.set("c", "org-2", sample_days())

        assert cache.invalidate("org-1") == 2
        assert cache.stats()["keys"] == ["c"]

    def test_set_prunes_expired_entries(self):
        clock = FakeClock()
        cache = AvailabilityCache(ttl_seconds=1, clock=clock)
        for i in range(100):
            cache.set(f"key-{i}", "org-1", sample_days())

        clock.now = 1000
        cache.set("fresh", "org-1", sample_days())

        assert cache.stats()["size"] == 1
        assert cache.stats()["keys"] == ["fresh"]

    def test_size_is_capped(self):
        clock = FakeClock()
        cache = AvailabilityCache(ttl_seconds=300, max_entries=3, clock=clock)
        for i in range(5):
            clock.now = i
            cache.set(f"key-{i}", "org-1", sample_days())

        assert cache.stats()["keys"] == ["key-2", "key-3", "key-4"]

    def test_overwriting_key_does_not_evict_others(self):
        cache = AvailabilityCache(max_entries=2)
        cache.set("a", "org-1", sample_days())
        cache.set("b", "org-1", sample_days())
        cache.set("a", "org-1", sample_days())

        assert sorted(cache.stats()["keys"]) == ["a", "b"]

    def test_clear(self):
        cache = AvailabilityCache()
        cache.set("a", "org-1", sample_days())
        cache.clear()
        assert cache.get("a") is None


class TestConfig:
    """Test configuration profiles"""

    def test_defaults(self):
        config = AvailabilityConfig()

        assert config.default_duration == 30
        assert (config.min_duration, config.max_duration) == (5, 480)
        assert config.minimum_notice_hours == 24
        assert config.cache_ttl_seconds == 300
        assert config.cache_max_entries == 512
        assert config.lookahead_days == 14
        assert config.quick_booking_days == 7
        assert not config.parallel_dates

    def test_environment_profiles(self):
        assert not get_availability_config("test").cache_enabled
        assert not get_availability_config("test").transformation_log_enabled
        assert not get_availability_config("development").cache_enabled
        assert get_availability_config() is DEFAULT_AVAILABILITY_CONFIG

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("AVAILABILITY_PARALLEL_DATES", "true")
        monkeypatch.setenv("AVAILABILITY_MAX_CONCURRENCY", "8")

        config = AvailabilityConfig.from_env()

        assert config.parallel_dates
        assert config.max_concurrency == 8


class TestClinicClock:
    """Test clinic-local now"""

    def test_utc(self):
        now = clinic_now("UTC", fixed_clock(2025, 6, 2, 8, 30))

        assert now.date == MONDAY
        assert now.minutes == 510

    def test_local_date_differs_from_utc(self):
        clock = fixed_clock(2025, 6, 2, 3, 0)

        assert today_in_timezone("America/Mexico_City", clock) == "2025-06-01"
        assert clinic_now("America/Mexico_City", clock).minutes == 21 * 60

    def test_naive_clock_is_treated_as_local(self):
        now = clinic_now("America/Mexico_City", lambda tz: datetime(2025, 6, 2, 23, 50))

        assert now.date == MONDAY
        assert now.minutes == 23 * 60 + 50

    def test_unknown_timezone_falls_back_to_utc(self):
        assert resolve_timezone("Mars/Olympus_Mons").key == "UTC"
        assert resolve_timezone(None).key == "UTC"

    def test_system_clock(self):
        before = datetime.now(timezone.utc)
        today = today_in_timezone("UTC")

        assert today in (
            f"{before.year:04d}-{before.month:02d}-{before.day:02d}",
            f"{datetime.now(timezone.utc):%Y-%m-%d}",
        )
