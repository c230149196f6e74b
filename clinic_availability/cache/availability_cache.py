"""
Availability memoization cache.

Short-lived, per-engine, in-memory. Identical queries inside the TTL reuse
the previous result instead of hitting the repository again. Writes
(bookings, cancellations) happen elsewhere; call invalidate() for the
organization when they do, or simply let the TTL expire.
"""

import logging
import time
from typing import Callable, Dict, Optional, Tuple

from clinic_availability.models.availability import DayAvailability

logger = logging.getLogger(__name__)

CachedDays = Dict[str, DayAvailability]


class AvailabilityCache:
    """TTL cache keyed by the full query signature."""

    def __init__(
        self,
        ttl_seconds: int = 300,
        max_entries: int = 512,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            ttl_seconds: How long a computed result stays valid (default 5 minutes)
            max_entries: Upper bound on stored results; the soonest to expire is evicted first
            clock: Monotonic time source, injectable for tests
        """
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: Dict[str, Tuple[str, CachedDays, float]] = {}  # {key: (org_id, days, expires_at)}
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[CachedDays]:
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None

        _, days, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            self.misses += 1
            return None

        self.hits += 1
        logger.debug(f"Availability cache hit for {key}")
        return {date: day.model_copy(deep=True) for date, day in days.items()}

    def set(self, key: str, organization_id: str, days: CachedDays):
        now = self._clock()
        self._prune(now)
        self._entries.pop(key, None)

        while self._entries and len(self._entries) >= self.max_entries:
            oldest = min(self._entries, key=lambda k: self._entries[k][2])
            del self._entries[oldest]
            logger.debug(f"Availability cache full, evicted {oldest}")

        snapshot = {date: day.model_copy(deep=True) for date, day in days.items()}
        self._entries[key] = (organization_id, snapshot, now + self.ttl_seconds)

    def _prune(self, now: float) -> int:
        expired = [key for key, (_, _, expires_at) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def invalidate(self, organization_id: str) -> int:
        """Drop every cached result for one organization. Returns how many."""
        stale = [key for key, (org_id, _, _) in self._entries.items() if org_id == organization_id]
        for key in stale:
            del self._entries[key]
        if stale:
            logger.info(f"Invalidated {len(stale)} cached availability results for {organization_id}")
        return len(stale)

    def clear(self):
        self._entries.clear()

    def stats(self) -> Dict[str, object]:
        return {
            "size": len(self._entries),
            "hits": self.hits,
            "misses": self.misses,
            "keys": list(self._entries.keys()),
        }
