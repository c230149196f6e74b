"""
Monitoring primitives for availability queries.

Everything here is an ordinary object owned by the caller. Nothing is a
module-level singleton, so two engines in one process (or two tests)
never see each other's state.

- TransformationLog: bounded audit trail of data transformations
- CancellationToken: cooperative cancellation for range queries
- ActiveQueryRegistry: in-flight queries by signature, to cancel them and
  to spot runaway polling
"""

import asyncio
import logging
import time
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List, Optional

logger = logging.getLogger(__name__)

SENSITIVE_FIELDS = ("password", "token", "secret", "key")


@dataclass
class TransformationLogEntry:
    """One audited transformation."""
    id: str
    timestamp: str
    component: str
    operation: str
    input_summary: Any
    output_summary: Any
    rules_applied: List[str] = field(default_factory=list)
    duration_ms: float = 0.0


class TransformationLog:
    """
    Bounded in-memory audit trail.

    Disabling the log only stops recording; callers that validate data
    still validate it.
    """

    def __init__(self, max_entries: int = 1000, enabled: bool = True):
        self.enabled = enabled
        self._entries: Deque[TransformationLogEntry] = deque(maxlen=max_entries)

    def record(
        self,
        component: str,
        operation: str,
        input_summary: Any,
        output_summary: Any,
        rules_applied: Optional[List[str]] = None,
        duration_ms: float = 0.0,
    ) -> Optional[str]:
        """
        Record a transformation.

        Returns:
            Entry id, or None when logging is disabled
        """
        if not self.enabled:
            return None

        entry = TransformationLogEntry(
            id=uuid.uuid4().hex,
            timestamp=datetime.now(timezone.utc).isoformat(),
            component=component,
            operation=operation,
            input_summary=_sanitize(input_summary),
            output_summary=_sanitize(output_summary),
            rules_applied=list(rules_applied or []),
            duration_ms=duration_ms,
        )
        self._entries.append(entry)

        logger.debug(
            f"Transformation [{component}] {operation}: "
            f"in={entry.input_summary} out={entry.output_summary} rules={entry.rules_applied}"
        )
        return entry.id

    def entries(self, component: Optional[str] = None, limit: int = 50) -> List[TransformationLogEntry]:
        """Most recent entries, optionally for one component."""
        items = [e for e in self._entries if component is None or e.component == component]
        return items[-limit:] if limit else items

    def clear(self):
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def _sanitize(data: Any) -> Any:
    if not isinstance(data, dict):
        return data
    return {
        k: "[REDACTED]" if any(s in str(k).lower() for s in SENSITIVE_FIELDS) else v
        for k, v in data.items()
    }


class CancellationToken:
    """Cooperative cancellation flag checked between dates."""

    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


@dataclass
class ActiveQuery:
    signature: str
    organization_id: str
    token: CancellationToken
    started_at: float


class ActiveQueryRegistry:
    """
    Tracks in-flight availability queries.

    A client that navigates away can cancel its query by signature. A
    signature registered more than ``max_duplicates`` times at once usually
    means a component is re-polling in a loop; that is logged as a warning.
    """

    def __init__(self, max_duplicates: int = 3, clock=time.monotonic):
        self.max_duplicates = max_duplicates
        self._clock = clock
        self._queries: Dict[str, List[ActiveQuery]] = {}

    def register(self, signature: str, organization_id: str) -> CancellationToken:
        """Register a query and hand back its cancellation token."""
        token = CancellationToken()
        running = self._queries.setdefault(signature, [])
        running.append(ActiveQuery(signature, organization_id, token, self._clock()))

        if len(running) > self.max_duplicates:
            logger.warning(
                f"{len(running)} identical availability queries in flight for "
                f"organization {organization_id}; possible polling loop"
            )
        return token

    def unregister(self, signature: str, token: CancellationToken):
        running = self._queries.get(signature, [])
        self._queries[signature] = [q for q in running if q.token is not token]
        if not self._queries[signature]:
            del self._queries[signature]

    def cancel(self, signature: str) -> int:
        """Cancel every in-flight query with this signature. Returns how many."""
        running = self._queries.get(signature, [])
        for query in running:
            query.token.cancel()
        if running:
            logger.info(f"Cancelled {len(running)} availability queries for {signature}")
        return len(running)

    def cancel_organization(self, organization_id: str) -> int:
        count = 0
        for running in self._queries.values():
            for query in running:
                if query.organization_id == organization_id:
                    query.token.cancel()
                    count += 1
        return count

    def active_count(self, signature: Optional[str] = None) -> int:
        if signature is not None:
            return len(self._queries.get(signature, []))
        return sum(len(running) for running in self._queries.values())

    def snapshot(self) -> List[Dict[str, Any]]:
        now = self._clock()
        return [
            {
                "signature": q.signature,
                "organization_id": q.organization_id,
                "age_seconds": round(now - q.started_at, 3),
                "cancelled": q.token.cancelled,
            }
            for running in self._queries.values()
            for q in running
        ]
