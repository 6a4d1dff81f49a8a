"""
Read-through cache for event sources and manual refresh backpressure.

EventCache keeps each source's last successful fetch for a short freshness
window. Any write invalidates everything; entries are never patched.

RefreshThrottle guards the manual refresh path: a refresh is refused while
one is in flight for the same key, or when the last one began less than the
minimum interval ago. A refresh overwrites entries as each source comes back
instead of dropping them first, so readers never see a hole mid-refresh.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Hashable, Optional

from src.services.event_types import CalendarEvent

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass
class _CacheEntry:
    events: list[CalendarEvent]
    stored_at: float


class EventCache:
    """Thread-safe TTL cache of per-source event lists."""

    def __init__(self, ttl_seconds: float = 120.0, clock: Clock = time.monotonic):
        """
        Initialize cache.

        Args:
            ttl_seconds: Freshness window for each entry
            clock: Monotonic time source (injectable for tests)
        """
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[Hashable, _CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Optional[list[CalendarEvent]]:
        """Return the cached events if still fresh, else None."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() - entry.stored_at >= self.ttl_seconds:
                del self._entries[key]
                return None
            return list(entry.events)

    def set(self, key: Hashable, events: list[CalendarEvent]) -> None:
        with self._lock:
            self._entries[key] = _CacheEntry(events=list(events), stored_at=self._clock())

    def invalidate_all(self) -> None:
        """Drop every entry for every household and individual."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.debug(f"Invalidated {count} cached event sources")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class RefreshThrottle:
    """
    Minimum-interval plus re-entrancy guard for manual refreshes.

    Usage:
        if throttle.try_begin(key):
            try:
                ...refetch...
            finally:
                throttle.finish(key)
    """

    def __init__(self, min_interval_seconds: float = 10.0, clock: Clock = time.monotonic):
        self.min_interval_seconds = min_interval_seconds
        self._clock = clock
        self._last_started: dict[Hashable, float] = {}
        self._in_flight: set[Hashable] = set()
        self._lock = threading.Lock()

    def try_begin(self, key: Hashable) -> bool:
        """
        Claim a refresh slot for a key.

        Returns:
            True if the caller may refresh now, False if throttled
        """
        with self._lock:
            if key in self._in_flight:
                logger.debug(f"Refresh skipped for {key}: already in flight")
                return False
            now = self._clock()
            last = self._last_started.get(key)
            if last is not None and now - last < self.min_interval_seconds:
                logger.debug(
                    f"Refresh skipped for {key}: {now - last:.1f}s since last "
                    f"(minimum {self.min_interval_seconds:.0f}s)"
                )
                return False
            self._last_started[key] = now
            self._in_flight.add(key)
            return True

    def finish(self, key: Hashable) -> None:
        with self._lock:
            self._in_flight.discard(key)

    def in_flight(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._in_flight

    def seconds_until_allowed(self, key: Hashable) -> float:
        """Time left before the next refresh for a key is admitted."""
        with self._lock:
            last = self._last_started.get(key)
            if last is None:
                return 0.0
            return max(self.min_interval_seconds - (self._clock() - last), 0.0)
