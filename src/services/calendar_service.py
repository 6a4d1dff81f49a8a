"""
Calendar service - the facade the API layer talks to.

Reads go through a per-source cache keyed by (source, user, household);
every successful write invalidates the whole cache so the next read sees
the change. Manual refreshes are throttled per (user, household).
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Generic, Iterable, Optional, TypeVar, Union

from sqlalchemy.orm import Session

from src.config import Settings, get_settings
from src.services import mutations
from src.services.aggregator import (
    SOURCE_ORDER,
    AggregatedEvents,
    SourceResult,
    aggregate_events,
    filter_events_by_people,
)
from src.services.event_cache import EventCache, RefreshThrottle
from src.services.event_types import (
    CalendarContext,
    CalendarEvent,
    EventFormValues,
    EventKind,
    EventSource,
)
from src.services.exceptions import EventFetchError, EventSourceError
from src.services.fetchers import DEFAULT_FETCHERS, Fetcher
from src.services.projection import (
    MonthProjection,
    TimeGridProjection,
    project_day,
    project_month,
    project_week,
)

logger = logging.getLogger(__name__)

# Singleton instance
_calendar_service: Optional["CalendarService"] = None

P = TypeVar("P", MonthProjection, TimeGridProjection)


@dataclass
class RefreshOutcome:
    """Result of a manual refresh request."""

    refreshed: bool
    retry_after_seconds: float
    events: AggregatedEvents


@dataclass
class CalendarView(Generic[P]):
    """A projection plus the aggregation status it was built from."""

    projection: P
    events: AggregatedEvents


class CalendarService:
    """
    Event loading, projection and mutation for one process.

    Fetchers, cache and throttle are injectable so tests can count fetches
    and drive the clock.
    """

    def __init__(
        self,
        fetchers: Optional[dict[EventSource, Fetcher]] = None,
        cache: Optional[EventCache] = None,
        throttle: Optional[RefreshThrottle] = None,
        settings: Optional[Settings] = None,
    ):
        self._settings = settings or get_settings()
        self._fetchers = dict(fetchers or DEFAULT_FETCHERS)
        self._cache = cache or EventCache(ttl_seconds=self._settings.event_cache_ttl_seconds)
        self._throttle = throttle or RefreshThrottle(
            min_interval_seconds=self._settings.min_refresh_interval_seconds
        )

    @property
    def cache(self) -> EventCache:
        return self._cache

    @property
    def throttle(self) -> RefreshThrottle:
        return self._throttle

    # =========================================================================
    # Reads
    # =========================================================================

    @staticmethod
    def _cache_key(source: EventSource, context: CalendarContext) -> tuple:
        return (source.value, context.user_id, context.household_id)

    def _sources_for(self, context: CalendarContext) -> list[EventSource]:
        """Sources worth reading for this individual, in source order."""
        sources = []
        for source in SOURCE_ORDER:
            if source not in self._fetchers:
                continue
            if source != EventSource.PERSONAL and not context.has_household:
                continue
            sources.append(source)
        return sources

    def _read_source(
        self,
        session: Session,
        context: CalendarContext,
        source: EventSource,
        force: bool = False,
    ) -> SourceResult:
        key = self._cache_key(source, context)
        if not force:
            cached = self._cache.get(key)
            if cached is not None:
                return SourceResult(source=source, events=cached)

        try:
            events = self._fetchers[source](session, context)
        except EventFetchError as e:
            # Failures are not cached; the next read retries the source
            return SourceResult(source=source, error=e)

        self._cache.set(key, events)
        return SourceResult(source=source, events=events)

    def load_events(
        self,
        session: Session,
        context: CalendarContext,
        people: Optional[Iterable[str]] = None,
    ) -> AggregatedEvents:
        """
        Load the merged event list for an individual.

        Args:
            session: Database session
            context: Acting individual and household
            people: Optional person filter (member or child ids)

        Returns:
            AggregatedEvents; is_partial is set when some sources failed

        Raises:
            EventSourceError: If every attempted source failed
        """
        return self._load(session, context, people)

    def _load(
        self,
        session: Session,
        context: CalendarContext,
        people: Optional[Iterable[str]] = None,
        force: bool = False,
        cache_only: bool = False,
    ) -> AggregatedEvents:
        """
        Read and merge sources.

        force skips cached entries; cache_only never calls a fetcher and
        leaves out sources that have nothing cached.
        """
        sources = self._sources_for(context)
        if cache_only:
            results = []
            for source in sources:
                cached = self._cache.get(self._cache_key(source, context))
                if cached is not None:
                    results.append(SourceResult(source=source, events=cached))
        else:
            results = [self._read_source(session, context, source, force) for source in sources]
        aggregated = aggregate_events(results)

        if results and len(aggregated.failed_sources) == len(results):
            logger.error(f"All event sources failed for user {context.user_id}: {aggregated.errors}")
            raise EventSourceError("Unable to load calendar events", aggregated.errors)

        aggregated.events = filter_events_by_people(aggregated.events, people)
        return aggregated

    def refresh(
        self,
        session: Session,
        context: CalendarContext,
        people: Optional[Iterable[str]] = None,
    ) -> RefreshOutcome:
        """
        Re-fetch every source for the individual, unless throttled.

        A throttled refresh performs no forced fetch and returns the current
        data with refreshed=False. While another refresh for the same key is
        in flight, a throttled caller reads the cache only and never reaches
        the database.
        """
        key = (context.user_id, context.household_id)
        if not self._throttle.try_begin(key):
            return RefreshOutcome(
                refreshed=False,
                retry_after_seconds=self._throttle.seconds_until_allowed(key),
                events=self._load(session, context, people, cache_only=self._throttle.in_flight(key)),
            )

        try:
            # Entries are overwritten per source, never dropped first
            events = self._load(session, context, people, force=True)
        finally:
            self._throttle.finish(key)

        logger.info(f"Refreshed calendar for user {context.user_id}")
        return RefreshOutcome(refreshed=True, retry_after_seconds=0.0, events=events)

    # =========================================================================
    # Views
    # =========================================================================

    def month_view(
        self,
        session: Session,
        context: CalendarContext,
        anchor: date,
        people: Optional[Iterable[str]] = None,
        today: Optional[date] = None,
        now: Optional[datetime] = None,
    ) -> CalendarView[MonthProjection]:
        events = self.load_events(session, context, people)
        projection = project_month(
            events.events,
            anchor,
            max_visible=self._settings.month_max_visible_events,
            today=today,
            now=now,
            display_tz=self._settings.timezone,
        )
        return CalendarView(projection=projection, events=events)

    def week_view(
        self,
        session: Session,
        context: CalendarContext,
        anchor: date,
        people: Optional[Iterable[str]] = None,
        today: Optional[date] = None,
        now: Optional[datetime] = None,
    ) -> CalendarView[TimeGridProjection]:
        events = self.load_events(session, context, people)
        projection = project_week(
            events.events,
            anchor,
            hour_height_px=self._settings.hour_height_px,
            min_block_minutes=self._settings.min_event_block_minutes,
            today=today,
            now=now,
            display_tz=self._settings.timezone,
        )
        return CalendarView(projection=projection, events=events)

    def day_view(
        self,
        session: Session,
        context: CalendarContext,
        anchor: date,
        people: Optional[Iterable[str]] = None,
        today: Optional[date] = None,
        now: Optional[datetime] = None,
    ) -> CalendarView[TimeGridProjection]:
        events = self.load_events(session, context, people)
        projection = project_day(
            events.events,
            anchor,
            hour_height_px=self._settings.hour_height_px,
            min_block_minutes=self._settings.min_event_block_minutes,
            today=today,
            now=now,
            display_tz=self._settings.timezone,
        )
        return CalendarView(projection=projection, events=events)

    # =========================================================================
    # Writes
    # =========================================================================

    def get_event(
        self,
        session: Session,
        context: CalendarContext,
        kind: EventKind,
        event_id: str,
    ) -> CalendarEvent:
        return mutations.get_event(session, context, kind, event_id)

    def create_event(
        self,
        session: Session,
        context: CalendarContext,
        values: EventFormValues,
    ) -> CalendarEvent:
        """Create an event, then invalidate every cached source."""
        event = mutations.create_event(session, context, values)
        self._cache.invalidate_all()
        return event

    def update_event(
        self,
        session: Session,
        context: CalendarContext,
        event: CalendarEvent,
    ) -> CalendarEvent:
        """Update an event in its owning table, then invalidate every cached source."""
        updated = mutations.update_event(session, context, event)
        self._cache.invalidate_all()
        return updated

    def delete_event(
        self,
        session: Session,
        context: CalendarContext,
        event: Union[CalendarEvent, tuple[EventKind, str]],
    ) -> None:
        """Delete an event, then invalidate every cached source."""
        mutations.delete_event(session, context, event)
        self._cache.invalidate_all()


def get_calendar_service() -> CalendarService:
    """
    Get the calendar service singleton.

    Returns:
        CalendarService instance configured from settings
    """
    global _calendar_service

    if _calendar_service is None:
        _calendar_service = CalendarService()
        logger.info("Calendar service initialized")

    return _calendar_service


def reset_calendar_service():
    """Reset the calendar service singleton (useful for testing)."""
    global _calendar_service
    _calendar_service = None
