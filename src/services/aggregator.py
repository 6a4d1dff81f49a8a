"""
Event aggregation.

Merges the household, personal and shared source lists into one list in
stable source order. A failed source is reported, not hidden: the result
says which sources are unknown so the caller can show a degraded-data
notice instead of an empty calendar.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence
from uuid import UUID

from src.services.event_types import CalendarEvent, EventSource

logger = logging.getLogger(__name__)

SOURCE_ORDER = (EventSource.HOUSEHOLD, EventSource.PERSONAL, EventSource.SHARED)


@dataclass
class SourceResult:
    """Outcome of reading one event source."""

    source: EventSource
    events: list[CalendarEvent] = field(default_factory=list)
    error: Optional[Exception] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass
class AggregatedEvents:
    """Merged events plus the sources that could not be read."""

    events: list[CalendarEvent]
    failed_sources: list[EventSource] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def is_partial(self) -> bool:
        return bool(self.failed_sources)


def aggregate_events(results: Iterable[SourceResult]) -> AggregatedEvents:
    """
    Merge per-source results into one list.

    Order is source order (household, personal, shared) and then each
    source's own fetch order. The first record for an (owning table, id)
    key wins; with exclusive ownership duplicates only arise if one source
    is passed twice.

    Args:
        results: One SourceResult per source, in any order

    Returns:
        AggregatedEvents
    """
    by_source: dict[EventSource, SourceResult] = {}
    for result in results:
        by_source.setdefault(result.source, result)

    events: list[CalendarEvent] = []
    seen: set[tuple[str, str]] = set()
    failed: list[EventSource] = []
    errors: dict[str, str] = {}

    for source in SOURCE_ORDER:
        result = by_source.get(source)
        if result is None:
            continue
        if result.failed:
            failed.append(source)
            errors[source.value] = str(result.error)
            logger.warning(f"Event source '{source.value}' failed; showing partial calendar: {result.error}")
            continue
        for event in result.events:
            if event.key in seen:
                continue
            seen.add(event.key)
            events.append(event)

    return AggregatedEvents(events=events, failed_sources=failed, errors=errors)


def matches_people(event: CalendarEvent, selected_ids: set[str]) -> bool:
    """
    Person-filter predicate.

    Household events always match: they are never hidden by a person
    filter, even when assigned to someone outside the selection.
    """
    if event.is_household_event:
        return True
    candidates = (
        event.assigned_to,
        event.assigned_to_child,
        event.assigned_to_member,
        event.user_id,
    )
    return any(candidate in selected_ids for candidate in candidates if candidate)


def _canonical_id(person_id) -> str:
    """Lowercase hyphenated form for UUIDs; other ids pass through trimmed."""
    text = str(person_id).strip()
    try:
        return str(UUID(text))
    except ValueError:
        return text


def filter_events_by_people(
    events: Sequence[CalendarEvent],
    selected_ids: Optional[Iterable[str]],
) -> list[CalendarEvent]:
    """
    Filter events to the selected people.

    Args:
        events: Merged events
        selected_ids: Selected member/child ids; empty or None keeps everything

    Returns:
        Filtered events in their original order
    """
    selected = {_canonical_id(person_id) for person_id in (selected_ids or [])}
    selected.discard("")
    if not selected:
        return list(events)
    return [event for event in events if matches_people(event, selected)]
