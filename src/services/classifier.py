"""
Event classification.

Derives, per event, whether it is all-day, whether it spans several
calendar days, and how long it lasts. All-day is a heuristic on clock
times; nothing in storage flags it.

Uses python-dateutil for ISO 8601 parsing and timezone conversion.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from dateutil import tz
from dateutil.parser import isoparse

from src.config import get_settings
from src.services.event_types import CalendarEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EventClassification:
    """Derived timing facts about one event. Not persisted."""

    start: datetime
    end: datetime
    is_all_day: bool
    is_multi_day: bool
    duration_days: int
    duration_minutes: int
    parse_failed: bool = False

    @property
    def spans_days(self) -> bool:
        """Belongs in the all-day lane of week/day views."""
        return self.is_all_day or self.is_multi_day

    def covers(self, day) -> bool:
        """Whether a calendar day falls within [start.date, end.date]."""
        return self.start.date() <= day <= max(self.end.date(), self.start.date())


def parse_event_datetime(value: str, display_tz: Optional[str] = None) -> datetime:
    """
    Parse stored ISO 8601 text into a naive wall-clock datetime.

    Offset-bearing values are converted into the display timezone first.

    Args:
        value: Stored date text (e.g. '2024-03-01T09:30:00' or '...+00:00')
        display_tz: IANA timezone name (defaults to configured timezone)

    Returns:
        Naive datetime in display wall-clock time

    Raises:
        ValueError: If the text is not ISO 8601
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Empty or non-text date: {value!r}")

    parsed = isoparse(value.strip())
    if parsed.tzinfo is not None:
        zone = tz.gettz(display_tz or get_settings().timezone)
        parsed = parsed.astimezone(zone).replace(tzinfo=None)
    return parsed


def is_all_day_span(start: datetime, end: datetime) -> bool:
    """
    Heuristic all-day test on clock times.

    Start at 00:00 and end at 23:59 (any seconds), or end at 00:00 on the
    same or a later day. A zero-length midnight event counts as all-day.
    """
    if (start.hour, start.minute) != (0, 0):
        return False
    if (end.hour, end.minute) == (23, 59):
        return True
    return (end.hour, end.minute) == (0, 0) and end.date() >= start.date()


def classify_times(start: datetime, end: datetime) -> EventClassification:
    """Classify an already-parsed start/end pair."""
    is_multi_day = end.date() > start.date()
    duration_days = (end.date() - start.date()).days + 1 if is_multi_day else 1
    duration_minutes = max(int((end - start).total_seconds() // 60), 0)

    return EventClassification(
        start=start,
        end=end,
        is_all_day=is_all_day_span(start, end),
        is_multi_day=is_multi_day,
        duration_days=duration_days,
        duration_minutes=duration_minutes,
    )


def classify_event(
    event: CalendarEvent,
    now: Optional[datetime] = None,
    display_tz: Optional[str] = None,
) -> EventClassification:
    """
    Classify an event for rendering.

    A malformed date never raises: the error is logged and the event is
    anchored at `now` as a single-day timed event so it still renders.

    Args:
        event: Event to classify
        now: Fallback anchor for unparseable dates (default: current time)
        display_tz: IANA timezone for offset-bearing dates

    Returns:
        EventClassification
    """
    try:
        start = parse_event_datetime(event.start_date, display_tz)
        end = parse_event_datetime(event.end_date, display_tz)
    except (ValueError, OverflowError, TypeError) as e:
        logger.error(
            f"Unparseable dates on {event.kind} event {event.id} "
            f"({event.start_date!r} - {event.end_date!r}): {e}"
        )
        anchor = (now or datetime.now()).replace(second=0, microsecond=0)
        return EventClassification(
            start=anchor,
            end=anchor,
            is_all_day=False,
            is_multi_day=False,
            duration_days=1,
            duration_minutes=0,
            parse_failed=True,
        )

    return classify_times(start, end)


def display_minutes(classification: EventClassification, minimum: int = 20) -> int:
    """Duration used for week-view block height, floored to a minimum block."""
    return max(classification.duration_minutes, minimum)


@dataclass(frozen=True)
class ClassifiedEvent:
    """An event paired with its classification (one per recurrence instance)."""

    event: CalendarEvent
    classification: EventClassification
    recurrence_id: Optional[str] = None

    @property
    def start(self) -> datetime:
        return self.classification.start

    @property
    def end(self) -> datetime:
        return self.classification.end

    @property
    def sort_key(self) -> tuple:
        """Day-spanning events first, then by start time, then title."""
        return (not self.classification.spans_days, self.start, self.event.title.lower())


def classify_events(
    events,
    now: Optional[datetime] = None,
    display_tz: Optional[str] = None,
) -> list[ClassifiedEvent]:
    """Classify every event; one bad event never affects the others."""
    return [
        ClassifiedEvent(event=event, classification=classify_event(event, now, display_tz))
        for event in events
    ]
