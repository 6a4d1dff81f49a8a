"""
Service layer for the Household Calendar.

Provides:
- Event source fetchers and aggregation (household, personal, shared)
- Event classification (all-day, multi-day, durations)
- Recurrence expansion (RRULE handling)
- Month, week and day view projection
- Event mutations routed to the owning table
- CalendarService facade with caching and refresh throttling
"""

from src.services.event_types import (
    CalendarContext,
    CalendarEvent,
    DisplayProfile,
    EventFormValues,
    EventSource,
    HouseholdCalendarEvent,
    PersonalCalendarEvent,
)

from src.services.exceptions import (
    CalendarError,
    EventFetchError,
    EventMutationError,
    EventNotFoundError,
    EventSourceError,
    EventStorageError,
)

from src.services.classifier import (
    ClassifiedEvent,
    EventClassification,
    classify_event,
    classify_events,
)

from src.services.recurrence import (
    RecurrenceInstance,
    expand_occurrences,
    expand_recurrence,
    validate_rrule,
)

from src.services.aggregator import (
    AggregatedEvents,
    aggregate_events,
    filter_events_by_people,
)

from src.services.projection import (
    CalendarCallbacks,
    HitTarget,
    dispatch_click,
    month_grid_days,
    project_day,
    project_month,
    project_week,
    step_anchor,
    today_anchor,
    week_days,
)

from src.services.calendar_service import (
    CalendarService,
    CalendarView,
    RefreshOutcome,
    get_calendar_service,
    reset_calendar_service,
)

__all__ = [
    # Event types
    "CalendarContext",
    "CalendarEvent",
    "DisplayProfile",
    "EventFormValues",
    "EventSource",
    "HouseholdCalendarEvent",
    "PersonalCalendarEvent",
    # Exceptions
    "CalendarError",
    "EventFetchError",
    "EventMutationError",
    "EventNotFoundError",
    "EventSourceError",
    "EventStorageError",
    # Classification
    "ClassifiedEvent",
    "EventClassification",
    "classify_event",
    "classify_events",
    # Recurrence
    "RecurrenceInstance",
    "expand_occurrences",
    "expand_recurrence",
    "validate_rrule",
    # Aggregation
    "AggregatedEvents",
    "aggregate_events",
    "filter_events_by_people",
    # Projection
    "CalendarCallbacks",
    "HitTarget",
    "dispatch_click",
    "month_grid_days",
    "project_day",
    "project_month",
    "project_week",
    "step_anchor",
    "today_anchor",
    "week_days",
    # Service
    "CalendarService",
    "CalendarView",
    "RefreshOutcome",
    "get_calendar_service",
    "reset_calendar_service",
]
