"""
Response builder utilities for transforming service results to API responses.

Converts CalendarEvent records and view projections into the pydantic
response models, applying classification and default colors on the way.
"""

from typing import Optional

from src.api.models import (
    AggregationStatus,
    CellEventResponse,
    DayColumnResponse,
    EventListResponse,
    EventResponse,
    HourSlotResponse,
    MonthCellResponse,
    MonthViewResponse,
    PlacedEventResponse,
    ProfileResponse,
    RefreshResponse,
    TimeGridViewResponse,
)
from src.config import get_settings
from src.services.aggregator import AggregatedEvents
from src.services.calendar_service import CalendarView, RefreshOutcome
from src.services.classifier import ClassifiedEvent, classify_event
from src.services.event_types import (
    CalendarEvent,
    DisplayProfile,
    HouseholdCalendarEvent,
    PersonalCalendarEvent,
)
from src.services.projection import CellEvent, MonthProjection, PlacedEvent, TimeGridProjection


def _profile(profile: Optional[DisplayProfile]) -> Optional[ProfileResponse]:
    if profile is None:
        return None
    return ProfileResponse(
        id=profile.id,
        name=profile.name,
        avatar_url=profile.avatar_url,
        initials=profile.initials,
    )


def build_event(event: CalendarEvent, item: Optional[ClassifiedEvent] = None) -> EventResponse:
    """
    Build EventResponse for one event.

    Args:
        event: Normalized event
        item: Classified instance (classified on the fly when omitted)

    Returns:
        EventResponse ready for API return
    """
    settings = get_settings()
    classification = (
        item.classification if item is not None
        else classify_event(event, display_tz=settings.timezone)
    )

    return EventResponse(
        id=event.id,
        kind=event.kind,
        title=event.title,
        description=event.description,
        start_date=event.start_date,
        end_date=event.end_date,
        color=event.display_color(settings.default_event_color),
        created_by=event.created_by,
        household_id=event.household_id if isinstance(event, HouseholdCalendarEvent) else None,
        is_public=event.is_public if isinstance(event, PersonalCalendarEvent) else None,
        assigned_to_member=event.assigned_to_member,
        assigned_to_child=event.assigned_to_child,
        assigned_to=event.assigned_to,
        recurrence_rule=event.recurrence_rule,
        recurrence_id=item.recurrence_id if item is not None else None,
        user_profile=_profile(event.user_profile),
        assigned_profile=_profile(event.assigned_profile),
        is_all_day=classification.is_all_day,
        is_multi_day=classification.is_multi_day,
        duration_days=classification.duration_days,
        duration_minutes=classification.duration_minutes,
    )


def _status(aggregated: AggregatedEvents) -> dict:
    return AggregationStatus(
        is_partial=aggregated.is_partial,
        failed_sources=[source.value for source in aggregated.failed_sources],
    ).model_dump()


def build_event_list(aggregated: AggregatedEvents) -> EventListResponse:
    events = [build_event(event) for event in aggregated.events]
    return EventListResponse(events=events, total=len(events), **_status(aggregated))


def build_refresh(outcome: RefreshOutcome) -> RefreshResponse:
    listing = build_event_list(outcome.events)
    return RefreshResponse(
        **listing.model_dump(),
        refreshed=outcome.refreshed,
        retry_after_seconds=round(outcome.retry_after_seconds, 1),
    )


def _cell_event(cell_event: CellEvent) -> CellEventResponse:
    return CellEventResponse(
        event=build_event(cell_event.event, cell_event.item),
        is_first_day=cell_event.is_first_day,
        is_last_day=cell_event.is_last_day,
    )


def _placed_event(placed: PlacedEvent) -> PlacedEventResponse:
    return PlacedEventResponse(
        event=build_event(placed.event, placed.item),
        hour=placed.hour,
        offset_minutes=placed.offset_minutes,
        visible_minutes=placed.visible_minutes,
        top_px=placed.top_px,
        height_px=placed.height_px,
        stack_index=placed.stack_index,
    )


def build_month_view(view: CalendarView[MonthProjection]) -> MonthViewResponse:
    """Build MonthViewResponse from a month projection."""
    projection = view.projection
    weeks = [
        [
            MonthCellResponse(
                day=cell.day,
                in_current_month=cell.in_current_month,
                is_today=cell.is_today,
                events=[_cell_event(cell_event) for cell_event in cell.events],
                hidden_count=cell.hidden_count,
                more_label=cell.more_label,
            )
            for cell in week
        ]
        for week in projection.weeks
    ]
    return MonthViewResponse(anchor=projection.anchor, weeks=weeks, **_status(view.events))


def build_time_grid_view(view: CalendarView[TimeGridProjection]) -> TimeGridViewResponse:
    """Build TimeGridViewResponse from a week or day projection."""
    projection = view.projection
    columns = [
        DayColumnResponse(
            day=column.day,
            is_today=column.is_today,
            all_day=[_cell_event(cell_event) for cell_event in column.all_day],
            hours=[
                HourSlotResponse(
                    hour=slot.hour,
                    events=[_placed_event(placed) for placed in slot.events],
                )
                for slot in column.hours
            ],
        )
        for column in projection.columns
    ]
    return TimeGridViewResponse(
        view=projection.view,
        anchor=projection.anchor,
        hour_height_px=projection.hour_height_px,
        columns=columns,
        **_status(view.events),
    )
