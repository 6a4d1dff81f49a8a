"""
Event mutations: create, update and delete against the two event tables.

Table routing:
- create: household table when the form asks for a household event and the
  individual has a household, personal table otherwise
- update/delete: the table named by the event's kind; kind never changes

Every function commits on success, and commit is the last database call:
the returned record is built from the flushed row before it. On a database
error the session is rolled back and EventStorageError is raised (or
EventMutationError for a constraint violation); callers must assume nothing
changed. Cache invalidation is the caller's job (see CalendarService).
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Union

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from src.models.events import HouseholdEvent, UserEvent
from src.services.event_types import (
    CalendarContext,
    CalendarEvent,
    EventFormValues,
    EventKind,
    PersonalCalendarEvent,
)
from src.services.exceptions import (
    EventMutationError,
    EventNotFoundError,
    EventStorageError,
)
from src.services.fetchers import (
    as_uuid,
    household_event_from_row,
    load_child_profiles,
    load_profiles,
    personal_event_from_row,
)

logger = logging.getLogger(__name__)

_MODELS: dict[str, type] = {
    "household": HouseholdEvent,
    "personal": UserEvent,
}


def format_event_datetime(value: Union[datetime, str]) -> str:
    """Serialize a form datetime to the stored ISO 8601 text."""
    if isinstance(value, str):
        return value
    return value.isoformat()


def _optional_uuid(value: Optional[str]):
    if not value:
        return None
    try:
        return as_uuid(value)
    except ValueError as e:
        raise EventMutationError(f"Invalid assignee id '{value}'", e) from e


def _to_event(session: Session, row: Union[HouseholdEvent, UserEvent]) -> CalendarEvent:
    """Normalize a freshly written row with its display info."""
    owner_id = row.created_by if isinstance(row, HouseholdEvent) else row.user_id
    profiles = load_profiles(session, [owner_id, row.assigned_to_member])
    children = load_child_profiles(session, [row.assigned_to_child])
    if isinstance(row, HouseholdEvent):
        return household_event_from_row(row, profiles, children)
    return personal_event_from_row(row, profiles, children)


def _load_visible_row(
    session: Session,
    context: CalendarContext,
    kind: EventKind,
    event_id: str,
) -> Union[HouseholdEvent, UserEvent]:
    """
    Load an event row the acting individual may change.

    Household events must belong to the individual's household; personal
    events must be owned by the individual.

    Raises:
        EventNotFoundError: If missing or not visible
    """
    model = _MODELS.get(kind)
    if model is None:
        raise EventNotFoundError(f"Unknown event kind '{kind}'")

    try:
        row = session.get(model, as_uuid(event_id))
    except ValueError:
        row = None

    if row is None:
        raise EventNotFoundError(f"Event {event_id} not found")

    if isinstance(row, HouseholdEvent):
        if not context.has_household or row.household_id != as_uuid(context.household_id):
            raise EventNotFoundError(f"Event {event_id} not found")
    elif row.user_id != as_uuid(context.user_id):
        raise EventNotFoundError(f"Event {event_id} not found")

    return row


def get_event(
    session: Session,
    context: CalendarContext,
    kind: EventKind,
    event_id: str,
) -> CalendarEvent:
    """
    Load one event by owning table and id.

    Args:
        session: Database session
        context: Acting individual
        kind: 'household' or 'personal'
        event_id: Event id

    Returns:
        The normalized event

    Raises:
        EventNotFoundError: If missing or not visible to the individual
    """
    row = _load_visible_row(session, context, kind, event_id)
    return _to_event(session, row)


def create_event(
    session: Session,
    context: CalendarContext,
    values: EventFormValues,
) -> CalendarEvent:
    """
    Insert a new event into its owning table.

    Args:
        session: Database session
        context: Acting individual (becomes the creator)
        values: Submitted form values

    Returns:
        The created event including its generated id

    Raises:
        EventMutationError: Household event requested without a household
        EventStorageError: Database rejected the insert
    """
    common = {
        "title": values.title,
        "description": values.description,
        "start_date": format_event_datetime(values.start_date),
        "end_date": format_event_datetime(values.end_date),
        "color": values.color,
        "assigned_to_member": _optional_uuid(values.assigned_to_member),
        "assigned_to_child": _optional_uuid(values.assigned_to_child),
        "recurrence_rule": values.recurrence_rule,
    }

    if values.is_household_event:
        if not context.has_household:
            raise EventMutationError("User is not in a household")
        row: Union[HouseholdEvent, UserEvent] = HouseholdEvent(
            **common,
            household_id=as_uuid(context.household_id),
            created_by=as_uuid(context.user_id),
        )
    else:
        row = UserEvent(
            **common,
            user_id=as_uuid(context.user_id),
            is_public=values.is_public,
        )

    kind = "household" if values.is_household_event else "personal"
    try:
        session.add(row)
        session.flush()
        session.refresh(row)
        event = _to_event(session, row)
        session.commit()
    except IntegrityError as e:
        session.rollback()
        logger.warning(f"Rejected {kind} event: {e}")
        raise EventMutationError("Event references an unknown member or child", e) from e
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Error creating {kind} event: {e}")
        raise EventStorageError("Failed to create event", e) from e

    logger.info(f"Created {event.kind} event {event.id} '{event.title}'")
    return event


def update_event(
    session: Session,
    context: CalendarContext,
    event: CalendarEvent,
) -> CalendarEvent:
    """
    Write an edited event back to the table it already lives in.

    The owning table comes from the event's type, so callers never repeat
    the household flag and an update can never move an event between tables.

    Args:
        session: Database session
        context: Acting individual
        event: Edited event (HouseholdCalendarEvent or PersonalCalendarEvent)

    Returns:
        The updated event with refreshed display info

    Raises:
        EventNotFoundError: If missing or not visible
        EventStorageError: Database rejected the update
    """
    row = _load_visible_row(session, context, event.kind, event.id)
    assigned_to_member = _optional_uuid(event.assigned_to_member)
    assigned_to_child = _optional_uuid(event.assigned_to_child)

    try:
        row.title = event.title
        row.description = event.description
        row.start_date = event.start_date
        row.end_date = event.end_date
        row.color = event.color
        row.assigned_to_member = assigned_to_member
        row.assigned_to_child = assigned_to_child
        row.recurrence_rule = event.recurrence_rule
        if isinstance(event, PersonalCalendarEvent):
            row.is_public = event.is_public
        row.updated_at = datetime.now(timezone.utc)

        session.flush()
        session.refresh(row)
        updated = _to_event(session, row)
        session.commit()
    except IntegrityError as e:
        session.rollback()
        logger.warning(f"Rejected update of {event.kind} event {event.id}: {e}")
        raise EventMutationError("Event references an unknown member or child", e) from e
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Error updating {event.kind} event {event.id}: {e}")
        raise EventStorageError("Failed to update event", e) from e

    logger.info(f"Updated {updated.kind} event {updated.id}")
    return updated


def delete_event(
    session: Session,
    context: CalendarContext,
    event: Union[CalendarEvent, tuple[EventKind, str]],
) -> None:
    """
    Hard-delete an event from its owning table.

    Args:
        session: Database session
        context: Acting individual
        event: The event, or its (kind, id) key

    Raises:
        EventNotFoundError: If missing or not visible
        EventStorageError: Database rejected the delete
    """
    kind, event_id = event.key if isinstance(event, CalendarEvent) else event
    row = _load_visible_row(session, context, kind, event_id)

    try:
        session.delete(row)
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.error(f"Error deleting {kind} event {event_id}: {e}")
        raise EventStorageError("Failed to delete event", e) from e

    logger.info(f"Deleted {kind} event {event_id}")

