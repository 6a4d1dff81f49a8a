"""
Event source fetchers.

Three independent reads, each returning normalized CalendarEvent records:
- household events owned by the current household
- personal events owned by the current individual
- public personal events of the other household members

Display info (creator, assigned member, assigned child) is resolved with
one batched lookup per table, never per event. Any database failure raises
EventFetchError for that source so the aggregator can tell "failed" from
"empty".
"""

import logging
from typing import Callable, Iterable, Optional, Sequence, Union
from uuid import UUID

from sqlalchemy import select, and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.models.events import HouseholdEvent, UserEvent
from src.models.household import ChildProfile, HouseholdMember, Profile
from src.services.event_types import (
    CalendarContext,
    CalendarEvent,
    DisplayProfile,
    EventSource,
    HouseholdCalendarEvent,
    PersonalCalendarEvent,
)
from src.services.exceptions import EventFetchError

logger = logging.getLogger(__name__)

Fetcher = Callable[[Session, CalendarContext], list[CalendarEvent]]


def as_uuid(value: Union[str, UUID]) -> UUID:
    """Coerce an identifier to UUID (raises ValueError on malformed input)."""
    return value if isinstance(value, UUID) else UUID(str(value))


def _str_or_none(value: Optional[UUID]) -> Optional[str]:
    return str(value) if value is not None else None


# =============================================================================
# Display lookups
# =============================================================================


def load_profiles(session: Session, user_ids: Iterable[UUID]) -> dict[UUID, DisplayProfile]:
    """
    Batch-load display profiles for individuals.

    Args:
        session: Database session
        user_ids: Individuals to resolve (duplicates and None ignored)

    Returns:
        Map of user id to DisplayProfile
    """
    ids = {uid for uid in user_ids if uid is not None}
    if not ids:
        return {}

    stmt = select(Profile).where(Profile.id.in_(ids))
    return {
        profile.id: DisplayProfile(
            id=str(profile.id),
            name=profile.full_name,
            avatar_url=profile.avatar_url,
        )
        for profile in session.scalars(stmt)
    }


def load_child_profiles(session: Session, child_ids: Iterable[UUID]) -> dict[UUID, DisplayProfile]:
    """Batch-load display info for child profiles."""
    ids = {cid for cid in child_ids if cid is not None}
    if not ids:
        return {}

    stmt = select(ChildProfile).where(ChildProfile.id.in_(ids))
    return {
        child.id: DisplayProfile(
            id=str(child.id),
            name=child.name,
            avatar_url=child.avatar_url,
        )
        for child in session.scalars(stmt)
    }


def _load_children_for(session: Session, rows: Sequence[Union[HouseholdEvent, UserEvent]]) -> dict:
    # Only hit child_profiles when an event actually references a child
    child_ids = [row.assigned_to_child for row in rows if row.assigned_to_child]
    if not child_ids:
        return {}
    return load_child_profiles(session, child_ids)


# =============================================================================
# Row normalization
# =============================================================================


def _shared_fields(
    row: Union[HouseholdEvent, UserEvent],
    profiles: dict[UUID, DisplayProfile],
    children: dict[UUID, DisplayProfile],
) -> dict:
    return {
        "id": str(row.id),
        "title": row.title,
        "description": row.description,
        "start_date": row.start_date,
        "end_date": row.end_date,
        "color": row.color,
        "created_at": row.created_at,
        "assigned_to_member": _str_or_none(row.assigned_to_member),
        "assigned_to_child": _str_or_none(row.assigned_to_child),
        "recurrence_rule": row.recurrence_rule,
        "assigned_member_profile": profiles.get(row.assigned_to_member),
        "assigned_child_profile": children.get(row.assigned_to_child),
    }


def household_event_from_row(
    row: HouseholdEvent,
    profiles: dict[UUID, DisplayProfile],
    children: dict[UUID, DisplayProfile],
) -> HouseholdCalendarEvent:
    """Normalize a household_events row."""
    return HouseholdCalendarEvent(
        **_shared_fields(row, profiles, children),
        created_by=str(row.created_by),
        user_profile=profiles.get(row.created_by),
        household_id=str(row.household_id),
    )


def personal_event_from_row(
    row: UserEvent,
    profiles: dict[UUID, DisplayProfile],
    children: dict[UUID, DisplayProfile],
) -> PersonalCalendarEvent:
    """Normalize a user_events row."""
    return PersonalCalendarEvent(
        **_shared_fields(row, profiles, children),
        created_by=str(row.user_id),
        user_profile=profiles.get(row.user_id),
        is_public=row.is_public,
    )


# =============================================================================
# Source fetchers
# =============================================================================


def fetch_household_events(session: Session, context: CalendarContext) -> list[CalendarEvent]:
    """
    Fetch all events owned by the current household.

    Args:
        session: Database session
        context: Acting individual and household

    Returns:
        Household events with creator/assignee display info; [] without a household

    Raises:
        EventFetchError: If the events or any display lookup cannot be read
    """
    if not context.has_household:
        return []

    try:
        household_id = as_uuid(context.household_id)
        stmt = (
            select(HouseholdEvent)
            .where(HouseholdEvent.household_id == household_id)
            .order_by(HouseholdEvent.created_at, HouseholdEvent.id)
        )
        rows = session.scalars(stmt).all()
        if not rows:
            logger.debug(f"No household events for household {household_id}")
            return []

        people = [row.created_by for row in rows] + [row.assigned_to_member for row in rows]
        profiles = load_profiles(session, people)
        children = _load_children_for(session, rows)
    except SQLAlchemyError as e:
        logger.error(f"Error fetching household events: {e}")
        raise EventFetchError(EventSource.HOUSEHOLD.value, "Failed to fetch household events", e) from e

    logger.debug(f"Found {len(rows)} household events")
    return [household_event_from_row(row, profiles, children) for row in rows]


def fetch_personal_events(session: Session, context: CalendarContext) -> list[CalendarEvent]:
    """
    Fetch all events owned by the current individual.

    The individual's own profile is read fresh on every call so a renamed
    profile shows up without waiting for any session state to refresh.

    Raises:
        EventFetchError: If the events or any display lookup cannot be read
    """
    try:
        user_id = as_uuid(context.user_id)
        stmt = (
            select(UserEvent)
            .where(UserEvent.user_id == user_id)
            .order_by(UserEvent.created_at, UserEvent.id)
        )
        rows = session.scalars(stmt).all()
        if not rows:
            logger.debug(f"No personal events for user {user_id}")
            return []

        profiles = load_profiles(session, [user_id] + [row.assigned_to_member for row in rows])
        children = _load_children_for(session, rows)
    except SQLAlchemyError as e:
        logger.error(f"Error fetching personal events: {e}")
        raise EventFetchError(EventSource.PERSONAL.value, "Failed to fetch personal events", e) from e

    logger.debug(f"Found {len(rows)} personal events")
    return [personal_event_from_row(row, profiles, children) for row in rows]


def get_other_member_ids(session: Session, context: CalendarContext) -> list[UUID]:
    """Household member ids excluding the acting individual."""
    stmt = (
        select(HouseholdMember.user_id)
        .where(
            and_(
                HouseholdMember.household_id == as_uuid(context.household_id),
                HouseholdMember.user_id != as_uuid(context.user_id),
            )
        )
        .order_by(HouseholdMember.created_at)
    )
    return list(session.scalars(stmt).all())


def fetch_shared_member_events(session: Session, context: CalendarContext) -> list[CalendarEvent]:
    """
    Fetch public personal events of the other household members.

    Raises:
        EventFetchError: If membership, events or display lookups cannot be read
    """
    if not context.has_household:
        return []

    try:
        member_ids = get_other_member_ids(session, context)
        if not member_ids:
            logger.debug("No other household members to share events")
            return []

        stmt = (
            select(UserEvent)
            .where(
                and_(
                    UserEvent.is_public.is_(True),
                    UserEvent.user_id.in_(member_ids),
                )
            )
            .order_by(UserEvent.created_at, UserEvent.id)
        )
        rows = session.scalars(stmt).all()
        if not rows:
            logger.debug("No shared events from household members")
            return []

        owners = {row.user_id for row in rows}
        profiles = load_profiles(
            session, list(owners) + [row.assigned_to_member for row in rows]
        )
        children = _load_children_for(session, rows)
    except SQLAlchemyError as e:
        logger.error(f"Error fetching shared household events: {e}")
        raise EventFetchError(EventSource.SHARED.value, "Failed to fetch shared events", e) from e

    logger.debug(f"Found {len(rows)} shared events from {len(owners)} members")
    return [personal_event_from_row(row, profiles, children) for row in rows]


DEFAULT_FETCHERS: dict[EventSource, Fetcher] = {
    EventSource.HOUSEHOLD: fetch_household_events,
    EventSource.PERSONAL: fetch_personal_events,
    EventSource.SHARED: fetch_shared_member_events,
}
