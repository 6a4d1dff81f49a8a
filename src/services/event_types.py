"""
Calendar event types shared by the fetch, classify and projection stages.

CalendarEvent is a tagged union: the concrete class names the owning table.
A HouseholdCalendarEvent always lives in household_events and a
PersonalCalendarEvent always lives in user_events, so routing a mutation
never depends on a loose boolean.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import ClassVar, Literal, Optional, Union

EventKind = Literal["household", "personal"]

DEFAULT_EVENT_COLOR = "#7B68EE"


class EventSource(str, Enum):
    """The three independent places events are read from, in merge order."""

    HOUSEHOLD = "household"
    PERSONAL = "personal"
    SHARED = "shared"


@dataclass(frozen=True)
class CalendarContext:
    """
    Identity of the acting individual.

    Passed explicitly to every fetcher and mutation instead of being read
    from a global session.
    """

    user_id: str
    household_id: Optional[str] = None

    @property
    def has_household(self) -> bool:
        return self.household_id is not None


@dataclass
class DisplayProfile:
    """Denormalized name/avatar resolved at fetch time; never stored."""

    id: Optional[str]
    name: Optional[str]
    avatar_url: Optional[str] = None

    @property
    def initials(self) -> str:
        """Up to two uppercase initials, or '?' when the name is unknown."""
        if not self.name:
            return "?"
        return "".join(part[0] for part in self.name.split() if part)[:2].upper() or "?"


@dataclass
class CalendarEvent:
    """
    Unified event record produced by the fetchers.

    Use HouseholdCalendarEvent or PersonalCalendarEvent; this base class is
    never instantiated directly.
    """

    id: str
    title: str
    start_date: str
    end_date: str
    description: Optional[str] = None
    color: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    assigned_to_member: Optional[str] = None
    assigned_to_child: Optional[str] = None
    recurrence_rule: Optional[str] = None
    user_profile: Optional[DisplayProfile] = None
    assigned_member_profile: Optional[DisplayProfile] = None
    assigned_child_profile: Optional[DisplayProfile] = None

    kind: ClassVar[EventKind]

    @property
    def is_household_event(self) -> bool:
        return self.kind == "household"

    @property
    def key(self) -> tuple[str, str]:
        """Identity namespaced by owning table."""
        return (self.kind, self.id)

    @property
    def user_id(self) -> Optional[str]:
        """Authoring individual (creator for household events, owner for personal)."""
        return self.created_by

    @property
    def assigned_to(self) -> Optional[str]:
        """Member assignment overrides child assignment."""
        return self.assigned_to_member or self.assigned_to_child

    @property
    def assigned_profile(self) -> Optional[DisplayProfile]:
        return self.assigned_member_profile or self.assigned_child_profile

    def display_color(self, fallback: str = DEFAULT_EVENT_COLOR) -> str:
        return self.color or fallback


@dataclass
class HouseholdCalendarEvent(CalendarEvent):
    """Event owned by the household table."""

    household_id: Optional[str] = None

    kind: ClassVar[EventKind] = "household"


@dataclass
class PersonalCalendarEvent(CalendarEvent):
    """Event owned by one individual in the personal table."""

    is_public: bool = False

    kind: ClassVar[EventKind] = "personal"


AnyCalendarEvent = Union[HouseholdCalendarEvent, PersonalCalendarEvent]


@dataclass
class EventFormValues:
    """
    Values submitted by the create form.

    Dates are datetimes here; they are written to storage as ISO 8601 text.
    """

    title: str
    start_date: datetime
    end_date: datetime
    description: Optional[str] = None
    color: Optional[str] = None
    is_household_event: bool = False
    is_public: bool = False
    assigned_to_member: Optional[str] = None
    assigned_to_child: Optional[str] = None
    recurrence_rule: Optional[str] = None
