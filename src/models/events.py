"""
Event models for the two event-owning tables.

Entities:
- HouseholdEvent: Owned by a household, visible to all of its members
- UserEvent: Owned by one individual, shared with the household when public

Dates are stored as the ISO 8601 text the client wrote. Nothing enforces
end_date >= start_date or even that the text parses; readers must cope.
"""

import uuid
from typing import Optional

from sqlalchemy import String, Text, Boolean, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import BaseModel


class _EventColumns:
    """Columns shared by both event tables."""

    title: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        doc="Event title"
    )

    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="Free-form description"
    )

    start_date: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        doc="Start as ISO 8601 text (wall clock, offset optional)"
    )

    end_date: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        doc="End as ISO 8601 text (wall clock, offset optional)"
    )

    color: Mapped[Optional[str]] = mapped_column(
        String(7),
        nullable=True,
        doc="Hex color code (e.g. '#3B82F6')"
    )

    assigned_to_member: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
        doc="Household member the event is for"
    )

    assigned_to_child: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("child_profiles.id", ondelete="SET NULL"),
        nullable=True,
        doc="Child profile the event is for"
    )

    recurrence_rule: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
        doc="iCalendar RRULE (e.g. 'FREQ=WEEKLY;BYDAY=MO,WE')"
    )


class HouseholdEvent(_EventColumns, BaseModel):
    """A calendar entry owned by a household."""

    __tablename__ = "household_events"

    household_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("households.id", ondelete="CASCADE"),
        nullable=False,
        doc="Owning household"
    )

    created_by: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("profiles.id"),
        nullable=False,
        doc="Individual who created the event"
    )

    __table_args__ = (
        Index("idx_household_event_household", "household_id"),
    )

    def __repr__(self) -> str:
        return f"<HouseholdEvent(title='{self.title}', start='{self.start_date}')>"


class UserEvent(_EventColumns, BaseModel):
    """A calendar entry owned by one individual."""

    __tablename__ = "user_events"

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        doc="Owning individual"
    )

    is_public: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        doc="Whether other household members see this event"
    )

    __table_args__ = (
        Index("idx_user_event_owner", "user_id"),
        Index("idx_user_event_public", "is_public", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<UserEvent(title='{self.title}', start='{self.start_date}')>"
