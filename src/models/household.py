"""
Household and profile models.

Entities:
- Profile: Display information for an individual (id is the user id)
- Household: A family unit that owns shared events
- HouseholdMember: Membership of an individual in a household
- ChildProfile: A child without an account, assignable to events

These are read-only inputs to the calendar pipeline; membership and role
management happen elsewhere.
"""

import uuid
from typing import Optional

from sqlalchemy import String, Integer, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import BaseModel


class Profile(BaseModel):
    """
    Display profile of an individual.

    The primary key is the individual's user id issued by the auth provider.
    """

    __tablename__ = "profiles"

    full_name: Mapped[Optional[str]] = mapped_column(
        String(200),
        nullable=True,
        doc="Display name"
    )

    avatar_url: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
        doc="Avatar image URL"
    )

    memberships: Mapped[list["HouseholdMember"]] = relationship(
        "HouseholdMember",
        back_populates="profile",
        doc="Households this individual belongs to"
    )

    def __repr__(self) -> str:
        return f"<Profile(full_name='{self.full_name}')>"


class Household(BaseModel):
    """A household whose members share a calendar."""

    __tablename__ = "households"

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        doc="Household name"
    )

    invite_code: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        unique=True,
        doc="Code other individuals use to join"
    )

    members: Mapped[list["HouseholdMember"]] = relationship(
        "HouseholdMember",
        back_populates="household",
        cascade="all, delete-orphan",
    )

    children: Mapped[list["ChildProfile"]] = relationship(
        "ChildProfile",
        back_populates="household",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Household(name='{self.name}')>"


class HouseholdMember(BaseModel):
    """Membership of an individual in a household."""

    __tablename__ = "household_members"

    household_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("households.id", ondelete="CASCADE"),
        nullable=False,
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
    )

    role: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="member",
        doc="Role in household: 'admin', 'member'"
    )

    household: Mapped["Household"] = relationship("Household", back_populates="members")
    profile: Mapped["Profile"] = relationship("Profile", back_populates="memberships")

    __table_args__ = (
        UniqueConstraint("household_id", "user_id", name="uq_household_member"),
        Index("idx_household_member_user", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<HouseholdMember(user_id={self.user_id}, role='{self.role}')>"


class ChildProfile(BaseModel):
    """A child in the household who has no account of their own."""

    __tablename__ = "child_profiles"

    household_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("households.id", ondelete="CASCADE"),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    avatar_url: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
    )

    age: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
    )

    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("profiles.id"),
        nullable=True,
        doc="Individual who added the child"
    )

    household: Mapped["Household"] = relationship("Household", back_populates="children")

    __table_args__ = (
        Index("idx_child_profile_household", "household_id"),
    )

    def __repr__(self) -> str:
        return f"<ChildProfile(name='{self.name}')>"
