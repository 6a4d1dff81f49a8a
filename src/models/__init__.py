"""
SQLAlchemy models for Household Calendar.

This module exports all database models for easy importing and ensures
every table is registered on Base.metadata before create_all().
"""

from src.models.base import Base, BaseModel, GUID

from src.models.household import Profile, Household, HouseholdMember, ChildProfile
from src.models.events import HouseholdEvent, UserEvent

__all__ = [
    # Base classes
    "Base",
    "BaseModel",
    "GUID",
    # Household models
    "Profile",
    "Household",
    "HouseholdMember",
    "ChildProfile",
    # Event models
    "HouseholdEvent",
    "UserEvent",
]
