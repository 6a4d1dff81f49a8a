"""
Pytest configuration and fixtures for Household Calendar tests.

Provides database session fixtures and sample household data for testing.
"""

import uuid
from typing import Callable, Generator

import pytest
import sqlalchemy as sa
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from src.models.base import Base
from src.models.household import ChildProfile, Household, HouseholdMember, Profile
from src.models.events import HouseholdEvent, UserEvent
from src.services.event_types import CalendarContext


# Configure SQLite to enforce foreign key constraints in tests
@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    """Enable foreign key constraints for SQLite connections."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """
    Create a clean database session for each test.

    Uses an in-memory SQLite database that is torn down after each test.

    Yields:
        Session: SQLAlchemy session for database operations
    """
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.rollback()
        session.close()
        # Disable foreign key constraints for drop operations
        with engine.begin() as connection:
            connection.execute(sa.text("PRAGMA foreign_keys=OFF"))
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


def _add(session: Session, obj):
    session.add(obj)
    session.commit()
    session.refresh(obj)
    return obj


@pytest.fixture
def alice(db_session: Session) -> Profile:
    """The acting individual in most tests."""
    return _add(db_session, Profile(full_name="Alice Parent", avatar_url="https://example.com/alice.png"))


@pytest.fixture
def bob(db_session: Session) -> Profile:
    """Another member of Alice's household."""
    return _add(db_session, Profile(full_name="Bob Parent"))


@pytest.fixture
def outsider(db_session: Session) -> Profile:
    """An individual with no household."""
    return _add(db_session, Profile(full_name="Olive Outsider"))


@pytest.fixture
def household(db_session: Session, alice: Profile, bob: Profile) -> Household:
    """
    A household with Alice (admin) and Bob (member).

    Returns:
        Household: Persisted household with two memberships
    """
    household = _add(db_session, Household(name="The Parents", invite_code="JOIN-1234"))
    db_session.add_all([
        HouseholdMember(household_id=household.id, user_id=alice.id, role="admin"),
        HouseholdMember(household_id=household.id, user_id=bob.id, role="member"),
    ])
    db_session.commit()
    return household


@pytest.fixture
def child(db_session: Session, household: Household, alice: Profile) -> ChildProfile:
    """A child profile in Alice's household."""
    return _add(
        db_session,
        ChildProfile(household_id=household.id, name="Sam", age=8, created_by=alice.id),
    )


@pytest.fixture
def alice_context(alice: Profile, household: Household) -> CalendarContext:
    return CalendarContext(user_id=str(alice.id), household_id=str(household.id))


@pytest.fixture
def bob_context(bob: Profile, household: Household) -> CalendarContext:
    return CalendarContext(user_id=str(bob.id), household_id=str(household.id))


@pytest.fixture
def outsider_context(outsider: Profile) -> CalendarContext:
    return CalendarContext(user_id=str(outsider.id))


@pytest.fixture
def make_household_event(db_session: Session, household: Household, alice: Profile) -> Callable[..., HouseholdEvent]:
    """
    Factory for persisted household events.

    Defaults to a one-hour event created by Alice; override any column.
    """
    def _make(**overrides) -> HouseholdEvent:
        values = {
            "title": "Family dinner",
            "start_date": "2026-03-10T18:00:00",
            "end_date": "2026-03-10T19:00:00",
            "household_id": household.id,
            "created_by": alice.id,
        }
        values.update(overrides)
        return _add(db_session, HouseholdEvent(**values))

    return _make


@pytest.fixture
def make_user_event(db_session: Session, alice: Profile) -> Callable[..., UserEvent]:
    """
    Factory for persisted personal events.

    Defaults to a private one-hour event owned by Alice; override any column.
    """
    def _make(**overrides) -> UserEvent:
        values = {
            "title": "Dentist",
            "start_date": "2026-03-11T09:00:00",
            "end_date": "2026-03-11T10:00:00",
            "user_id": alice.id,
            "is_public": False,
        }
        values.update(overrides)
        return _add(db_session, UserEvent(**values))

    return _make


@pytest.fixture
def random_id() -> str:
    return str(uuid.uuid4())
