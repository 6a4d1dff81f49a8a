"""
FastAPI dependency injection providers.

Provides database sessions, the calendar service, and the acting
individual's calendar context.
"""

from typing import Optional
from uuid import UUID
import logging

from fastapi import Header, HTTPException

from src.database import get_db
from src.services.calendar_service import CalendarService, get_calendar_service
from src.services.event_types import CalendarContext

logger = logging.getLogger(__name__)


def get_db_session():
    """
    Dependency injection for database session.

    Yields a database session and ensures cleanup.
    """
    db = next(get_db())
    try:
        yield db
    finally:
        db.close()


def get_service() -> CalendarService:
    """Dependency injection for the calendar service singleton."""
    return get_calendar_service()


def _parse_uuid_header(name: str, value: str) -> str:
    try:
        return str(UUID(value))
    except ValueError:
        logger.warning(f"Rejected malformed {name} header: {value!r}")
        raise HTTPException(status_code=400, detail=f"{name} must be a UUID")


def get_calendar_context(
    x_user_id: Optional[str] = Header(None, description="Acting user ID"),
    x_household_id: Optional[str] = Header(None, description="Household ID (omit when not in a household)"),
) -> CalendarContext:
    """
    Extract the calendar context from headers.

    Args:
        x_user_id: User ID from X-User-ID header (required)
        x_household_id: Household ID from X-Household-ID header

    Returns:
        CalendarContext for the acting individual

    Raises:
        HTTPException: 401 without a user, 400 for malformed ids
    """
    if not x_user_id:
        raise HTTPException(status_code=401, detail="X-User-ID header is required")

    user_id = _parse_uuid_header("X-User-ID", x_user_id)
    household_id = _parse_uuid_header("X-Household-ID", x_household_id) if x_household_id else None

    return CalendarContext(user_id=user_id, household_id=household_id)
