"""
FastAPI application for Household Calendar.

This is the main entry point for the HTTP API, providing:
- Aggregated event listing with person filtering and manual refresh
- Month, week and day view projections plus navigation
- Event create, read, update and delete routed to the owning table
- Health and status endpoints
"""

import dataclasses
import logging
from contextlib import asynccontextmanager
from datetime import date
from typing import Literal, Optional

from fastapi import FastAPI, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from src.api.dependencies import get_calendar_context, get_db_session, get_service
from src.api.middleware import RequestLoggingMiddleware
from src.api.models import (
    CreateEventRequest,
    DeleteEventResponse,
    EventListResponse,
    EventResponse,
    HealthResponse,
    MonthViewResponse,
    NavigateResponse,
    RefreshResponse,
    TimeGridViewResponse,
    UpdateEventRequest,
)
from src.api.response_builder import (
    build_event,
    build_event_list,
    build_month_view,
    build_refresh,
    build_time_grid_view,
)
from src.config import configure_logging, get_settings
from src.database import check_connection, init_db
from src.services.calendar_service import CalendarService
from src.services.event_types import CalendarContext, EventKind, PersonalCalendarEvent
from src.services.exceptions import (
    CalendarError,
    EventMutationError,
    EventNotFoundError,
    EventSourceError,
    EventStorageError,
)
from src.services.mutations import format_event_datetime
from src.services.projection import step_anchor, today_anchor, visible_days

logger = logging.getLogger(__name__)

API_VERSION = "0.1.0"


# =============================================================================
# Application Lifecycle
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    configure_logging()
    logger.info("Starting Household Calendar API")
    init_db()
    logger.info("Household Calendar API started")

    yield

    # Shutdown
    logger.info("Shutting down Household Calendar API")


# =============================================================================
# FastAPI Application
# =============================================================================


app = FastAPI(
    title="Household Calendar API",
    description="""
# Household Calendar API

Merged household and personal calendars for the members of one household.

## Identity

Every calendar endpoint reads the acting individual from headers:
- **X-User-ID** (required, UUID)
- **X-Household-ID** (optional, UUID; omit when not in a household)

## Event Sources

Events are read from three sources and merged in this order:
1. Household events owned by the household
2. Personal events owned by the individual
3. Public personal events of the other household members

If some sources fail the response is still 200 with `is_partial=true` and
the failed sources listed. If every source fails the request returns 503.

## Error Handling

- **400** - Invalid request or identity header
- **401** - Missing X-User-ID
- **404** - Event not found or not visible
- **422** - Validation error
- **503** - Event sources or database unavailable
    """,
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Add middleware
app.add_middleware(RequestLoggingMiddleware)


# =============================================================================
# Exception Handlers
# =============================================================================


def _error(status_code: int, error_type: str, exc: CalendarError, details: Optional[dict] = None):
    return JSONResponse(
        status_code=status_code,
        content={
            "error_type": error_type,
            "message": exc.message,
            "details": details,
            "retryable": exc.retryable,
        },
    )


@app.exception_handler(EventNotFoundError)
async def not_found_handler(request, exc: EventNotFoundError):
    return _error(404, "not_found", exc)


@app.exception_handler(EventStorageError)
async def storage_error_handler(request, exc: EventStorageError):
    logger.error(f"Storage error: {exc.message} ({exc.original_error})")
    return _error(503, "database_error", exc)


@app.exception_handler(EventMutationError)
async def mutation_error_handler(request, exc: EventMutationError):
    return _error(400, "mutation_error", exc)


@app.exception_handler(EventSourceError)
async def source_error_handler(request, exc: EventSourceError):
    return _error(503, "source_unavailable", exc, details={"failures": exc.failures})


@app.exception_handler(CalendarError)
async def calendar_error_handler(request, exc: CalendarError):
    logger.error(f"Calendar error: {exc.message}")
    return _error(500, "internal_error", exc)


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc: HTTPException):
    """Handle HTTP exceptions with consistent format."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_type": "http_error",
            "message": exc.detail,
            "retryable": exc.status_code >= 500,
        },
    )


@app.exception_handler(Exception)
async def general_exception_handler(request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error_type": "internal_error",
            "message": "An unexpected error occurred",
            "retryable": True,
        },
    )


# =============================================================================
# Health & Status Endpoints
# =============================================================================


@app.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    tags=["System"],
)
def health_check():
    """
    Check API health status.

    Returns:
        Health status including database connectivity
    """
    database_connected = check_connection()

    return HealthResponse(
        status="healthy" if database_connected else "unhealthy",
        version=API_VERSION,
        database_connected=database_connected,
    )


# =============================================================================
# Event Listing
# =============================================================================


@app.get(
    "/calendar/events",
    response_model=EventListResponse,
    summary="List aggregated events",
    description="""
Household, personal and shared events merged into one list.

Repeat the `person` query parameter to filter by member or child ids.
Household events are never hidden by the person filter.
    """,
    tags=["Events"],
)
def list_events(
    person: Optional[list[str]] = Query(None, description="Member or child ids to show"),
    context: CalendarContext = Depends(get_calendar_context),
    db: Session = Depends(get_db_session),
    service: CalendarService = Depends(get_service),
) -> EventListResponse:
    aggregated = service.load_events(db, context, people=person)
    return build_event_list(aggregated)


@app.post(
    "/calendar/refresh",
    response_model=RefreshResponse,
    summary="Refresh events",
    description="""
Drop cached sources and re-fetch everything.

Refreshes are throttled per user and household: a refresh within the
minimum interval of the previous one (or while one is running) returns the
current data with `refreshed=false` and `retry_after_seconds`.
    """,
    tags=["Events"],
)
def refresh_events(
    person: Optional[list[str]] = Query(None),
    context: CalendarContext = Depends(get_calendar_context),
    db: Session = Depends(get_db_session),
    service: CalendarService = Depends(get_service),
) -> RefreshResponse:
    outcome = service.refresh(db, context, people=person)
    return build_refresh(outcome)


# =============================================================================
# Views & Navigation
# =============================================================================


@app.get(
    "/calendar/views/month",
    response_model=MonthViewResponse,
    summary="Month view",
    tags=["Views"],
)
def month_view(
    anchor: Optional[date] = Query(None, alias="date", description="Any date in the month (default today)"),
    person: Optional[list[str]] = Query(None),
    context: CalendarContext = Depends(get_calendar_context),
    db: Session = Depends(get_db_session),
    service: CalendarService = Depends(get_service),
) -> MonthViewResponse:
    view = service.month_view(db, context, anchor or today_anchor(), people=person)
    return build_month_view(view)


@app.get(
    "/calendar/views/week",
    response_model=TimeGridViewResponse,
    summary="Week view",
    tags=["Views"],
)
def week_view(
    anchor: Optional[date] = Query(None, alias="date", description="Any date in the week (default today)"),
    person: Optional[list[str]] = Query(None),
    context: CalendarContext = Depends(get_calendar_context),
    db: Session = Depends(get_db_session),
    service: CalendarService = Depends(get_service),
) -> TimeGridViewResponse:
    view = service.week_view(db, context, anchor or today_anchor(), people=person)
    return build_time_grid_view(view)


@app.get(
    "/calendar/views/day",
    response_model=TimeGridViewResponse,
    summary="Day view",
    tags=["Views"],
)
def day_view(
    anchor: Optional[date] = Query(None, alias="date", description="Day to show (default today)"),
    person: Optional[list[str]] = Query(None),
    context: CalendarContext = Depends(get_calendar_context),
    db: Session = Depends(get_db_session),
    service: CalendarService = Depends(get_service),
) -> TimeGridViewResponse:
    view = service.day_view(db, context, anchor or today_anchor(), people=person)
    return build_time_grid_view(view)


@app.get(
    "/calendar/navigate",
    response_model=NavigateResponse,
    summary="Navigate views",
    description="Step the anchor by the view's unit (month, week or day) or jump to today.",
    tags=["Views"],
)
def navigate(
    view: Literal["month", "week", "day"] = Query(...),
    direction: Literal["next", "previous", "today"] = Query(...),
    anchor: Optional[date] = Query(None, alias="date"),
) -> NavigateResponse:
    if direction == "today":
        new_anchor = today_anchor()
    else:
        new_anchor = step_anchor(anchor or today_anchor(), view, 1 if direction == "next" else -1)

    days = visible_days(new_anchor, view)
    return NavigateResponse(view=view, anchor=new_anchor, range_start=days[0], range_end=days[-1])


# =============================================================================
# Event Mutations
# =============================================================================


@app.post(
    "/calendar/events",
    response_model=EventResponse,
    status_code=201,
    summary="Create event",
    description="""
Create an event in the household calendar (`is_household_event=true`) or
in the individual's personal calendar. The created record, id included, is
returned.
    """,
    responses={
        400: {"description": "Household event requested without a household"},
        503: {"description": "Database unavailable"},
    },
    tags=["Events"],
)
def create_event(
    request: CreateEventRequest,
    context: CalendarContext = Depends(get_calendar_context),
    db: Session = Depends(get_db_session),
    service: CalendarService = Depends(get_service),
) -> EventResponse:
    event = service.create_event(db, context, request.to_form_values())
    return build_event(event)


@app.get(
    "/calendar/events/{kind}/{event_id}",
    response_model=EventResponse,
    summary="Get event details",
    tags=["Events"],
)
def get_event(
    kind: EventKind,
    event_id: str,
    context: CalendarContext = Depends(get_calendar_context),
    db: Session = Depends(get_db_session),
    service: CalendarService = Depends(get_service),
) -> EventResponse:
    event = service.get_event(db, context, kind, event_id)
    return build_event(event)


@app.patch(
    "/calendar/events/{kind}/{event_id}",
    response_model=EventResponse,
    summary="Update event",
    description="Update fields of an event in the table it already lives in.",
    tags=["Events"],
)
def update_event(
    kind: EventKind,
    event_id: str,
    request: UpdateEventRequest,
    context: CalendarContext = Depends(get_calendar_context),
    db: Session = Depends(get_db_session),
    service: CalendarService = Depends(get_service),
) -> EventResponse:
    event = service.get_event(db, context, kind, event_id)

    changes = request.model_dump(exclude_unset=True)
    if "is_public" in changes and not isinstance(event, PersonalCalendarEvent):
        raise EventMutationError("is_public applies to personal events only")
    # Required fields cannot be cleared
    for field_name in ("title", "start_date", "end_date"):
        if field_name in changes and changes[field_name] is None:
            del changes[field_name]
    for field_name in ("start_date", "end_date"):
        if field_name in changes:
            changes[field_name] = format_event_datetime(changes[field_name])

    updated = service.update_event(db, context, dataclasses.replace(event, **changes))
    return build_event(updated)


@app.delete(
    "/calendar/events/{kind}/{event_id}",
    response_model=DeleteEventResponse,
    summary="Delete event",
    tags=["Events"],
)
def delete_event(
    kind: EventKind,
    event_id: str,
    context: CalendarContext = Depends(get_calendar_context),
    db: Session = Depends(get_db_session),
    service: CalendarService = Depends(get_service),
) -> DeleteEventResponse:
    service.delete_event(db, context, (kind, event_id))
    logger.info(f"Deleted {kind} event {event_id} for user {context.user_id}")

    return DeleteEventResponse(
        success=True,
        kind=kind,
        event_id=event_id,
        message="Event deleted successfully",
    )


# =============================================================================
# Run with Uvicorn
# =============================================================================


def run_server(host: Optional[str] = None, port: Optional[int] = None, reload: Optional[bool] = None):
    """Run the API server with Uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "src.api.main:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=settings.api_reload if reload is None else reload,
    )


if __name__ == "__main__":
    run_server()
