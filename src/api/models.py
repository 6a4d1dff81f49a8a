"""
Pydantic request and response models for the Household Calendar API.
"""

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.services.event_types import EventFormValues
from src.services.recurrence import validate_rrule

HEX_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


def _validate_optional_rrule(v: Optional[str]) -> Optional[str]:
    if v is None or not v.strip():
        return None
    is_valid, error = validate_rrule(v.strip())
    if not is_valid:
        raise ValueError(error)
    return v.strip()


# =============================================================================
# Request Models
# =============================================================================


class CreateEventRequest(BaseModel):
    """Request to create a household or personal event."""

    title: str = Field(
        ...,
        min_length=1,
        max_length=200,
        examples=["Soccer practice"],
    )
    start_date: datetime = Field(..., description="Start (ISO 8601)")
    end_date: datetime = Field(..., description="End (ISO 8601)")
    description: Optional[str] = Field(None, max_length=2000)
    color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN, description="Hex color")
    is_household_event: bool = Field(
        default=False,
        description="Create in the household calendar instead of the personal one",
    )
    is_public: bool = Field(
        default=False,
        description="Share a personal event with the rest of the household",
    )
    assigned_to_member: Optional[str] = Field(None, description="Household member id")
    assigned_to_child: Optional[str] = Field(None, description="Child profile id")
    recurrence_rule: Optional[str] = Field(
        None,
        description="RFC 5545 RRULE",
        examples=["FREQ=WEEKLY;BYDAY=SA"],
    )

    @field_validator("title")
    @classmethod
    def validate_title_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Title cannot be empty")
        return v.strip()

    @field_validator("recurrence_rule")
    @classmethod
    def validate_recurrence_rule(cls, v: Optional[str]) -> Optional[str]:
        return _validate_optional_rrule(v)

    def to_form_values(self) -> EventFormValues:
        return EventFormValues(**self.model_dump())


class UpdateEventRequest(BaseModel):
    """
    Partial update of an existing event.

    Only fields present in the request body are changed. The owning table is
    fixed by the URL and cannot be changed by an update.
    """

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    description: Optional[str] = Field(None, max_length=2000)
    color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN)
    is_public: Optional[bool] = Field(None, description="Personal events only")
    assigned_to_member: Optional[str] = None
    assigned_to_child: Optional[str] = None
    recurrence_rule: Optional[str] = None

    @field_validator("title")
    @classmethod
    def validate_title_not_empty(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("Title cannot be empty")
        return v.strip() if v is not None else v

    @field_validator("recurrence_rule")
    @classmethod
    def validate_recurrence_rule(cls, v: Optional[str]) -> Optional[str]:
        return _validate_optional_rrule(v)


# =============================================================================
# Response Models
# =============================================================================


class ProfileResponse(BaseModel):
    """Display info for a person shown on an event."""

    id: Optional[str] = None
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    initials: str = "?"


class EventResponse(BaseModel):
    """One calendar event with its classification."""

    id: str = Field(..., description="Event ID (unique within its kind)")
    kind: Literal["household", "personal"] = Field(..., description="Owning table")
    title: str
    description: Optional[str] = None
    start_date: str = Field(..., description="Stored start (ISO 8601)")
    end_date: str = Field(..., description="Stored end (ISO 8601)")
    color: str = Field(..., description="Display color (default applied)")
    created_by: Optional[str] = None
    household_id: Optional[str] = None
    is_public: Optional[bool] = None
    assigned_to_member: Optional[str] = None
    assigned_to_child: Optional[str] = None
    assigned_to: Optional[str] = None
    recurrence_rule: Optional[str] = None
    recurrence_id: Optional[str] = Field(None, description="Instance id for expanded recurrences")
    user_profile: Optional[ProfileResponse] = None
    assigned_profile: Optional[ProfileResponse] = None
    is_all_day: bool = False
    is_multi_day: bool = False
    duration_days: int = 1
    duration_minutes: int = 0


class AggregationStatus(BaseModel):
    """Present on every response built from aggregated events."""

    is_partial: bool = Field(
        default=False,
        description="True when some sources could not be read",
    )
    failed_sources: list[str] = Field(default_factory=list)


class EventListResponse(AggregationStatus):
    events: list[EventResponse]
    total: int


class RefreshResponse(EventListResponse):
    refreshed: bool = Field(..., description="False when throttled")
    retry_after_seconds: float = 0.0


class CellEventResponse(BaseModel):
    event: EventResponse
    is_first_day: bool
    is_last_day: bool


class MonthCellResponse(BaseModel):
    day: date
    in_current_month: bool
    is_today: bool
    events: list[CellEventResponse]
    hidden_count: int = 0
    more_label: Optional[str] = None


class MonthViewResponse(AggregationStatus):
    view: Literal["month"] = "month"
    anchor: date
    weeks: list[list[MonthCellResponse]]


class PlacedEventResponse(BaseModel):
    event: EventResponse
    hour: int
    offset_minutes: int
    visible_minutes: int
    top_px: float
    height_px: float
    stack_index: int = 0


class HourSlotResponse(BaseModel):
    hour: int
    events: list[PlacedEventResponse] = Field(default_factory=list)


class DayColumnResponse(BaseModel):
    day: date
    is_today: bool
    all_day: list[CellEventResponse]
    hours: list[HourSlotResponse]


class TimeGridViewResponse(AggregationStatus):
    view: Literal["week", "day"]
    anchor: date
    hour_height_px: int
    columns: list[DayColumnResponse]


class NavigateResponse(BaseModel):
    view: Literal["month", "week", "day"]
    anchor: date
    range_start: date
    range_end: date


class DeleteEventResponse(BaseModel):
    """Response for deleting an event."""

    success: bool = Field(..., description="Whether deletion was successful")
    kind: Literal["household", "personal"]
    event_id: str = Field(..., description="ID of deleted event")
    message: str = Field(..., description="Status message")


class ErrorResponse(BaseModel):
    """Error information for failed requests."""

    error_type: Literal[
        "validation_error",
        "not_found",
        "mutation_error",
        "database_error",
        "source_unavailable",
        "http_error",
        "internal_error",
    ] = Field(..., description="Type of error")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[dict] = Field(None, description="Additional error details")
    retryable: bool = Field(default=False, description="Whether request can be retried")


class HealthResponse(BaseModel):
    """Health check response."""

    status: Literal["healthy", "unhealthy"] = Field(..., description="Health status")
    version: str = Field(..., description="API version")
    database_connected: bool = Field(..., description="Database connection status")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"status": "healthy", "version": "0.1.0", "database_connected": True}
        }
    )
