"""
Custom exceptions for calendar operations.

Provides structured error handling with retryable flags.
"""


class CalendarError(Exception):
    """Base exception for calendar operations."""

    retryable: bool = False

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class EventFetchError(CalendarError):
    """
    One event source could not be read.

    The source's events are unknown, not empty. Callers must not treat a
    failed source as "no events".
    """

    retryable = True

    def __init__(self, source: str, message: str, original_error: Exception | None = None):
        super().__init__(message, original_error)
        self.source = source


class EventSourceError(CalendarError):
    """Every attempted event source failed; there is nothing to show."""

    retryable = True

    def __init__(self, message: str, failures: dict[str, str] | None = None):
        super().__init__(message)
        self.failures = failures or {}


class EventMutationError(CalendarError):
    """
    Insert, update or delete was rejected.

    Causes:
    - Household event requested by an individual without a household
    - Database rejected the write (constraint, connection)

    No local state is changed when this is raised.
    """


class EventNotFoundError(CalendarError):
    """
    Event not found or not visible to the acting individual.

    Causes:
    - Event was deleted
    - Event belongs to another household or another individual
    """


class EventStorageError(EventMutationError):
    """The database rejected or failed a write. Retryable by the user."""

    retryable = True
