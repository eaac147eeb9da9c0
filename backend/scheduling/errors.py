"""Errors raised by the scheduling core.

Each error carries the HTTP status the routers answer with, so callers
outside FastAPI can still tell a missing record from a storage fault.
"""

from fastapi import status


class SchedulingError(Exception):
    """Base class for scheduling failures surfaced to callers unchanged."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(SchedulingError):
    """Provider, service, appointment or availability record does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class ValidationError(SchedulingError):
    """Malformed date, time range or duration."""

    status_code = status.HTTP_400_BAD_REQUEST


class DataUnavailableError(SchedulingError):
    """A required store read or write failed.

    Slot queries never fall back to reporting every slot as free when this
    is raised.
    """

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class SlotConflictError(SchedulingError):
    """A booking lost the race for a slot another writer already took."""

    status_code = status.HTTP_409_CONFLICT
