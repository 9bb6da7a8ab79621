"""Typed failures raised by the booking core.

Every transition either returns its result or raises one of these; the
transaction that was open at the time is rolled back before the exception
leaves the service.
"""

from datetime import datetime
from typing import Optional


class BookingError(Exception):
    """Base class for all expected booking-core failures."""

    code = "booking_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(BookingError):
    code = "bad_request"


class NotFoundError(BookingError):
    code = "not_found"


class ConflictError(BookingError):
    code = "conflict"

    def __init__(self, message: str, available_from: Optional[datetime] = None):
        super().__init__(message)
        self.available_from = available_from


class StateError(BookingError):
    code = "invalid_state"


class PermissionDeniedError(BookingError):
    code = "forbidden"


class DependencyFailure(BookingError):
    """A best-effort collaborator (storage, renderer, cache, notifier) failed."""

    code = "dependency_failure"
