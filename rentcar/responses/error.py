import logging

from fastapi import status
from .base import build_response
from rentcar.exceptions import (
    BookingError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    StateError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def bad_request_error(error: str = "Bad request"):
    return build_response(
        status.HTTP_400_BAD_REQUEST,
        "failure",
        error="bad_request",
        message=error,
    )


def conflict_error(error: str = "Resource conflict", data=None):
    return build_response(
        status.HTTP_409_CONFLICT,
        "failure",
        error="conflict",
        message=error,
        data=data,
    )


def invalid_state_error(error: str = "Invalid booking state"):
    return build_response(
        status.HTTP_409_CONFLICT,
        "failure",
        error="invalid_state",
        message=error,
    )


def not_found_error(error: str = "Resource not found"):
    return build_response(
        status.HTTP_404_NOT_FOUND,
        "failure",
        error="not_found",
        message=error,
    )


def internal_server_error(error: str = "Internal server error"):
    return build_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "failure",
        error="internal_server_error",
        message=error,
    )


def forbidden_error(error: str = "Access denied"):
    return build_response(
        status.HTTP_403_FORBIDDEN,
        "failure",
        error="forbidden",
        message=error,
    )


def booking_error_response(exc: BookingError):
    """Translate a booking-core failure into the matching error envelope."""
    if isinstance(exc, ValidationError):
        return bad_request_error(exc.message)
    if isinstance(exc, NotFoundError):
        return not_found_error(exc.message)
    if isinstance(exc, ConflictError):
        data = {"available_from": exc.available_from} if exc.available_from else None
        return conflict_error(exc.message, data=data)
    if isinstance(exc, StateError):
        return invalid_state_error(exc.message)
    if isinstance(exc, PermissionDeniedError):
        return forbidden_error(exc.message)
    logger.error("Unhandled booking error: %s", exc.message)
    return internal_server_error(exc.message)
