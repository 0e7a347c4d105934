"""
Booking domain errors.

Every error carries the HTTP status and a machine readable code so the API layer
can render it without knowing the individual classes.
"""

from typing import Any, Dict, Optional

from fastapi import status


class BookingError(Exception):
    """Base class for errors raised by the booking services."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "booking_error"

    def __init__(self, detail: str, extra_data: Optional[Dict[str, Any]] = None):
        super().__init__(detail)
        self.detail = detail
        self.extra_data = extra_data or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.detail, "error": self.error_code, **self.extra_data}


class ValidationError(BookingError):
    """Malformed input, e.g. missing or misordered times."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "validation_error"


class NotFoundError(BookingError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "not_found"


class ConflictError(BookingError):
    """The room already holds an active booking overlapping the requested interval."""

    status_code = status.HTTP_409_CONFLICT
    error_code = "booking_conflict"

    def __init__(self, start_time, end_time, user_name, user_email, organization_name):
        super().__init__(
            f"Room is already booked from {start_time.isoformat()} to {end_time.isoformat()}",
            {
                "conflict": {
                    "start_time": start_time.isoformat(),
                    "end_time": end_time.isoformat(),
                    "user_name": user_name,
                    "user_email": user_email,
                    "organization_name": organization_name,
                }
            },
        )
        self.start_time = start_time
        self.end_time = end_time
        self.user_name = user_name
        self.user_email = user_email
        self.organization_name = organization_name


class DuplicateRequestError(BookingError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "duplicate_request"


class ForbiddenError(BookingError):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "forbidden"


class StateConflictError(BookingError):
    """The requested transition is not allowed from the current status."""

    status_code = status.HTTP_409_CONFLICT
    error_code = "invalid_state"

    def __init__(self, current_status, action: str):
        current = getattr(current_status, "value", current_status)
        super().__init__(
            f"Cannot {action} a booking that is {current}",
            {"current_status": current},
        )
        self.current_status = current_status


class ScopeError(BookingError):
    """The actor's role requires an organization they do not belong to."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "missing_organization"
