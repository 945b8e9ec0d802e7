"""
Error taxonomy for the reservation and facility services.

Services raise these; the handlers registered in main.py turn them into
``{"message": ...}`` JSON bodies with the status code carried by the class.
Nothing here is retried automatically.
"""

from datetime import date
from typing import Optional

from fastapi import status


class ZooAPIError(Exception):
    """Base class for all errors that are safe to show to the caller."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "An unexpected error occurred."
    error_code = "INTERNAL_ERROR"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# 4xx

class ValidationError(ZooAPIError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Missing or malformed request data."
    error_code = "VALIDATION_ERROR"


class UnauthorizedError(ZooAPIError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication credentials were not provided or are invalid."
    error_code = "UNAUTHORIZED"


class ForbiddenError(ZooAPIError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "You do not have permission to perform this action."
    error_code = "FORBIDDEN"


class NotFoundError(ZooAPIError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "The requested resource was not found."
    error_code = "NOT_FOUND"


class FacilityNotFound(NotFoundError):
    error_code = "FACILITY_NOT_FOUND"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Facility '{name}' not found")


class ReservationNotFound(NotFoundError):
    error_code = "RESERVATION_NOT_FOUND"

    def __init__(self, username: str, facility_name: str, visit_date: date):
        self.username = username
        self.facility_name = facility_name
        self.visit_date = visit_date
        super().__init__(
            f"Reservation of {username} for '{facility_name}' "
            f"on {visit_date.isoformat()} not found"
        )


class CapacityExceeded(ZooAPIError):
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "CAPACITY_EXCEEDED"

    def __init__(self, facility_name: str, visit_date: date, remaining: int, requested: int):
        self.facility_name = facility_name
        self.visit_date = visit_date
        self.remaining = remaining
        self.requested = requested
        super().__init__(
            f"Remaining capacity for '{facility_name}' "
            f"on {visit_date.isoformat()} is {remaining} tickets, requested {requested}"
        )


class ConflictError(ZooAPIError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "A conflict occurred with the current state of the resource."
    error_code = "CONFLICT"


# 5xx

class TransactionFailure(ZooAPIError):
    """A multi-statement write failed and was rolled back."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Transaction failed, no changes were saved."
    error_code = "TRANSACTION_FAILED"


class CapacityInvariantError(ZooAPIError):
    """Stored bookings already exceed the facility's capacity."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Stored bookings exceed facility capacity."
    error_code = "CAPACITY_INVARIANT_VIOLATED"
