"""
Domain exceptions raised by the booking core and the read layer.

Each exception carries the HTTP status it maps to, a short `error` title and a
human-readable `message`. The API layer renders them into the shared
`{success, error, message, details}` envelope; services never build HTTP
responses themselves.
"""

from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError


class DomainError(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = 500
    error: str = "Internal server error"

    def __init__(
        self,
        message: str,
        *,
        error: Optional[str] = None,
        details: Optional[Any] = None,
    ) -> None:
        self.message = message
        if error is not None:
            self.error = error
        self.details = details
        super().__init__(message)

    @property
    def code(self) -> str:
        return self.__class__.__name__


class ValidationError(DomainError):
    """Malformed or missing input. `details` lists every violated rule."""

    status_code = 400
    error = "Validation failed"


class NotFoundError(DomainError):
    status_code = 404
    error = "Resource not found"


class ExperienceNotFound(NotFoundError):
    error = "Experience not found"

    def __init__(self, experience_id: int) -> None:
        super().__init__(f"No experience found with ID {experience_id}")
        self.experience_id = experience_id


class SlotNotFound(NotFoundError):
    error = "Slot not found"

    def __init__(self, slot_id: int, experience_id: Optional[int] = None) -> None:
        if experience_id is None:
            message = f"No slot found with ID {slot_id}"
        else:
            message = "Slot not found or does not belong to this experience"
        super().__init__(message)
        self.slot_id = slot_id
        self.experience_id = experience_id


class BookingNotFound(NotFoundError):
    error = "Booking not found"

    def __init__(self, booking_id: int) -> None:
        super().__init__(f"No booking found with ID {booking_id}")
        self.booking_id = booking_id


class CapacityError(DomainError):
    status_code = 400
    error = "Slot not available"


class InsufficientCapacity(CapacityError):
    """Raised under the slot lock when the remaining spots cannot cover the request."""

    error = "Booking failed"

    def __init__(self, available: int, requested: int) -> None:
        super().__init__(
            f"Not enough spots available. Only {available} spot(s) remaining.",
            details={"available_spots": available, "requested": requested},
        )
        self.available = available
        self.requested = requested


class ConflictError(DomainError):
    status_code = 400
    error = "Conflict"


class AlreadyCancelled(ConflictError):
    error = "Booking already cancelled"

    def __init__(self, booking_id: int) -> None:
        super().__init__("Booking is already cancelled")
        self.booking_id = booking_id


class PromoRejected(ConflictError):
    error = "Invalid promo code"


class StaleDiscount(ConflictError):
    """The discount computed at validation time no longer matches the locked promo state."""

    error = "Promo code changed"

    def __init__(self, expected, actual) -> None:
        super().__init__(
            "The promo code discount has changed since it was validated. "
            "Please re-validate the code and try again.",
            details={"expected": str(expected), "actual": str(actual)},
        )


# SQLSTATE -> (status, error, message)
_STORE_ERROR_CODES = {
    "23505": (409, "Duplicate entry", "This record already exists"),
    "23503": (400, "Invalid reference", "Referenced record does not exist"),
    "23502": (400, "Missing required field", "A required field is missing"),
    "22P02": (400, "Invalid data format", "Data format is incorrect"),
    "23514": (409, "Constraint violation", "The change would violate a data constraint"),
}


def _sqlstate(exc: SQLAlchemyError) -> Optional[str]:
    orig = getattr(exc, "orig", None)
    for candidate in (orig, getattr(orig, "__cause__", None)):
        if candidate is None:
            continue
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if code:
            return str(code)
    return None


class StoreError(DomainError):
    """Constraint violation or connectivity failure reported by the database."""

    status_code = 500
    error = "Database error"

    def __init__(
        self,
        message: str,
        *,
        status_code: int = 500,
        error: Optional[str] = None,
        sqlstate: Optional[str] = None,
    ) -> None:
        super().__init__(message, error=error, details={"code": sqlstate} if sqlstate else None)
        self.status_code = status_code
        self.sqlstate = sqlstate

    @classmethod
    def from_exception(cls, exc: SQLAlchemyError) -> "StoreError":
        sqlstate = _sqlstate(exc)
        if sqlstate in _STORE_ERROR_CODES:
            status_code, error, message = _STORE_ERROR_CODES[sqlstate]
            return cls(message, status_code=status_code, error=error, sqlstate=sqlstate)
        return cls(
            "The operation could not be completed, please retry",
            sqlstate=sqlstate,
        )


class InternalError(DomainError):
    status_code = 500
    error = "Internal server error"


class InvariantViolation(InternalError):
    """A counter update would break `0 <= booked_count <= capacity`."""
