"""Domain Exceptions - Booking error taxonomy"""
from enum import Enum
from datetime import date
from typing import Optional, Union
from uuid import UUID

from domain.enums import BookingStatus


class BookingErrorCode(str, Enum):
    BOOKING_NOT_FOUND = "BOOKING_NOT_FOUND"
    PROPERTY_NOT_FOUND = "PROPERTY_NOT_FOUND"
    PROPERTY_NOT_AVAILABLE = "PROPERTY_NOT_AVAILABLE"
    MIN_NIGHTS_REQUIRED = "MIN_NIGHTS_REQUIRED"
    MAX_GUESTS_EXCEEDED = "MAX_GUESTS_EXCEEDED"
    DATES_UNAVAILABLE = "DATES_UNAVAILABLE"
    NOT_AUTHORIZED = "NOT_AUTHORIZED"
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"


class BookingError(ValueError):
    """Base class for every business-rule failure of the booking core.

    Callers can branch on ``code`` alone; each code has exactly one subclass.
    """

    code: BookingErrorCode

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BookingNotFoundError(BookingError):
    code = BookingErrorCode.BOOKING_NOT_FOUND

    def __init__(self, booking_id: Union[UUID, str]):
        super().__init__(f"Booking not found: {booking_id}")
        self.booking_id = booking_id


class PropertyNotFoundError(BookingError):
    code = BookingErrorCode.PROPERTY_NOT_FOUND

    def __init__(self, property_id: Union[UUID, str]):
        super().__init__(f"Property not found: {property_id}")
        self.property_id = property_id


class PropertyNotAvailableError(BookingError):
    code = BookingErrorCode.PROPERTY_NOT_AVAILABLE

    def __init__(self, property_id: Union[UUID, str]):
        super().__init__(f"Property is not available for booking: {property_id}")
        self.property_id = property_id


class MinNightsRequiredError(BookingError):
    code = BookingErrorCode.MIN_NIGHTS_REQUIRED

    def __init__(self, min_nights: int):
        super().__init__(f"Minimum {min_nights} nights required")
        self.min_nights = min_nights


class MaxGuestsExceededError(BookingError):
    code = BookingErrorCode.MAX_GUESTS_EXCEEDED

    def __init__(self, max_guests: int):
        super().__init__(f"Maximum {max_guests} guests allowed")
        self.max_guests = max_guests


class DatesUnavailableError(BookingError):
    code = BookingErrorCode.DATES_UNAVAILABLE

    def __init__(self, check_in: date, check_out: date):
        super().__init__(f"Dates unavailable: {check_in} to {check_out}")
        self.check_in = check_in
        self.check_out = check_out


class NotAuthorizedError(BookingError):
    code = BookingErrorCode.NOT_AUTHORIZED

    def __init__(self, message: str = "Not authorized to perform this action"):
        super().__init__(message)


class InvalidStatusTransitionError(BookingError):
    code = BookingErrorCode.INVALID_STATUS_TRANSITION

    def __init__(
        self,
        current: BookingStatus,
        target: BookingStatus,
        reason: Optional[str] = None
    ):
        message = f"Cannot transition from {current.value} to {target.value}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.current = current
        self.target = target
