"""
Booking error taxonomy.

Every failure that reaches a caller of the booking layer is one of these,
so the HTTP layer and the stepper can map them to a recovery step.
"""


class BookingError(Exception):
    """Base exception for booking errors."""
    code = "BOOKING_ERROR"


class StoreUnavailableError(BookingError):
    """Raised when the store cannot be reached or returns an unexpected error."""
    code = "STORE_UNAVAILABLE"


class DuplicateBookingError(BookingError):
    """Raised when the requested slot is already held by a confirmed booking."""
    code = "DUPLICATE_BOOKING"


class DateDisabledError(BookingError):
    """Raised when the requested date is closed for bookings."""
    code = "DATE_DISABLED"


class BookingValidationError(BookingError):
    """Raised when customer details fail validation."""
    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str = None):
        super().__init__(message)
        self.field = field


class DisabledDateExistsError(BookingError):
    """Raised when an admin disables a date that is already disabled."""
    code = "DISABLED_DATE_EXISTS"


class BookingNotFoundError(BookingError):
    code = "NOT_FOUND"
