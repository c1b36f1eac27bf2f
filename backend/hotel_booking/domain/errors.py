class BookingError(Exception):
    """Base class for every error the booking engine surfaces to callers."""


class InvalidRange(BookingError):
    pass


class InvalidInput(BookingError):
    pass


class CapacityExceeded(BookingError):
    pass


class RoomUnavailable(BookingError):
    pass


class ConflictError(RoomUnavailable):
    """Overlap detected inside the atomic insert, after the advisory check passed."""


class NotFound(BookingError):
    pass


class Forbidden(BookingError):
    pass


class AlreadyCancelled(BookingError):
    pass


class TooLateToCancel(BookingError):
    pass


class TransientStoreError(BookingError):
    """Store timed out or was unreachable. Safe to retry with the same idempotency key."""
