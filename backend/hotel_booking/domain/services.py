from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from ..models import Booking, BookingStatus
from .date_range import DateRange, overlaps
from .errors import CapacityExceeded, InvalidInput, RoomUnavailable


@dataclass(frozen=True)
class RoomSnapshot:
    is_enabled: bool
    max_guests: int
    live_ranges: tuple[DateRange, ...]


def booking_range(booking: Booking) -> DateRange:
    return DateRange(booking.start_date, booking.end_date)


def is_live(booking: Booking) -> bool:
    return booking.status == BookingStatus.CONFIRMED


def effective_status(booking: Booking, today: date) -> BookingStatus:
    """Read-time status: a confirmed stay whose check-out has been reached reads as completed."""
    if booking.status == BookingStatus.CONFIRMED and booking.end_date <= today:
        return BookingStatus.COMPLETED
    return booking.status


def find_conflict(live_ranges: Iterable[DateRange], candidate: DateRange) -> Optional[DateRange]:
    for existing in live_ranges:
        if overlaps(existing, candidate):
            return existing
    return None


def occupied_from(live_ranges: Iterable[DateRange], today: date) -> bool:
    """True if any range still covers today or a later night."""
    return any(r.end > today for r in live_ranges)


def validate_booking(snapshot: RoomSnapshot, *, date_range: DateRange, guest_count: int) -> None:
    """
    Pure validation against a room snapshot: capacity first, then the
    administrative switch, then overlap with live bookings.
    """
    if guest_count < 1:
        raise InvalidInput("at least one guest is required")
    if guest_count > snapshot.max_guests:
        raise CapacityExceeded(f"room can accommodate maximum {snapshot.max_guests} guests")
    if not snapshot.is_enabled:
        raise RoomUnavailable("room is not available")
    if find_conflict(snapshot.live_ranges, date_range) is not None:
        raise RoomUnavailable("room is not available for the selected dates")
