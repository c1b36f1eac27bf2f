from datetime import date
from decimal import Decimal

import pytest
from hotel_booking.domain.date_range import DateRange
from hotel_booking.domain.errors import CapacityExceeded, InvalidInput, RoomUnavailable
from hotel_booking.domain.services import (
    RoomSnapshot,
    effective_status,
    find_conflict,
    occupied_from,
    validate_booking,
)
from hotel_booking.models import Booking, BookingStatus

JAN_1_5 = DateRange(date(2024, 1, 1), date(2024, 1, 5))


def _booking(start: date, end: date, status: BookingStatus) -> Booking:
    return Booking(
        id=1,
        user_id=1,
        room_id=1,
        hotel_id=1,
        start_date=start,
        end_date=end,
        guest_count=1,
        status=status,
        total_price=Decimal("0.00"),
    )


def test_rejects_when_guests_exceed_capacity() -> None:
    snap = RoomSnapshot(is_enabled=True, max_guests=2, live_ranges=())
    with pytest.raises(CapacityExceeded):
        validate_booking(snap, date_range=JAN_1_5, guest_count=3)


def test_rejects_zero_guests() -> None:
    snap = RoomSnapshot(is_enabled=True, max_guests=2, live_ranges=())
    with pytest.raises(InvalidInput):
        validate_booking(snap, date_range=JAN_1_5, guest_count=0)


def test_rejects_disabled_room_even_without_bookings() -> None:
    snap = RoomSnapshot(is_enabled=False, max_guests=2, live_ranges=())
    with pytest.raises(RoomUnavailable):
        validate_booking(snap, date_range=JAN_1_5, guest_count=1)


def test_rejects_overlap_with_live_range() -> None:
    snap = RoomSnapshot(is_enabled=True, max_guests=2, live_ranges=(JAN_1_5,))
    with pytest.raises(RoomUnavailable):
        validate_booking(snap, date_range=DateRange(date(2024, 1, 3), date(2024, 1, 6)), guest_count=1)


def test_accepts_adjacent_range() -> None:
    snap = RoomSnapshot(is_enabled=True, max_guests=2, live_ranges=(JAN_1_5,))
    validate_booking(snap, date_range=DateRange(date(2024, 1, 5), date(2024, 1, 8)), guest_count=2)


def test_find_conflict_returns_first_overlap() -> None:
    later = DateRange(date(2024, 1, 10), date(2024, 1, 12))
    assert find_conflict([JAN_1_5, later], DateRange(date(2024, 1, 11), date(2024, 1, 13))) == later
    assert find_conflict([JAN_1_5, later], DateRange(date(2024, 1, 5), date(2024, 1, 10))) is None


def test_occupied_from_ignores_ranges_that_ended() -> None:
    assert occupied_from([JAN_1_5], date(2024, 1, 4)) is True
    assert occupied_from([JAN_1_5], date(2024, 1, 5)) is False


def test_confirmed_stay_reads_completed_after_checkout() -> None:
    booking = _booking(date(2024, 1, 1), date(2024, 1, 5), BookingStatus.CONFIRMED)
    assert effective_status(booking, date(2024, 1, 4)) == BookingStatus.CONFIRMED
    assert effective_status(booking, date(2024, 1, 5)) == BookingStatus.COMPLETED


def test_cancelled_stays_cancelled() -> None:
    booking = _booking(date(2024, 1, 1), date(2024, 1, 5), BookingStatus.CANCELLED)
    assert effective_status(booking, date(2024, 2, 1)) == BookingStatus.CANCELLED
