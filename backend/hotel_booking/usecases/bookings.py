import logging
from datetime import date

from ..domain.date_range import DateRange
from ..domain.errors import (
    AlreadyCancelled,
    ConflictError,
    Forbidden,
    InvalidRange,
    NotFound,
    TooLateToCancel,
)
from ..domain.pricing import price
from ..domain.repositories import BookingStore
from ..domain.services import RoomSnapshot, booking_range, is_live, validate_booking
from ..models import Booking, BookingStatus, UserRole
from ..utils.time import hotel_today
from .availability import resync_room_availability

logger = logging.getLogger(__name__)


async def create_booking(
    store: BookingStore,
    *,
    room_id: int,
    user_id: int,
    date_range: DateRange,
    guest_count: int,
    special_requests: str | None = None,
    idempotency_key: str | None = None,
    today: date | None = None,
) -> Booking:
    today = today or hotel_today()
    if date_range.start < today:
        raise InvalidRange("start date cannot be in the past")

    # Lock the room before any other read so later reads see committed rows.
    room = await store.find_room(room_id, for_update=True)
    if room is None:
        raise NotFound("room not found")

    if idempotency_key is not None:
        existing = await store.find_by_idempotency_key(user_id, idempotency_key)
        if existing is not None:
            logger.info("replaying booking %s for idempotency key %s", existing.id, idempotency_key)
            return existing

    live = await store.find_live_bookings(room_id, for_update=True)
    snapshot = RoomSnapshot(
        is_enabled=room.is_enabled,
        max_guests=room.max_guests,
        live_ranges=tuple(booking_range(b) for b in live if is_live(b)),
    )
    validate_booking(snapshot, date_range=date_range, guest_count=guest_count)

    total_price = price(date_range, room.price_per_night)
    try:
        booking = await store.insert_if_no_conflict(
            room_id=room.id,
            hotel_id=room.hotel_id,
            user_id=user_id,
            start_date=date_range.start,
            end_date=date_range.end,
            guest_count=guest_count,
            total_price=total_price,
            special_requests=special_requests,
            idempotency_key=idempotency_key,
        )
    except ConflictError:
        logger.warning("late conflict on room %s for %s..%s", room_id, date_range.start, date_range.end)
        raise

    await resync_room_availability(store, room_id=room.id, today=today)
    return booking


async def cancel_booking(
    store: BookingStore,
    *,
    booking_id: int,
    requester_id: int,
    requester_role: UserRole,
    today: date | None = None,
) -> tuple[Booking, BookingStatus]:
    """Cancel a confirmed booking strictly before its stay begins.

    Returns the updated booking and the status it had before cancellation.
    """
    today = today or hotel_today()
    booking = await store.find_booking(booking_id, for_update=True)
    if booking is None:
        raise NotFound("booking not found")
    if booking.user_id != requester_id and requester_role != UserRole.ADMIN:
        raise Forbidden("not authorized to cancel this booking")
    if booking.status == BookingStatus.CANCELLED:
        raise AlreadyCancelled("booking is already cancelled")
    # Stays that started today or earlier, including derived completed ones, are final.
    if booking.start_date <= today:
        raise TooLateToCancel("cannot cancel a booking that has already started")

    previous = booking.status
    updated = await store.update_booking_status(booking.id, BookingStatus.CANCELLED)
    await resync_room_availability(store, room_id=updated.room_id, today=today)
    return updated, previous


async def delete_booking(
    store: BookingStore,
    *,
    booking_id: int,
    requester_role: UserRole,
    today: date | None = None,
) -> Booking:
    """Administrative hard delete; bypasses the cancellation rules."""
    if requester_role != UserRole.ADMIN:
        raise Forbidden("only administrators can delete bookings")
    booking = await store.find_booking(booking_id, for_update=True)
    if booking is None:
        raise NotFound("booking not found")
    await store.delete_booking(booking.id)
    await resync_room_availability(store, room_id=booking.room_id, today=today)
    return booking


async def get_booking(
    store: BookingStore,
    *,
    booking_id: int,
    requester_id: int,
    requester_role: UserRole,
) -> Booking:
    booking = await store.find_booking(booking_id)
    if booking is None:
        raise NotFound("booking not found")
    if booking.user_id != requester_id and requester_role != UserRole.ADMIN:
        raise Forbidden("not authorized to view this booking")
    return booking


async def list_user_bookings(
    store: BookingStore,
    *,
    user_id: int,
    status: BookingStatus | None = None,
    page: int = 1,
    limit: int = 10,
    today: date | None = None,
) -> list[Booking]:
    return await store.list_by_user(
        user_id,
        status=status,
        today=today or hotel_today(),
        offset=(page - 1) * limit,
        limit=limit,
    )


async def list_all_bookings(
    store: BookingStore,
    *,
    requester_role: UserRole,
    status: BookingStatus | None = None,
    hotel_id: int | None = None,
    user_id: int | None = None,
    page: int = 1,
    limit: int = 10,
    today: date | None = None,
) -> list[Booking]:
    if requester_role != UserRole.ADMIN:
        raise Forbidden("only administrators can list all bookings")
    return await store.list_all(
        status=status,
        today=today or hotel_today(),
        hotel_id=hotel_id,
        user_id=user_id,
        offset=(page - 1) * limit,
        limit=limit,
    )

