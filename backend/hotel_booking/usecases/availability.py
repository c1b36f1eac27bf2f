import logging
from datetime import date
from typing import Iterable

from ..domain.date_range import DateRange
from ..domain.errors import Forbidden, NotFound
from ..domain.repositories import BookingStore
from ..domain.services import booking_range, find_conflict, is_live, occupied_from
from ..models import Room, UserRole
from ..utils.time import hotel_today

logger = logging.getLogger(__name__)


async def is_room_available(
    store: BookingStore,
    *,
    room_id: int,
    date_range: DateRange,
) -> bool:
    """
    Advisory read: False when the room is administratively disabled or a live
    booking overlaps ``date_range``. Writers must re-check inside the atomic insert.
    """
    room = await store.find_room(room_id)
    if room is None:
        raise NotFound("room not found")
    if not room.is_enabled:
        return False
    live = await store.find_live_bookings(room_id)
    return find_conflict((booking_range(b) for b in live if is_live(b)), date_range) is None


async def resync_room_availability(
    store: BookingStore,
    *,
    room_id: int,
    today: date | None = None,
) -> bool:
    """Recompute ``Room.is_available`` from the full live booking set and return it."""
    today = today or hotel_today()
    room = await store.find_room(room_id, for_update=True)
    if room is None:
        raise NotFound("room not found")
    live = await store.find_live_bookings(room_id, for_update=True)
    available = not occupied_from((booking_range(b) for b in live if is_live(b)), today)
    await store.set_room_availability(room_id, available)
    if room.is_available != available:
        logger.info("room %s availability %s -> %s", room_id, room.is_available, available)
    return available


async def resync_rooms(
    store: BookingStore,
    *,
    room_ids: Iterable[int],
    today: date | None = None,
) -> dict[int, bool]:
    today = today or hotel_today()
    return {room_id: await resync_room_availability(store, room_id=room_id, today=today) for room_id in room_ids}


async def set_room_enabled(
    store: BookingStore,
    *,
    room_id: int,
    enabled: bool,
    requester_role: UserRole,
    today: date | None = None,
) -> Room:
    if requester_role != UserRole.ADMIN:
        raise Forbidden("only administrators can enable or disable rooms")
    room = await store.set_room_enabled(room_id, enabled)
    await resync_room_availability(store, room_id=room_id, today=today)
    return room
