import asyncio
import itertools
from collections import defaultdict
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

import pytest
from hotel_booking.domain.errors import ConflictError, NotFound, RoomUnavailable
from hotel_booking.models import Booking, BookingStatus, Room


def _utc_now_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class InMemoryBookingStore:
    """BookingStore double with a per-room lock around check+insert.

    Every method yields to the event loop once so concurrent callers interleave
    the way they would against a real database.
    """

    def __init__(self) -> None:
        self.rooms: dict[int, Room] = {}
        self.bookings: dict[int, Booking] = {}
        self.availability_writes: list[tuple[int, bool]] = []
        self._locks: defaultdict[int, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._ids = itertools.count(1)

    def add_room(
        self,
        *,
        room_id: int = 1,
        hotel_id: int = 1,
        price_per_night: Decimal = Decimal("100.00"),
        max_guests: int = 2,
        is_enabled: bool = True,
    ) -> Room:
        now = _utc_now_naive()
        room = Room(
            id=room_id,
            hotel_id=hotel_id,
            room_number=f"{room_id:03d}",
            price_per_night=price_per_night,
            max_guests=max_guests,
            is_enabled=is_enabled,
            is_available=True,
            created_at=now,
            updated_at=now,
        )
        self.rooms[room_id] = room
        return room

    def add_booking(
        self,
        *,
        room_id: int,
        start: date,
        end: date,
        user_id: int = 1,
        status: BookingStatus = BookingStatus.CONFIRMED,
    ) -> Booking:
        now = _utc_now_naive()
        booking = Booking(
            id=next(self._ids),
            user_id=user_id,
            room_id=room_id,
            hotel_id=self.rooms[room_id].hotel_id,
            start_date=start,
            end_date=end,
            guest_count=1,
            status=status,
            total_price=Decimal("0.00"),
            special_requests=None,
            idempotency_key=None,
            cancelled_at=None,
            created_at=now,
            updated_at=now,
        )
        self.bookings[booking.id] = booking
        return booking

    async def find_room(self, room_id: int, *, for_update: bool = False) -> Optional[Room]:
        await asyncio.sleep(0)
        return self.rooms.get(room_id)

    async def find_live_bookings(self, room_id: int, *, for_update: bool = False) -> list[Booking]:
        await asyncio.sleep(0)
        return [b for b in self.bookings.values() if b.room_id == room_id and b.status == BookingStatus.CONFIRMED]

    async def insert_if_no_conflict(
        self,
        *,
        room_id: int,
        hotel_id: int,
        user_id: int,
        start_date: date,
        end_date: date,
        guest_count: int,
        total_price: Decimal,
        special_requests: Optional[str],
        idempotency_key: Optional[str],
    ) -> Booking:
        async with self._locks[room_id]:
            await asyncio.sleep(0)
            if idempotency_key is not None:
                replay = await self.find_by_idempotency_key(user_id, idempotency_key)
                if replay is not None:
                    return replay
            if not self.rooms[room_id].is_enabled:
                raise RoomUnavailable("room is not available")
            for existing in self.bookings.values():
                if (
                    existing.room_id == room_id
                    and existing.status == BookingStatus.CONFIRMED
                    and existing.start_date < end_date
                    and start_date < existing.end_date
                ):
                    raise ConflictError(f"room {room_id} was booked concurrently")
            booking = self.add_booking(room_id=room_id, start=start_date, end=end_date, user_id=user_id)
            booking.guest_count = guest_count
            booking.total_price = total_price
            booking.special_requests = special_requests
            booking.idempotency_key = idempotency_key
            return booking

    async def update_booking_status(self, booking_id: int, status: BookingStatus) -> Booking:
        await asyncio.sleep(0)
        booking = self.bookings.get(booking_id)
        if booking is None:
            raise NotFound("booking not found")
        booking.status = status
        if status == BookingStatus.CANCELLED:
            booking.cancelled_at = _utc_now_naive()
        return booking

    async def set_room_availability(self, room_id: int, available: bool) -> None:
        await asyncio.sleep(0)
        self.availability_writes.append((room_id, available))
        self.rooms[room_id].is_available = available

    async def set_room_enabled(self, room_id: int, enabled: bool) -> Room:
        room = self.rooms.get(room_id)
        if room is None:
            raise NotFound("room not found")
        room.is_enabled = enabled
        return room

    async def find_booking(self, booking_id: int, *, for_update: bool = False) -> Optional[Booking]:
        await asyncio.sleep(0)
        return self.bookings.get(booking_id)

    async def find_by_idempotency_key(self, user_id: int, key: str) -> Optional[Booking]:
        for booking in self.bookings.values():
            if booking.user_id == user_id and booking.idempotency_key == key:
                return booking
        return None

    async def delete_booking(self, booking_id: int) -> None:
        self.bookings.pop(booking_id, None)

    async def list_by_user(self, user_id: int, **kwargs: object) -> list[Booking]:
        return [b for b in self.bookings.values() if b.user_id == user_id]

    async def list_all(self, **kwargs: object) -> list[Booking]:
        return list(self.bookings.values())


@pytest.fixture
def store() -> InMemoryBookingStore:
    return InMemoryBookingStore()
