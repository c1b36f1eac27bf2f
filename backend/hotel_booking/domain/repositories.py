from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Protocol

from ..models import Booking, BookingStatus, Room


class BookingStore(Protocol):
    """Persistence port of the booking engine.

    ``insert_if_no_conflict`` must re-check the idempotency key, the room's
    enabled switch and overlaps, then insert, as one atomic unit with respect
    to other writers on the same room. It returns the stored booking when the
    key was already used and raises ``ConflictError`` when a live booking
    already overlaps. Every method may raise ``TransientStoreError``.
    """

    async def find_room(self, room_id: int, *, for_update: bool = False) -> Room | None: ...

    async def find_live_bookings(self, room_id: int, *, for_update: bool = False) -> list[Booking]: ...

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
        special_requests: str | None,
        idempotency_key: str | None,
    ) -> Booking: ...

    async def update_booking_status(self, booking_id: int, status: BookingStatus) -> Booking: ...

    async def set_room_availability(self, room_id: int, available: bool) -> None: ...

    async def set_room_enabled(self, room_id: int, enabled: bool) -> Room: ...

    async def find_booking(self, booking_id: int, *, for_update: bool = False) -> Booking | None: ...

    async def find_by_idempotency_key(self, user_id: int, key: str) -> Booking | None: ...

    async def delete_booking(self, booking_id: int) -> None: ...

    async def list_by_user(
        self,
        user_id: int,
        *,
        status: BookingStatus | None = None,
        today: date | None = None,
        offset: int = 0,
        limit: int = 10,
    ) -> list[Booking]: ...

    async def list_all(
        self,
        *,
        status: BookingStatus | None = None,
        today: date | None = None,
        hotel_id: int | None = None,
        user_id: int | None = None,
        offset: int = 0,
        limit: int = 10,
    ) -> list[Booking]: ...
