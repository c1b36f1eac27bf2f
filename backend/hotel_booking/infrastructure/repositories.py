from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import date
from decimal import Decimal
from typing import Any, AsyncIterator, List, Optional

from sqlalchemy import Select, delete, select, update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.errors import ConflictError, NotFound, RoomUnavailable, TransientStoreError
from ..models import Booking, BookingStatus, Room
from ..utils.time import utc_now_naive

logger = logging.getLogger(__name__)


def _status_filter(stmt: Select[Any], status: BookingStatus | None, today: date | None) -> Select[Any]:
    if status is None:
        return stmt
    if status == BookingStatus.CANCELLED or today is None:
        return stmt.where(Booking.status == status)
    # confirmed/completed split on check-out date at read time
    stmt = stmt.where(Booking.status == BookingStatus.CONFIRMED)
    if status == BookingStatus.COMPLETED:
        return stmt.where(Booking.end_date <= today)
    return stmt.where(Booking.end_date > today)


class SqlAlchemyBookingStore:
    """BookingStore backed by an AsyncSession.

    Atomicity comes from row locks: the room row is locked with
    ``SELECT ... FOR UPDATE`` before the overlap re-check, so concurrent
    creates on one room serialize until the caller's transaction ends.
    Reads made under that lock are locking reads too, so they see rows
    committed by the writer that held the lock before us instead of an
    older REPEATABLE READ snapshot.
    """

    def __init__(self, session: AsyncSession, *, timeout: float = 5.0) -> None:
        self.session = session
        self.timeout = timeout

    @asynccontextmanager
    async def _guard(self, operation: str) -> AsyncIterator[None]:
        try:
            async with asyncio.timeout(self.timeout):
                yield
        except (TimeoutError, PoolTimeoutError) as exc:
            logger.warning("store operation %s timed out after %.1fs", operation, self.timeout)
            raise TransientStoreError(f"{operation} timed out") from exc
        except OperationalError as exc:
            logger.warning("store operation %s failed: %s", operation, exc.orig)
            raise TransientStoreError(f"{operation} failed") from exc

    async def find_room(self, room_id: int, *, for_update: bool = False) -> Room | None:
        stmt = select(Room).where(Room.id == room_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        async with self._guard("find_room"):
            result = await self.session.scalar(stmt)
        return result if isinstance(result, Room) else None

    async def find_live_bookings(self, room_id: int, *, for_update: bool = False) -> List[Booking]:
        stmt = select(Booking).where(
            Booking.room_id == room_id,
            Booking.status == BookingStatus.CONFIRMED,
        )
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        async with self._guard("find_live_bookings"):
            rows = await self.session.scalars(stmt)
            return list(rows.all())

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
    ) -> Booking:
        async with self._guard("insert_if_no_conflict"):
            room = await self.session.scalar(
                select(Room)
                .where(Room.id == room_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            if not isinstance(room, Room):
                raise NotFound("room not found")
            if idempotency_key is not None:
                replay = await self.session.scalar(
                    select(Booking)
                    .where(Booking.user_id == user_id, Booking.idempotency_key == idempotency_key)
                    .with_for_update()
                )
                if isinstance(replay, Booking):
                    logger.info("replaying booking %s for idempotency key %s under lock", replay.id, idempotency_key)
                    return replay
            if not room.is_enabled:
                raise RoomUnavailable("room is not available")
            overlapping = await self.session.scalar(
                select(Booking.id)
                .where(
                    Booking.room_id == room_id,
                    Booking.status == BookingStatus.CONFIRMED,
                    Booking.start_date < end_date,
                    Booking.end_date > start_date,
                )
                .with_for_update()
            )
            if overlapping is not None:
                raise ConflictError(f"room {room_id} was booked concurrently (booking {overlapping})")

            now = utc_now_naive()
            booking = Booking(
                room_id=room_id,
                hotel_id=hotel_id,
                user_id=user_id,
                start_date=start_date,
                end_date=end_date,
                guest_count=guest_count,
                status=BookingStatus.CONFIRMED,
                total_price=total_price,
                special_requests=special_requests,
                idempotency_key=idempotency_key,
                created_at=now,
                updated_at=now,
            )
            self.session.add(booking)
            try:
                await self.session.flush()
            except IntegrityError as exc:
                # (user_id, idempotency_key) already taken by a booking on another room
                raise ConflictError(f"idempotency key {idempotency_key!r} is already used") from exc
        return booking

    async def update_booking_status(self, booking_id: int, status: BookingStatus) -> Booking:
        async with self._guard("update_booking_status"):
            booking = await self.session.get(Booking, booking_id)
            if booking is None:
                raise NotFound("booking not found")
            now = utc_now_naive()
            booking.status = status
            booking.updated_at = now
            if status == BookingStatus.CANCELLED:
                booking.cancelled_at = now
            await self.session.flush()
        return booking

    async def set_room_availability(self, room_id: int, available: bool) -> None:
        async with self._guard("set_room_availability"):
            await self.session.execute(
                update(Room)
                .where(Room.id == room_id)
                .values(is_available=available, updated_at=utc_now_naive())
                .execution_options(synchronize_session="fetch")
            )

    async def set_room_enabled(self, room_id: int, enabled: bool) -> Room:
        async with self._guard("set_room_enabled"):
            room = await self.session.scalar(select(Room).where(Room.id == room_id).with_for_update())
            if room is None:
                raise NotFound("room not found")
            room.is_enabled = enabled
            room.updated_at = utc_now_naive()
            await self.session.flush()
        return room

    async def find_booking(self, booking_id: int, *, for_update: bool = False) -> Booking | None:
        stmt = select(Booking).where(Booking.id == booking_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        async with self._guard("find_booking"):
            result = await self.session.scalar(stmt)
        return result if isinstance(result, Booking) else None

    async def find_by_idempotency_key(self, user_id: int, key: str) -> Optional[Booking]:
        stmt = select(Booking).where(Booking.user_id == user_id, Booking.idempotency_key == key)
        async with self._guard("find_by_idempotency_key"):
            result = await self.session.scalar(stmt)
        return result if isinstance(result, Booking) else None

    async def delete_booking(self, booking_id: int) -> None:
        async with self._guard("delete_booking"):
            await self.session.execute(delete(Booking).where(Booking.id == booking_id))

    async def list_by_user(
        self,
        user_id: int,
        *,
        status: BookingStatus | None = None,
        today: date | None = None,
        offset: int = 0,
        limit: int = 10,
    ) -> List[Booking]:
        stmt: Select[Any] = select(Booking).where(Booking.user_id == user_id)
        stmt = _status_filter(stmt, status, today)
        stmt = stmt.order_by(Booking.created_at.desc()).offset(offset).limit(limit)
        async with self._guard("list_by_user"):
            rows = await self.session.scalars(stmt)
            return list(rows.all())

    async def list_all(
        self,
        *,
        status: BookingStatus | None = None,
        today: date | None = None,
        hotel_id: int | None = None,
        user_id: int | None = None,
        offset: int = 0,
        limit: int = 10,
    ) -> List[Booking]:
        stmt: Select[Any] = select(Booking)
        stmt = _status_filter(stmt, status, today)
        if hotel_id is not None:
            stmt = stmt.where(Booking.hotel_id == hotel_id)
        if user_id is not None:
            stmt = stmt.where(Booking.user_id == user_id)
        stmt = stmt.order_by(Booking.created_at.desc()).offset(offset).limit(limit)
        async with self._guard("list_all"):
            rows = await self.session.scalars(stmt)
            return list(rows.all())
