from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import Principal, get_booking_store, get_current_principal, get_session
from ..domain.date_range import DateRange
from ..domain.errors import BookingError, NotFound
from ..schemas import RoomAvailability, RoomEnabledUpdate, RoomRead
from ..usecases import availability as availability_usecase
from ..utils.audit_log import emit_audit_log
from .errors import audit_failed, to_http_exception

router = APIRouter(prefix="/rooms", tags=["rooms"], dependencies=[Depends(get_current_principal)])


@router.get("/{room_id}/availability", response_model=RoomAvailability)
async def check_availability(
    room_id: int = Path(..., ge=1),
    start: date = Query(..., description="check-in date (YYYY-MM-DD)"),
    end: date = Query(..., description="check-out date (YYYY-MM-DD)"),
    session: AsyncSession = Depends(get_session),
) -> RoomAvailability:
    store = get_booking_store(session)
    try:
        available = await availability_usecase.is_room_available(
            store,
            room_id=room_id,
            date_range=DateRange(start, end),
        )
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    return RoomAvailability(room_id=room_id, start_date=start, end_date=end, available=available)


@router.post("/{room_id}/resync", response_model=RoomRead)
async def resync_room(
    room_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    principal: Principal = Depends(get_current_principal),
) -> RoomRead:
    if not principal.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="administrators only")
    store = get_booking_store(session)
    try:
        async with session.begin():
            available = await availability_usecase.resync_room_availability(store, room_id=room_id)
            room = await store.find_room(room_id)
            if room is None:
                raise NotFound("room not found")
    except BookingError as exc:
        raise to_http_exception(exc) from exc

    try:
        emit_audit_log(
            action="room.resynced",
            initiator="admin",
            booking_id=None,
            room_id=room_id,
            hotel_id=room.hotel_id,
            extra={"is_available": available},
        )
    except RuntimeError as exc:
        raise audit_failed() from exc
    return RoomRead.from_db(room=room, is_available=available)


@router.patch("/{room_id}/enabled", response_model=RoomRead)
async def set_room_enabled(
    payload: RoomEnabledUpdate,
    room_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    principal: Principal = Depends(get_current_principal),
) -> RoomRead:
    store = get_booking_store(session)
    try:
        async with session.begin():
            room = await availability_usecase.set_room_enabled(
                store,
                room_id=room_id,
                enabled=payload.enabled,
                requester_role=principal.role,
            )
    except BookingError as exc:
        raise to_http_exception(exc) from exc

    try:
        emit_audit_log(
            action="room.enabled_changed",
            initiator="admin",
            booking_id=None,
            room_id=room_id,
            hotel_id=room.hotel_id,
            extra={"is_enabled": room.is_enabled},
        )
    except RuntimeError as exc:
        raise audit_failed() from exc
    return RoomRead.from_db(room=room)
