from typing import List, Optional

from fastapi import APIRouter, Depends, Header, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import Principal, get_booking_store, get_current_principal, get_session
from ..domain.date_range import DateRange
from ..domain.errors import BookingError
from ..models import BookingStatus
from ..schemas import BookingCreate, BookingRead
from ..usecases import bookings as booking_usecase
from ..utils.audit_log import AuditInitiator, emit_audit_log
from ..utils.time import hotel_today
from .errors import audit_failed, to_http_exception

router = APIRouter(prefix="/bookings", tags=["bookings"])


def _initiator(principal: Principal) -> AuditInitiator:
    return "admin" if principal.is_admin else "user"


@router.post("", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingCreate,
    idempotency_key: Optional[str] = Header(default=None, max_length=64),
    session: AsyncSession = Depends(get_session),
    principal: Principal = Depends(get_current_principal),
) -> BookingRead:
    store = get_booking_store(session)
    today = hotel_today()
    try:
        date_range = DateRange(payload.start_date, payload.end_date)
        async with session.begin():
            booking = await booking_usecase.create_booking(
                store,
                room_id=payload.room_id,
                user_id=principal.user_id,
                date_range=date_range,
                guest_count=payload.guest_count,
                special_requests=payload.special_requests,
                idempotency_key=idempotency_key,
                today=today,
            )
    except BookingError as exc:
        raise to_http_exception(exc) from exc

    try:
        emit_audit_log(
            action="booking.created",
            initiator=_initiator(principal),
            booking_id=booking.id,
            room_id=booking.room_id,
            hotel_id=booking.hotel_id,
            user_id=booking.user_id,
            start_date=booking.start_date,
            end_date=booking.end_date,
            total_price=booking.total_price,
            status_to=booking.status,
        )
    except RuntimeError as exc:
        raise audit_failed() from exc
    return BookingRead.from_db(booking=booking, today=today)


@router.get("", response_model=List[BookingRead])
async def list_my_bookings(
    status_filter: Optional[BookingStatus] = Query(default=None, alias="status"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    session: AsyncSession = Depends(get_session),
    principal: Principal = Depends(get_current_principal),
) -> list[BookingRead]:
    store = get_booking_store(session)
    today = hotel_today()
    try:
        rows = await booking_usecase.list_user_bookings(
            store,
            user_id=principal.user_id,
            status=status_filter,
            page=page,
            limit=limit,
            today=today,
        )
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    return [BookingRead.from_db(booking=b, today=today) for b in rows]


@router.get("/all", response_model=List[BookingRead])
async def list_all_bookings(
    status_filter: Optional[BookingStatus] = Query(default=None, alias="status"),
    hotel_id: Optional[int] = Query(default=None, ge=1),
    user_id: Optional[int] = Query(default=None, ge=1),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    session: AsyncSession = Depends(get_session),
    principal: Principal = Depends(get_current_principal),
) -> list[BookingRead]:
    store = get_booking_store(session)
    today = hotel_today()
    try:
        rows = await booking_usecase.list_all_bookings(
            store,
            requester_role=principal.role,
            status=status_filter,
            hotel_id=hotel_id,
            user_id=user_id,
            page=page,
            limit=limit,
            today=today,
        )
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    return [BookingRead.from_db(booking=b, today=today) for b in rows]


@router.get("/{booking_id}", response_model=BookingRead)
async def get_booking(
    booking_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    principal: Principal = Depends(get_current_principal),
) -> BookingRead:
    store = get_booking_store(session)
    try:
        booking = await booking_usecase.get_booking(
            store,
            booking_id=booking_id,
            requester_id=principal.user_id,
            requester_role=principal.role,
        )
    except BookingError as exc:
        raise to_http_exception(exc) from exc
    return BookingRead.from_db(booking=booking, today=hotel_today())


@router.put("/{booking_id}/cancel", response_model=BookingRead)
async def cancel_booking(
    booking_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    principal: Principal = Depends(get_current_principal),
) -> BookingRead:
    store = get_booking_store(session)
    today = hotel_today()
    try:
        async with session.begin():
            booking, status_from = await booking_usecase.cancel_booking(
                store,
                booking_id=booking_id,
                requester_id=principal.user_id,
                requester_role=principal.role,
                today=today,
            )
    except BookingError as exc:
        raise to_http_exception(exc) from exc

    try:
        emit_audit_log(
            action="booking.cancelled",
            initiator=_initiator(principal),
            booking_id=booking.id,
            room_id=booking.room_id,
            hotel_id=booking.hotel_id,
            user_id=booking.user_id,
            status_from=status_from,
            status_to=booking.status,
        )
    except RuntimeError as exc:
        raise audit_failed() from exc
    return BookingRead.from_db(booking=booking, today=today)


@router.delete("/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_booking(
    booking_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    principal: Principal = Depends(get_current_principal),
) -> None:
    store = get_booking_store(session)
    try:
        async with session.begin():
            booking = await booking_usecase.delete_booking(
                store,
                booking_id=booking_id,
                requester_role=principal.role,
            )
    except BookingError as exc:
        raise to_http_exception(exc) from exc

    try:
        emit_audit_log(
            action="booking.deleted",
            initiator="admin",
            booking_id=booking.id,
            room_id=booking.room_id,
            hotel_id=booking.hotel_id,
            user_id=booking.user_id,
            status_from=booking.status,
        )
    except RuntimeError as exc:
        raise audit_failed() from exc
