from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_serializer

from .domain.services import effective_status
from .models import Booking, BookingStatus, Room


class BookingCreate(BaseModel):
    room_id: int = Field(ge=1)
    start_date: date
    end_date: date
    guest_count: int = Field(ge=1)
    special_requests: Optional[str] = Field(default=None, max_length=500)


class BookingRead(BaseModel):
    booking_id: int
    user_id: int
    room_id: int
    hotel_id: int
    start_date: date
    end_date: date
    guest_count: int
    status: BookingStatus
    total_price: Decimal
    special_requests: Optional[str] = None
    created_at: datetime
    cancelled_at: Optional[datetime] = None

    @field_serializer("total_price")
    def _ser_price(self, value: Decimal) -> str:
        return f"{value:.2f}"

    @classmethod
    def from_db(cls, *, booking: Booking, today: date) -> "BookingRead":
        return cls(
            booking_id=booking.id,
            user_id=booking.user_id,
            room_id=booking.room_id,
            hotel_id=booking.hotel_id,
            start_date=booking.start_date,
            end_date=booking.end_date,
            guest_count=booking.guest_count,
            status=effective_status(booking, today),
            total_price=booking.total_price,
            special_requests=booking.special_requests,
            created_at=booking.created_at,
            cancelled_at=booking.cancelled_at,
        )


class RoomAvailability(BaseModel):
    room_id: int
    start_date: date
    end_date: date
    available: bool


class RoomEnabledUpdate(BaseModel):
    enabled: bool


class RoomRead(BaseModel):
    room_id: int
    hotel_id: int
    room_number: str
    price_per_night: Decimal
    max_guests: int
    is_enabled: bool
    is_available: bool

    @field_serializer("price_per_night")
    def _ser_price(self, value: Decimal) -> str:
        return f"{value:.2f}"

    @classmethod
    def from_db(cls, *, room: Room, is_available: Optional[bool] = None) -> "RoomRead":
        return cls(
            room_id=room.id,
            hotel_id=room.hotel_id,
            room_number=room.room_number,
            price_per_night=room.price_per_night,
            max_guests=room.max_guests,
            is_enabled=room.is_enabled,
            is_available=room.is_available if is_available is None else is_available,
        )
