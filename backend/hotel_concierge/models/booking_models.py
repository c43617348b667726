# backend/hotel_concierge/models/booking_models.py

from datetime import date, datetime
from typing import Any, Dict, Literal, Optional

from pydantic import EmailStr, Field

from hotel_concierge.models.conversation_models import CamelModel


BookingStatus = Literal["pending", "confirmed", "cancelled", "completed"]

# bookings that hold rooms when availability is computed
ACTIVE_BOOKING_STATUSES = ("pending", "confirmed")


class Booking(CamelModel):
    id: str
    session_id: str = ""
    hotel_id: str
    hotel_name: str
    guest_name: str
    guest_email: str
    guest_phone: str = ""
    check_in: date
    check_out: date
    guests: int = 1
    rooms: int = 1
    total_amount: float
    status: BookingStatus = "pending"
    special_requests: str = ""
    created_at: datetime
    updated_at: datetime

    def to_public(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class BookingDraft(CamelModel):
    """A booking about to be written; ``total_amount`` is always computed, never supplied."""

    session_id: str = ""
    hotel_id: str
    hotel_name: str
    guest_name: str
    guest_email: str
    guest_phone: str = ""
    check_in: date
    check_out: date
    guests: int = 1
    rooms: int = 1
    total_amount: float
    status: BookingStatus = "pending"
    special_requests: str = ""


class BookingCreateIn(CamelModel):
    session_id: Optional[str] = None
    hotel_id: Optional[str] = None
    guest_name: Optional[str] = None
    guest_email: Optional[EmailStr] = None
    guest_phone: Optional[str] = None
    check_in: Optional[date] = None
    check_out: Optional[date] = None
    guests: int = Field(default=1, ge=1)
    rooms: int = Field(default=1, ge=1)
    special_requests: Optional[str] = None


class BookingUpdateIn(CamelModel):
    hotel_id: Optional[str] = None
    guest_name: Optional[str] = None
    guest_email: Optional[EmailStr] = None
    guest_phone: Optional[str] = None
    check_in: Optional[date] = None
    check_out: Optional[date] = None
    guests: Optional[int] = Field(default=None, ge=1)
    rooms: Optional[int] = Field(default=None, ge=1)
    status: Optional[BookingStatus] = None
    special_requests: Optional[str] = None


class BookingQuery(CamelModel):
    session_id: Optional[str] = None
    hotel_id: Optional[str] = None
    status: Optional[BookingStatus] = None
    guest_email: Optional[str] = None
    check_in_start: Optional[date] = None
    check_in_end: Optional[date] = None
    page: Optional[int] = Field(default=None, ge=1)
    limit: Optional[int] = Field(default=None, ge=1)


class Availability(CamelModel):
    available: int
    total_rooms: int
    booked_rooms: int
