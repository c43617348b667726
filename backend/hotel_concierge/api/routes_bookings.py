# backend/hotel_concierge/api/routes_bookings.py

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from hotel_concierge.api.deps import Services, get_services
from hotel_concierge.core.errors import ValidationError
from hotel_concierge.models.booking_models import (
    BookingCreateIn,
    BookingQuery,
    BookingStatus,
    BookingUpdateIn,
)

router = APIRouter(prefix="/api/bookings", tags=["bookings"])


# --------------------------
# List / stats / availability
# --------------------------
@router.get("/")
def list_bookings(
    session_id: Optional[str] = Query(None, alias="sessionId"),
    hotel_id: Optional[str] = Query(None, alias="hotelId"),
    status: Optional[BookingStatus] = None,
    guest_email: Optional[str] = Query(None, alias="guestEmail"),
    check_in_start: Optional[date] = Query(None, alias="checkInStart"),
    check_in_end: Optional[date] = Query(None, alias="checkInEnd"),
    page: Optional[int] = Query(None, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    services: Services = Depends(get_services),
):
    bookings = services.ledger.find(BookingQuery(
        session_id=session_id,
        hotel_id=hotel_id,
        status=status,
        guest_email=guest_email,
        check_in_start=check_in_start,
        check_in_end=check_in_end,
        page=page,
        limit=limit,
    ))
    return {"success": True, "count": len(bookings), "data": [b.to_public() for b in bookings]}


@router.get("/stats")
def booking_stats(
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    services: Services = Depends(get_services),
):
    return {"success": True, "data": services.ledger.stats(start_date, end_date)}


@router.get("/availability/{hotel_id}")
def check_availability(
    hotel_id: str,
    check_in: Optional[date] = Query(None, alias="checkIn"),
    check_out: Optional[date] = Query(None, alias="checkOut"),
    services: Services = Depends(get_services),
):
    if check_in is None or check_out is None:
        raise ValidationError("Check-in and check-out dates are required")
    availability = services.ledger.check_availability(hotel_id, check_in, check_out)
    return {"success": True, "data": availability.model_dump(by_alias=True)}


# --------------------------
# CRUD
# --------------------------
@router.get("/{booking_id}")
def get_booking(booking_id: str, services: Services = Depends(get_services)):
    return {"success": True, "data": services.ledger.get(booking_id).to_public()}


@router.post("/", status_code=201)
def create_booking(data: BookingCreateIn, services: Services = Depends(get_services)):
    booking = services.ledger.create_booking(data)
    return {"success": True, "data": booking.to_public()}


@router.put("/{booking_id}")
def update_booking(booking_id: str, data: BookingUpdateIn, services: Services = Depends(get_services)):
    booking = services.ledger.update(booking_id, data)
    return {"success": True, "data": booking.to_public()}


@router.delete("/{booking_id}")
def delete_booking(booking_id: str, services: Services = Depends(get_services)):
    services.ledger.delete(booking_id)
    return {"success": True, "message": "Booking deleted successfully"}
