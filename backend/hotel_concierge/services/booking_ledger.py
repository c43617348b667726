# backend/hotel_concierge/services/booking_ledger.py

import math
from datetime import date, datetime
from typing import Any, Dict, List, Optional
from uuid import uuid4

from hotel_concierge.core.config_loader import Settings
from hotel_concierge.core.errors import NotFound, ValidationError
from hotel_concierge.core.logger import get_logger
from hotel_concierge.db.sqlite_store import SQLiteStore, utcnow
from hotel_concierge.models.booking_models import (
    ACTIVE_BOOKING_STATUSES,
    Availability,
    Booking,
    BookingCreateIn,
    BookingDraft,
    BookingQuery,
    BookingUpdateIn,
)
from hotel_concierge.services.hotel_catalog import HotelCatalog

logger = get_logger("ledger")


# -----------------------------------------------------------
# Pure date / price helpers
# -----------------------------------------------------------
def dates_overlap(start1: date, end1: date, start2: date, end2: date) -> bool:
    """Half-open ranges: a stay ending on the day another starts does not overlap."""
    return start1 < end2 and start2 < end1


def count_nights(check_in: date, check_out: date) -> int:
    """Whole nights between two dates; check-out must be after check-in."""
    if check_out <= check_in:
        raise ValidationError("Check-out date must be after check-in date")
    seconds = (datetime.combine(check_out, datetime.min.time())
               - datetime.combine(check_in, datetime.min.time())).total_seconds()
    return math.ceil(seconds / 86400)


def compute_total(price_per_night: float, check_in: date, check_out: date, rooms: Optional[int]) -> float:
    return price_per_night * count_nights(check_in, check_out) * max(1, rooms or 1)


class BookingLedger:
    """
    Bookings and the room availability derived from them.

    Availability is recomputed from the stored bookings on every call; there
    are no cached counters to drift out of sync.
    """

    def __init__(self, store: SQLiteStore, catalog: HotelCatalog, settings: Settings):
        self.store = store
        self.catalog = catalog
        self.settings = settings

    # -----------------------------------------------------------
    # Availability
    # -----------------------------------------------------------
    def check_availability(self, hotel_id: str, check_in: date, check_out: date) -> Availability:
        count_nights(check_in, check_out)
        hotel = self.catalog.get(hotel_id)
        if hotel is None:
            raise NotFound("hotel", hotel_id)
        return self._availability(hotel_id, check_in, check_out, hotel.total_rooms or self.settings.default_total_rooms)

    def _availability(
        self,
        hotel_id: str,
        check_in: date,
        check_out: date,
        total_rooms: int,
        exclude_id: Optional[str] = None,
    ) -> Availability:
        booked_rooms = 0
        for row in self.store.find_bookings(hotel_id=hotel_id, statuses=ACTIVE_BOOKING_STATUSES):
            if row["id"] == exclude_id:
                continue
            if dates_overlap(
                date.fromisoformat(row["check_in"]),
                date.fromisoformat(row["check_out"]),
                check_in,
                check_out,
            ):
                booked_rooms += row["rooms"] or 1

        return Availability(
            available=max(0, total_rooms - booked_rooms),
            total_rooms=total_rooms,
            booked_rooms=booked_rooms,
        )

    # -----------------------------------------------------------
    # Creation
    # -----------------------------------------------------------
    def reserve(self, draft: BookingDraft, total_rooms: Optional[int] = None) -> Booking:
        """
        Check availability and insert the booking in one transaction.

        ``total_rooms`` covers hotels that are not in the catalog (the
        fallback hotel); catalog hotels use their own room count.
        """
        hotel = self.catalog.get(draft.hotel_id)
        if hotel is not None:
            total_rooms = hotel.total_rooms
        total_rooms = total_rooms or self.settings.default_total_rooms

        count_nights(draft.check_in, draft.check_out)

        with self.store.transaction():
            availability = self._availability(draft.hotel_id, draft.check_in, draft.check_out, total_rooms)
            if availability.available < draft.rooms:
                raise ValidationError(
                    f"Sorry, only {availability.available} rooms are available for your selected dates."
                )

            now = utcnow()
            booking = Booking(id=uuid4().hex, created_at=now, updated_at=now, **draft.model_dump())
            self.store.insert_booking(_to_row(booking))

        logger.info(
            f"Booking {booking.id} created: hotel={booking.hotel_id} rooms={booking.rooms} "
            f"{booking.check_in}->{booking.check_out} total={booking.total_amount}"
        )
        return booking

    def create_booking(self, data: BookingCreateIn) -> Booking:
        missing = [
            name for name, value in (
                ("hotelId", data.hotel_id),
                ("guestName", data.guest_name),
                ("guestEmail", data.guest_email),
                ("checkIn", data.check_in),
                ("checkOut", data.check_out),
            )
            if not value
        ]
        if missing:
            raise ValidationError("Missing required booking information", missing=missing)

        hotel = self.catalog.get(data.hotel_id)
        if hotel is None:
            raise NotFound("hotel", data.hotel_id)

        draft = BookingDraft(
            session_id=data.session_id or "",
            hotel_id=hotel.id,
            hotel_name=hotel.name,
            guest_name=data.guest_name,
            guest_email=data.guest_email,
            guest_phone=data.guest_phone or "",
            check_in=data.check_in,
            check_out=data.check_out,
            guests=data.guests,
            rooms=data.rooms,
            total_amount=compute_total(hotel.price_per_night, data.check_in, data.check_out, data.rooms),
            special_requests=data.special_requests or "",
        )
        return self.reserve(draft)

    # -----------------------------------------------------------
    # CRUD
    # -----------------------------------------------------------
    def get(self, booking_id: str) -> Booking:
        row = self.store.get_booking(booking_id)
        if row is None:
            raise NotFound("booking", booking_id)
        return Booking.model_validate(row)

    def find(self, query: BookingQuery) -> List[Booking]:
        limit = query.limit
        offset = 0
        if query.page and query.limit:
            offset = (query.page - 1) * query.limit

        rows = self.store.find_bookings(
            session_id=query.session_id,
            hotel_id=query.hotel_id,
            status=query.status,
            guest_email=query.guest_email,
            check_in_start=query.check_in_start.isoformat() if query.check_in_start else None,
            check_in_end=query.check_in_end.isoformat() if query.check_in_end else None,
            limit=limit,
            offset=offset,
        )
        return [Booking.model_validate(r) for r in rows]

    def update(self, booking_id: str, changes: BookingUpdateIn) -> Booking:
        """
        Apply ``changes``; the total is re-derived and rooms are re-checked
        whenever the stay itself moves or a cancelled booking comes back.
        """
        current = self.get(booking_id)
        fields = changes.model_dump(exclude_none=True)
        if not fields:
            return current

        updated = current.model_copy(update=fields)
        stay_changed = bool({"hotel_id", "check_in", "check_out", "rooms"} & fields.keys())

        hotel = self.catalog.get(updated.hotel_id)
        if stay_changed:
            if hotel is None:
                raise NotFound("hotel", updated.hotel_id)
            fields["hotel_name"] = hotel.name
            fields["total_amount"] = compute_total(
                hotel.price_per_night, updated.check_in, updated.check_out, updated.rooms
            )
        # bookings on the fallback hotel live outside the catalog
        total_rooms = hotel.total_rooms if hotel is not None else self.settings.default_total_rooms

        reactivated = current.status not in ACTIVE_BOOKING_STATUSES
        needs_rooms = updated.status in ACTIVE_BOOKING_STATUSES and (stay_changed or reactivated)

        fields["updated_at"] = utcnow()
        with self.store.transaction():
            if needs_rooms:
                availability = self._availability(
                    updated.hotel_id, updated.check_in, updated.check_out, total_rooms, exclude_id=booking_id
                )
                if availability.available < updated.rooms:
                    raise ValidationError(
                        f"Sorry, only {availability.available} rooms are available for your selected dates."
                    )
            self.store.update_booking(booking_id, _to_row_fields(fields))
        logger.info(f"Booking {booking_id} updated: {sorted(fields)}")
        return self.get(booking_id)

    def delete(self, booking_id: str):
        if not self.store.delete_booking(booking_id):
            raise NotFound("booking", booking_id)
        logger.info(f"Booking {booking_id} deleted")

    def stats(self, start: Optional[date] = None, end: Optional[date] = None) -> Dict[str, Any]:
        bookings = [Booking.model_validate(r) for r in self.store.find_bookings()]
        if start and end:
            bookings = [b for b in bookings if start <= b.created_at.date() <= end]

        status_counts = {"pending": 0, "confirmed": 0, "cancelled": 0, "completed": 0}
        for b in bookings:
            status_counts[b.status] += 1

        total = len(bookings)
        revenue = sum(b.total_amount for b in bookings)
        return {
            "totalBookings": total,
            "totalRevenue": revenue,
            "statusCounts": status_counts,
            "averageBookingValue": revenue / total if total else 0,
        }


def _to_row(booking: Booking) -> Dict[str, Any]:
    return _to_row_fields(booking.model_dump())


def _to_row_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {
        k: v.isoformat() if isinstance(v, (date, datetime)) else v
        for k, v in fields.items()
    }
