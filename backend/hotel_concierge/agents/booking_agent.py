# backend/hotel_concierge/agents/booking_agent.py

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, List, Optional

from fastapi.concurrency import run_in_threadpool

from hotel_concierge.core.config_loader import Settings
from hotel_concierge.core.errors import NotFound, StorageError, ValidationError
from hotel_concierge.core.llm import ChatCompletionService
from hotel_concierge.core.logger import get_logger
from hotel_concierge.core.session_locks import SessionLocks
from hotel_concierge.models.booking_models import Booking, BookingDraft
from hotel_concierge.models.conversation_models import BookingInfo, Conversation
from hotel_concierge.services.booking_ledger import BookingLedger, compute_total
from hotel_concierge.services.conversation_store import ConversationStore
from hotel_concierge.services.hotel_catalog import HotelCatalog
from hotel_concierge.utils.booking_extractor import extract_from_messages, location_from_messages
from hotel_concierge.utils.time_utils import as_date, local_today

logger = get_logger("agent")

COMPLETION_MARKER = "BOOKING_COMPLETE"

STRICT_REQUIRED = ["guest_name", "guest_email", "check_in", "check_out", "hotel_id"]
FORCE_REQUIRED = ["guest_name", "guest_email", "check_in", "check_out", "location"]

SYSTEM_PROMPT = f"""You are a friendly and helpful hotel booking assistant. Your role is to help users book hotel rooms through natural conversation.

The conversation always opens with: "Hi there! Tell me what kind of hotel you're looking for and where. I'll handle the rest."

Required booking information to collect:
- Location (e.g., "Lagos", "New York")
- Check-in Date (e.g., "10/25/2024" or "2024-10-25")
- Check-out Date (e.g., "10/28/2024" or "2024-10-28")
- Room Type (Standard, Deluxe, Suite - suggest based on party size)
- Guest Count (Adults, Children)
- Preferences (Optional - e.g., near airport, pool, pet-friendly)
- Name (Full name)
- Email (For confirmation)
- Phone Number (For contact)

Flow:
1. Parse location and intent from the user's first message
2. Prompt for dates if missing
3. Suggest 2-3 matching hotels with FULL DETAILS (name, rating, stars, price)
4. Collect guest details (name, email, phone)
5. When you have ALL required information (location, dates, hotel choice, guest name, email), say "{COMPLETION_MARKER}" to trigger booking completion
6. After saying "{COMPLETION_MARKER}", provide ONLY the booking summary with hotel details. The system adds the payment link to your message automatically

IMPORTANT RULES:
- ALWAYS include hotel name, star rating and price when suggesting hotels
- NEVER mention a "checkout link", "shortly" or "will receive" - the link is added for you
- NEVER say "booking confirmed" or "reservation confirmed" until payment is completed
- Do NOT require the user to answer in a fixed order. Drive the flow naturally based on what's missing
- Format hotel suggestions like: "🏨 [Hotel Name] ⭐⭐⭐⭐⭐ (5 stars) - $XXX/night"
- If the user provides name and email after choosing a hotel, say "{COMPLETION_MARKER}"
"""


# -----------------------------------------------------------
# Marker helpers
# -----------------------------------------------------------
def signals_completion(text: str) -> bool:
    return COMPLETION_MARKER in (text or "")


def strip_completion_marker(text: str) -> str:
    return (text or "").replace(COMPLETION_MARKER, "").strip()


def mentions_hotels(text: str) -> bool:
    lowered = (text or "").lower()
    return "hotel" in lowered or "suggest" in lowered


def payment_link(booking_id: str, origin: Optional[str], settings: Settings) -> str:
    base = (origin or settings.frontend_url).rstrip("/")
    return f"{base}/Frontend/checkout.html?bookingId={booking_id}"


def with_payment_link(text: str, link: str) -> str:
    return f"{text}\n\n🔗 **Complete Your Booking:** {link}"


# -----------------------------------------------------------
# Results
# -----------------------------------------------------------
@dataclass
class TurnResult:
    conversation: Conversation
    message: str
    booking: Optional[Booking] = None
    suggested_hotels: List[Dict[str, Any]] = field(default_factory=list)

    def to_public(self) -> Dict[str, Any]:
        return {
            "sessionId": self.conversation.session_id,
            "conversationId": self.conversation.id,
            "message": self.message,
            "messages": self.conversation.public_messages(),
            "bookingDetails": self.conversation.booking_info.to_public(),
            "suggestedHotels": self.suggested_hotels,
        }


@dataclass
class CompletionResult:
    booking: Booking
    conversation: Conversation
    message: str = "Booking completed successfully!"

    def to_public(self) -> Dict[str, Any]:
        return {
            "booking": self.booking.to_public(),
            "conversation": self.conversation.to_public(),
            "message": self.message,
        }


class BookingAgent:
    """
    Drives one conversation towards exactly one booking.

    Each turn appends the user message, asks the model for a reply, merges
    whatever the extractor recognised into bookingInfo and then tries to
    complete: on the model's marker first, otherwise opportunistically once
    name and email are known. Completion failures never fail the turn; the
    conversation stays active and the next turn tries again.
    """

    def __init__(
        self,
        settings: Settings,
        conversations: ConversationStore,
        ledger: BookingLedger,
        catalog: HotelCatalog,
        llm: ChatCompletionService,
        locks: Optional[SessionLocks] = None,
    ):
        self.settings = settings
        self.conversations = conversations
        self.ledger = ledger
        self.catalog = catalog
        self.llm = llm
        self.locks = locks or SessionLocks()

    # -----------------------------------------------------------
    # Conversation lifecycle
    # -----------------------------------------------------------
    async def start_conversation(self, session_id: Optional[str] = None) -> Conversation:
        if session_id is None:
            return await run_in_threadpool(self.conversations.get_or_create)
        async with self.locks.hold(session_id):
            return await run_in_threadpool(self.conversations.get_or_create, session_id)

    async def handle_message(self, session_id: str, text: str, origin: Optional[str] = None) -> TurnResult:
        # sqlite work runs in the threadpool; only the model call awaits on the loop
        async with self.locks.hold(session_id):
            conversation = await run_in_threadpool(self._record_user_message, session_id, text)
            reply = await self.llm.complete(SYSTEM_PROMPT, conversation.messages)
            return await run_in_threadpool(self._settle_turn, session_id, reply, origin)

    def _record_user_message(self, session_id: str, text: str) -> Conversation:
        self.conversations.get_or_create(session_id)
        conversation = self.conversations.append_message(session_id, "user", text)
        logger.info(f"[{session_id}] user: {text[:80]}")
        return conversation

    def _settle_turn(self, session_id: str, reply: str, origin: Optional[str]) -> TurnResult:
        conversation = self.conversations.append_message(session_id, "assistant", reply)

        extracted = extract_from_messages(conversation.messages, day_first=self.settings.day_first_dates)
        if not extracted.is_empty():
            logger.info(f"[{session_id}] extracted: {extracted.present_fields()}")
        self.conversations.merge_booking_info(session_id, extracted)
        conversation = self.conversations.get(session_id)

        booking = None
        visible = reply
        if signals_completion(reply):
            visible, booking = self._complete_on_marker(conversation, reply, origin)
        elif conversation.is_active:
            visible, booking = self._complete_on_fallback(conversation, reply, origin)

        conversation = self.conversations.get(session_id)

        suggested = []
        location = extracted.location or location_from_messages(conversation.messages)
        if location and mentions_hotels(visible):
            suggested = [h.summary() for h in self.catalog.find_matching_hotels(location)]

        return TurnResult(
            conversation=conversation,
            message=visible,
            booking=booking,
            suggested_hotels=suggested,
        )

    # -----------------------------------------------------------
    # Turn-driven completion
    # -----------------------------------------------------------
    def _complete_on_marker(self, conversation: Conversation, reply: str, origin: Optional[str]):
        session_id = conversation.session_id
        visible = strip_completion_marker(reply)
        logger.info(f"[{session_id}] model signalled completion")

        if not conversation.is_active:
            logger.info(f"[{session_id}] already completed, ignoring marker")
            self.conversations.rewrite_last_assistant_message(session_id, visible)
            return visible, None

        info = conversation.booking_info
        if info.guest_name is None or info.guest_email is None:
            info = self.conversations.merge_booking_info(
                session_id,
                extract_from_messages(conversation.messages, day_first=self.settings.day_first_dates),
            )

        return self._finish(session_id, info, visible, origin)

    def _complete_on_fallback(self, conversation: Conversation, reply: str, origin: Optional[str]):
        session_id = conversation.session_id
        info = self.conversations.merge_booking_info(
            session_id,
            extract_from_messages(conversation.messages, day_first=self.settings.day_first_dates),
        )
        if info.guest_name is None or info.guest_email is None:
            return reply, None

        logger.info(f"[{session_id}] name and email known without marker, attempting fallback completion")
        return self._finish(session_id, info, reply, origin)

    def _finish(self, session_id: str, info: BookingInfo, visible: str, origin: Optional[str]):
        try:
            booking = self._materialize_booking(session_id, info)
        except (ValidationError, NotFound, StorageError) as e:
            logger.warning(f"[{session_id}] completion failed, conversation stays active: {e.message}")
            self.conversations.rewrite_last_assistant_message(session_id, visible)
            return visible, None

        visible = with_payment_link(visible, payment_link(booking.id, origin, self.settings))
        self.conversations.rewrite_last_assistant_message(session_id, visible)
        return visible, booking

    # -----------------------------------------------------------
    # Explicit completion endpoints
    # -----------------------------------------------------------
    async def complete_booking(self, session_id: str, origin: Optional[str] = None) -> CompletionResult:
        async with self.locks.hold(session_id):
            return await run_in_threadpool(self._complete_booking, session_id, origin)

    async def force_complete(self, session_id: str, origin: Optional[str] = None) -> CompletionResult:
        """Like ``complete_booking``, but picks the first hotel matching the location when none was chosen."""
        async with self.locks.hold(session_id):
            return await run_in_threadpool(self._force_complete, session_id, origin)

    def _force_complete(self, session_id: str, origin: Optional[str]) -> CompletionResult:
        info = self.conversations.get(session_id).booking_info

        missing = info.missing(FORCE_REQUIRED)
        if missing:
            raise ValidationError("Missing required booking information", missing=missing)

        if info.hotel_id is None:
            matches = self.catalog.find_matching_hotels(info.location)
            if matches:
                logger.info(f"[{session_id}] auto-selected hotel {matches[0].id} for {info.location}")
                self.conversations.merge_booking_info(
                    session_id,
                    BookingInfo(hotel_id=matches[0].id, hotel_name=matches[0].name),
                )

        return self._complete_booking(session_id, origin)

    def _complete_booking(self, session_id: str, origin: Optional[str]) -> CompletionResult:
        conversation = self.conversations.get(session_id)
        if not conversation.is_active:
            raise ValidationError("Booking already completed for this conversation")

        info = conversation.booking_info
        missing = info.missing(STRICT_REQUIRED)
        if missing:
            raise ValidationError("Missing required booking information", missing=missing)

        booking = self._materialize_booking(session_id, info, strict=True)
        link = payment_link(booking.id, origin, self.settings)
        self.conversations.append_message(session_id, "assistant", self._confirmation_message(booking, link))

        return CompletionResult(booking=booking, conversation=self.conversations.get(session_id))

    # -----------------------------------------------------------
    # Booking materialization
    # -----------------------------------------------------------
    def _materialize_booking(self, session_id: str, info: BookingInfo, strict: bool = False) -> Booking:
        """
        Turn bookingInfo into a pending booking and complete the conversation.

        Outside ``strict`` mode missing fields fall back to the configured
        defaults (location, hotel, today/tomorrow, guest identity). The
        availability check, the insert and the status transition share one
        transaction, so a conversation yields at most one booking.
        """
        s = self.settings
        day_first = s.day_first_dates
        location = info.location or s.default_location

        hotel = None
        if info.hotel_id:
            hotel = self.catalog.get(info.hotel_id)
            if hotel is None and strict:
                raise NotFound("hotel", info.hotel_id)
        else:
            matches = self.catalog.find_matching_hotels(location)
            hotel = matches[0] if matches else self.catalog.get(s.fallback_hotel_id)

        if hotel is not None:
            hotel_id, hotel_name = hotel.id, hotel.name
            price, total_rooms = hotel.price_per_night, hotel.total_rooms
        else:
            hotel_id = info.hotel_id or s.fallback_hotel_id
            hotel_name = info.hotel_name or s.fallback_hotel_name.format(location=location.title())
            price, total_rooms = s.default_price_per_night, s.default_total_rooms

        check_in = as_date(info.check_in, day_first)
        check_out = as_date(info.check_out, day_first)
        if strict and (check_in is None or check_out is None):
            raise ValidationError("Invalid check-in or check-out date")
        check_in = check_in or local_today(s.timezone)
        check_out = check_out or check_in + timedelta(days=1)

        rooms = info.rooms or 1
        draft = BookingDraft(
            session_id=session_id,
            hotel_id=hotel_id,
            hotel_name=hotel_name,
            guest_name=info.guest_name or s.default_guest_name,
            guest_email=info.guest_email or s.default_guest_email,
            guest_phone=info.guest_phone or "",
            check_in=check_in,
            check_out=check_out,
            guests=info.guests or 1,
            rooms=rooms,
            total_amount=compute_total(price, check_in, check_out, rooms),
            special_requests=info.special_requests or "",
        )

        final_info = info.merge(BookingInfo(
            location=info.location or location.lower(),
            hotel_id=hotel_id,
            hotel_name=hotel_name,
            check_in=check_in.isoformat(),
            check_out=check_out.isoformat(),
            guest_name=draft.guest_name,
            guest_email=draft.guest_email,
        ))

        with self.conversations.store.transaction():
            current = self.conversations.get(session_id)
            if not current.is_active:
                raise ValidationError("Booking already completed for this conversation")
            booking = self.ledger.reserve(draft, total_rooms=total_rooms)
            if not self.conversations.complete(session_id, final_info):
                raise ValidationError("Booking already completed for this conversation")

        logger.info(
            f"[{session_id}] booking {booking.id} at {hotel_name}: "
            f"{check_in} -> {check_out}, {rooms} room(s), total {booking.total_amount}"
        )
        return booking

    def _confirmation_message(self, booking: Booking, link: str) -> str:
        hotel = self.catalog.get(booking.hotel_id)
        rating = f" ({hotel.rating} stars)" if hotel else ""
        where = ""
        if hotel:
            where = ", ".join(p for p in (hotel.city, hotel.state) if p) or hotel.location

        return (
            "🎉 Perfect! Your booking is ready for payment!\n\n"
            "Booking Details:\n"
            f"• Hotel: {booking.hotel_name}{rating}\n"
            f"• Location: {where or 'see hotel details'}\n"
            f"• Check-in: {booking.check_in.isoformat()}\n"
            f"• Check-out: {booking.check_out.isoformat()}\n"
            f"• Guests: {booking.guests}\n"
            f"• Rooms: {booking.rooms}\n"
            f"• Total: ${booking.total_amount:,.2f}\n\n"
            f"Your booking reference is: {booking.id}\n\n"
            f"🔗 Complete Payment & Confirm Booking: {link}\n\n"
            "Please complete payment to confirm your reservation. "
            f"A confirmation email will be sent to {booking.guest_email} after payment."
        )
