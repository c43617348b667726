import asyncio
import threading
from datetime import date

import pytest

from hotel_concierge.agents.booking_agent import (
    COMPLETION_MARKER,
    SYSTEM_PROMPT,
    signals_completion,
    strip_completion_marker,
)
from hotel_concierge.core.errors import NotFound, UpstreamServiceError, ValidationError
from hotel_concierge.models.booking_models import BookingDraft, BookingQuery, BookingUpdateIn
from hotel_concierge.models.conversation_models import GREETING, BookingInfo

LINK_PREFIX = "🔗 **Complete Your Booking:** http://localhost:5500/Frontend/checkout.html?bookingId="


def run(coro):
    return asyncio.run(coro)


def start(agent, session_id="session_test"):
    return run(agent.start_conversation(session_id))


def seed(services, session_id="session_test", **fields):
    services.conversations.merge_booking_info(session_id, BookingInfo(**fields))


def bookings_for(services, session_id="session_test"):
    return services.ledger.find(BookingQuery(session_id=session_id))


READY = dict(
    guest_email="a@b.com",
    check_in="2024-10-25",
    check_out="2024-10-28",
    guest_name="John Smith",
)


# -----------------------------------------------------------
# Marker helpers
# -----------------------------------------------------------
def test_marker_detection_and_stripping():
    assert signals_completion("All set. BOOKING_COMPLETE")
    assert not signals_completion("booking complete")
    assert strip_completion_marker("BOOKING_COMPLETE Here is your summary") == "Here is your summary"
    assert COMPLETION_MARKER in SYSTEM_PROMPT


# -----------------------------------------------------------
# Conversation start
# -----------------------------------------------------------
def test_start_creates_greeting_once(agent):
    first = start(agent)
    again = start(agent)

    assert first.id == again.id
    assert [m.content for m in again.messages] == [GREETING]
    assert again.status == "active"


def test_start_without_session_id_generates_one(agent):
    conversation = run(agent.start_conversation())
    assert conversation.session_id.startswith("session_")


# -----------------------------------------------------------
# Turns
# -----------------------------------------------------------
def test_location_only_turn_does_not_complete(services, agent, chat):
    start(agent)
    chat.queue("Lagos is a great choice! I can suggest a few hotels. When are you travelling?")

    result = run(agent.handle_message("session_test", "I want a hotel in Lagos"))

    assert result.conversation.booking_info.to_public() == {"location": "lagos"}
    assert result.conversation.status == "active"
    assert result.booking is None
    assert bookings_for(services) == []
    assert [h["id"] for h in result.suggested_hotels] == ["LAG001", "LAG002"]


def test_turn_sends_full_history_with_system_prompt(agent, chat):
    start(agent)
    run(agent.handle_message("session_test", "Hello"))

    system_prompt, history = chat.calls[-1]
    assert system_prompt == SYSTEM_PROMPT
    assert [m.role for m in history] == ["assistant", "user"]


def test_message_on_unknown_session_creates_it(agent):
    result = run(agent.handle_message("session_new", "Hi"))
    assert result.conversation.messages[0].content == GREETING
    assert [m.role for m in result.conversation.messages] == ["assistant", "user", "assistant"]


def test_message_timestamps_never_go_backwards(agent):
    start(agent)
    for text in ("one", "two", "three"):
        run(agent.handle_message("session_test", text))

    stamps = [m.timestamp for m in run(agent.start_conversation("session_test")).messages]
    assert stamps == sorted(stamps)


def test_marker_turn_creates_exactly_one_booking(services, agent, chat):
    start(agent)
    seed(services, **READY)
    chat.queue(f"Here is your booking summary. {COMPLETION_MARKER}")

    result = run(agent.handle_message("session_test", "Yes, book it"))

    assert COMPLETION_MARKER not in result.message
    assert LINK_PREFIX + result.booking.id in result.message
    assert result.conversation.messages[-1].content == result.message
    assert result.conversation.status == "completed"
    assert result.conversation.completed_at is not None

    bookings = bookings_for(services)
    assert len(bookings) == 1
    # no location known: default Lagos resolves to the first Lagos hotel
    assert bookings[0].hotel_id == "LAG001"
    assert bookings[0].total_amount == 200 * 3 * 1
    assert bookings[0].status == "pending"
    assert result.conversation.booking_info.hotel_id == "LAG001"


def test_total_uses_rooms(services, agent, chat):
    start(agent)
    seed(services, rooms=2, location="new york", **READY)
    chat.queue(COMPLETION_MARKER)

    run(agent.handle_message("session_test", "confirm"))

    assert bookings_for(services)[0].total_amount == 300 * 3 * 2


def test_completed_conversation_never_books_twice(services, agent, chat):
    start(agent)
    seed(services, **READY)
    chat.queue(f"Done! {COMPLETION_MARKER}", f"Again {COMPLETION_MARKER}", "Anything else?")

    run(agent.handle_message("session_test", "book it"))
    second = run(agent.handle_message("session_test", "book it again"))
    third = run(agent.handle_message("session_test", "my name is John Smith, john@smith.com"))

    assert len(bookings_for(services)) == 1
    assert second.message == "Again"
    assert second.conversation.messages[-1].content == "Again"
    assert "Complete Your Booking" not in third.message


def test_concurrent_marker_turns_yield_one_booking(services, agent, chat):
    start(agent)
    seed(services, **READY)
    chat.queue(COMPLETION_MARKER, COMPLETION_MARKER)

    async def both():
        return await asyncio.gather(
            agent.handle_message("session_test", "book"),
            agent.handle_message("session_test", "book now"),
        )

    run(both())
    assert len(bookings_for(services)) == 1
    assert len(agent.locks) == 0


def test_storage_work_stays_off_the_event_loop_thread(services, agent, chat, monkeypatch):
    start(agent)
    threads = []

    def remember_thread(original):
        def wrapper(*args, **kwargs):
            threads.append(threading.get_ident())
            return original(*args, **kwargs)
        return wrapper

    monkeypatch.setattr(services.store, "add_message", remember_thread(services.store.add_message))
    monkeypatch.setattr(services.store, "insert_booking", remember_thread(services.store.insert_booking))
    chat.queue("Here are a few hotels.")

    run(agent.handle_message("session_test", "anything in Lagos?"))
    seed(services, hotel_id="LAG001", **READY)
    run(agent.complete_booking("session_test"))

    # asyncio.run drives the loop on the calling thread
    assert len(threads) == 4
    assert threading.get_ident() not in threads


def test_completion_failure_keeps_conversation_active(services, agent, chat):
    # another guest holds every room of LAG001 for these dates
    services.ledger.reserve(BookingDraft(
        session_id="someone_else", hotel_id="LAG001", hotel_name="Lagos Marriott Hotel Ikeja",
        guest_name="Other", guest_email="o@t.com", check_in=date(2024, 10, 24),
        check_out=date(2024, 10, 30), rooms=10, total_amount=0,
    ))
    start(agent)
    seed(services, hotel_id="LAG001", **READY)
    chat.queue(f"Summary ready. {COMPLETION_MARKER}")

    result = run(agent.handle_message("session_test", "book it"))

    assert result.message == "Summary ready."
    assert result.conversation.messages[-1].content == "Summary ready."
    assert result.conversation.status == "active"
    assert bookings_for(services) == []

    # once rooms free up the next marker completes
    blocker = bookings_for(services, "someone_else")[0]
    services.ledger.update(blocker.id, BookingUpdateIn(status="cancelled"))
    chat.queue(f"Trying again. {COMPLETION_MARKER}")
    retry = run(agent.handle_message("session_test", "please retry"))

    assert retry.conversation.status == "completed"
    assert len(bookings_for(services)) == 1


def test_reversed_dates_do_not_complete(services, agent, chat):
    start(agent)
    seed(services, guest_email="a@b.com", guest_name="Ada", check_in="2024-10-28", check_out="2024-10-25")
    chat.queue(COMPLETION_MARKER)

    result = run(agent.handle_message("session_test", "go"))

    assert result.conversation.status == "active"
    assert COMPLETION_MARKER not in result.message
    assert bookings_for(services) == []


def test_fallback_completion_without_marker(services, agent, chat):
    start(agent)
    chat.queue("Thanks Ada! Let me check that for you.")

    result = run(agent.handle_message(
        "session_test",
        "My name is Ada Obi, email ada@obi.ng, staying 2024-11-01 to 2024-11-03 in Lagos",
        origin="https://concierge.example.com/",
    ))

    assert result.conversation.status == "completed"
    assert result.message.startswith("Thanks Ada! Let me check that for you.")
    assert "https://concierge.example.com/Frontend/checkout.html?bookingId=" in result.message

    booking = bookings_for(services)[0]
    assert booking.guest_name == "Ada Obi"
    assert booking.guest_email == "ada@obi.ng"
    assert booking.total_amount == 200 * 2


def test_fallback_defaults_dates_to_today_and_tomorrow(services, agent, chat):
    start(agent)
    chat.queue("Noted.")

    run(agent.handle_message("session_test", "My name is Ada Obi and my email is ada@obi.ng"))

    booking = bookings_for(services)[0]
    assert (booking.check_out - booking.check_in).days == 1
    assert booking.hotel_id == "LAG001"


def test_fallback_needs_name_and_email(services, agent, chat):
    start(agent)
    chat.queue("Great, what's your name?")

    result = run(agent.handle_message("session_test", "email me at ada@obi.ng"))

    assert result.conversation.status == "active"
    assert bookings_for(services) == []


def test_model_failure_keeps_user_message(services, agent, chat):
    start(agent)
    chat.queue(UpstreamServiceError("text completion", "timeout"))

    with pytest.raises(UpstreamServiceError):
        run(agent.handle_message("session_test", "I want a hotel in London"))

    conversation = services.conversations.get("session_test")
    assert conversation.messages[-1].content == "I want a hotel in London"
    assert conversation.status == "active"


# -----------------------------------------------------------
# Explicit completion
# -----------------------------------------------------------
def test_complete_booking_requires_hotel_and_guest(services, agent):
    start(agent)
    seed(services, guest_name="Ada", check_in="2024-10-25")

    with pytest.raises(ValidationError) as exc:
        run(agent.complete_booking("session_test"))
    assert exc.value.missing == ["guestEmail", "checkOut", "hotelId"]


def test_complete_booking_appends_confirmation(services, agent):
    start(agent)
    seed(services, hotel_id="LON001", rooms=1, guests=2, **READY)

    result = run(agent.complete_booking("session_test", origin="http://localhost:3000"))

    assert result.booking.hotel_name == "London Marriott County Hall"
    assert result.booking.total_amount == 350 * 3
    assert result.conversation.status == "completed"
    confirmation = result.conversation.messages[-1].content
    assert confirmation.startswith("🎉 Perfect! Your booking is ready for payment!")
    assert f"Your booking reference is: {result.booking.id}" in confirmation
    assert f"http://localhost:3000/Frontend/checkout.html?bookingId={result.booking.id}" in confirmation

    with pytest.raises(ValidationError):
        run(agent.complete_booking("session_test"))
    assert len(bookings_for(services)) == 1


def test_complete_booking_unknown_hotel(services, agent):
    start(agent)
    seed(services, hotel_id="LAG003", **READY)

    with pytest.raises(NotFound):
        run(agent.complete_booking("session_test"))
    assert services.conversations.get("session_test").status == "active"


def test_complete_booking_unknown_session(agent):
    with pytest.raises(NotFound):
        run(agent.complete_booking("session_missing"))


def test_force_complete_reports_missing_location(services, agent):
    start(agent)
    seed(services, **READY)

    with pytest.raises(ValidationError) as exc:
        run(agent.force_complete("session_test"))
    assert exc.value.missing == ["location"]


def test_force_complete_resolves_hotel_from_location(services, agent):
    start(agent)
    seed(services, location="new york", **READY)

    result = run(agent.force_complete("session_test"))

    assert result.booking.hotel_id == "NYC001"
    assert result.conversation.booking_info.hotel_id == "NYC001"
    assert result.conversation.booking_info.hotel_name == "New York Marriott Marquis"


def test_force_complete_without_matching_hotel_is_missing_hotel(services, agent):
    start(agent)
    seed(services, location="atlantis", **READY)

    with pytest.raises(ValidationError) as exc:
        run(agent.force_complete("session_test"))
    assert exc.value.missing == ["hotelId"]
