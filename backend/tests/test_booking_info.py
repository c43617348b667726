from hotel_concierge.models.conversation_models import BookingInfo


def test_merge_overwrites_only_present_fields():
    current = BookingInfo(location="lagos", guest_email="old@mail.com", rooms=2)
    merged = current.merge(BookingInfo(guest_email="new@mail.com"))

    assert merged.guest_email == "new@mail.com"
    assert merged.location == "lagos"
    assert merged.rooms == 2


def test_merge_never_clears_a_field():
    current = BookingInfo(guest_name="Ada Obi")
    assert current.merge(BookingInfo()).guest_name == "Ada Obi"


def test_merge_does_not_mutate_either_side():
    current = BookingInfo(location="lagos")
    update = BookingInfo(location="london")
    current.merge(update)
    assert current.location == "lagos"
    assert update.location == "london"


def test_has_booking_info_needs_email_and_both_dates():
    info = BookingInfo(guest_email="a@b.com", check_in="2024-10-25")
    assert not info.has_booking_info()
    assert info.merge(BookingInfo(check_out="2024-10-28")).has_booking_info()


def test_missing_reports_camel_case_names():
    info = BookingInfo(guest_name="Ada", check_in="2024-10-25")
    assert info.missing(["guest_name", "guest_email", "check_in", "hotel_id"]) == ["guestEmail", "hotelId"]


def test_public_form_is_camel_case_without_unset_fields():
    info = BookingInfo(location="lagos", guest_email="a@b.com")
    assert info.to_public() == {"location": "lagos", "guestEmail": "a@b.com"}
    assert BookingInfo().is_empty()
