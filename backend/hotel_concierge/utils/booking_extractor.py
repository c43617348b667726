# backend/hotel_concierge/utils/booking_extractor.py

import re
from typing import List, Optional, Sequence

from hotel_concierge.models.conversation_models import BookingInfo, Message
from hotel_concierge.utils.time_utils import parse_booking_date


GENERAL_WINDOW = 10
LOCATION_WINDOW = 5

GAZETTEER = (
    "lagos", "new york", "london", "paris", "tokyo", "dubai", "singapore", "miami",
    "los angeles", "chicago", "toronto", "sydney", "mumbai", "delhi", "bangalore",
    "kolkata", "chennai", "hyderabad", "pune", "ahmedabad", "jaipur", "lucknow",
    "kanpur", "nagpur", "indore", "thane", "bhopal", "visakhapatnam", "pimpri", "patna",
    "vadodara", "ghaziabad", "ludhiana", "agra", "nashik", "faridabad", "meerut",
    "rajkot", "kalyan", "vasai", "varanasi", "srinagar", "aurangabad", "navi mumbai",
    "solapur", "vijayawada", "kolhapur", "amritsar", "noida", "ranchi", "howrah",
    "coimbatore", "raipur", "jabalpur", "gwalior", "jodhpur", "madurai", "mysore",
    "tiruchirappalli", "kota", "chandigarh", "bhubaneswar", "salem", "warangal",
    "guntur", "bhiwandi", "amravati", "nanded", "sangli", "malegaon", "ulhasnagar",
    "jalgaon", "akola", "latur", "ahmednagar", "dhule", "ichalkaranji", "parbhani",
    "jalna", "bhusawal", "panvel", "satara", "beed", "yavatmal", "kamptee", "gondia",
    "barshi", "achalpur", "osmanabad", "nandurbar", "wardha", "udgir", "hinganghat",
)

DATE_PATTERN = re.compile(r"\b(\d{1,2}/\d{1,2}/\d{4}|\d{4}-\d{2}-\d{2})\b")
EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
PHONE_PATTERN = re.compile(r"(\+?1[-.\s]?)?\(?([0-9]{3})\)?[-.\s]?([0-9]{3})[-.\s]?([0-9]{4})")
NAME_PATTERN = re.compile(
    r"(?:my name is|i['’]m|i am|call me|name is)[ \t]+([a-z]+(?:[ \t]+[a-z]+)*)",
    re.IGNORECASE,
)
# longest names first so "navi mumbai" wins over "mumbai"
LOCATION_PATTERN = re.compile(
    r"\b(" + "|".join(re.escape(c) for c in sorted(set(GAZETTEER), key=len, reverse=True)) + r")\b",
    re.IGNORECASE,
)

MAX_NAME_WORDS = 4
NAME_STOP_WORDS = {
    "and", "but", "or", "so", "my", "email", "phone", "number", "from", "to", "in",
    "at", "on", "with", "for", "the", "a", "an", "is", "was", "here", "please",
    "looking", "staying", "travelling", "traveling", "checking", "going", "interested",
    "i", "im", "not", "just", "also", "happy", "glad", "sorry", "thinking", "planning",
}


# -----------------------------------------------------------
# Single-rule extractors
# -----------------------------------------------------------
def extract_dates(text: str, day_first: bool = False) -> List[str]:
    """Valid date tokens in order of appearance, normalized to YYYY-MM-DD."""
    found = []
    for token in DATE_PATTERN.findall(text or ""):
        parsed = parse_booking_date(token, day_first=day_first)
        if parsed is not None:
            found.append(parsed.isoformat())
    return found


def extract_email(text: str) -> Optional[str]:
    match = EMAIL_PATTERN.search(text or "")
    return match.group(0) if match else None


def extract_phone(text: str) -> Optional[str]:
    match = PHONE_PATTERN.search(text or "")
    return match.group(0).strip() if match else None


def extract_name(text: str) -> Optional[str]:
    for match in NAME_PATTERN.finditer(text or ""):
        words = []
        for word in match.group(1).split():
            if word.lower() in NAME_STOP_WORDS or len(words) == MAX_NAME_WORDS:
                break
            words.append(word)
        if words:
            return " ".join(words)
    return None


def extract_location(text: str) -> Optional[str]:
    match = LOCATION_PATTERN.search(text or "")
    return match.group(1).lower() if match else None


# -----------------------------------------------------------
# Combined extraction
# -----------------------------------------------------------
def extract(text: str, day_first: bool = False) -> BookingInfo:
    """
    Run every rule over ``text`` and return only the fields that matched.

    Dates need two tokens: the first becomes check-in, the second check-out.
    """
    return BookingInfo(
        **_dates_update(text, day_first),
        guest_email=extract_email(text),
        guest_phone=extract_phone(text),
        guest_name=extract_name(text),
        location=extract_location(text),
    )


def extract_from_messages(messages: Sequence[Message], day_first: bool = False) -> BookingInfo:
    """
    Extraction over the recent conversation window.

    Dates come from every message of the last ten, guest identity only from
    what the user wrote in them, location from the last five.
    """
    window = list(messages)[-GENERAL_WINDOW:]
    all_text = _join(window)
    user_text = _join(m for m in window if m.role == "user")

    return BookingInfo(
        **_dates_update(all_text, day_first),
        guest_email=extract_email(user_text),
        guest_phone=extract_phone(user_text),
        guest_name=extract_name(user_text),
        location=location_from_messages(messages),
    )


def location_from_messages(messages: Sequence[Message]) -> Optional[str]:
    return extract_location(_join(list(messages)[-LOCATION_WINDOW:]))


def _dates_update(text: str, day_first: bool) -> dict:
    dates = extract_dates(text, day_first=day_first)
    if len(dates) < 2:
        return {}
    return {"check_in": dates[0], "check_out": dates[1]}


def _join(messages) -> str:
    return " ".join(m.content for m in messages)
