# backend/hotel_concierge/utils/time_utils.py

from datetime import date, datetime, timedelta
from typing import Optional, Union

import pytz


def local_today(timezone: str) -> date:
    return datetime.now(pytz.timezone(timezone)).date()


def local_tomorrow(timezone: str) -> date:
    return local_today(timezone) + timedelta(days=1)


def parse_booking_date(text: Optional[str], day_first: bool = False) -> Optional[date]:
    """
    Accepts formats like:
    - 10/25/2024 (month first unless ``day_first``)
    - 2024-10-25

    Returns None for anything else, including impossible calendar dates.
    """
    if not text:
        return None
    text = text.strip()

    try:
        if "/" in text:
            a, b, y = text.split("/")
            month, day = (b, a) if day_first else (a, b)
            return date(int(y), int(month), int(day))
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def as_date(value: Union[str, date, None], day_first: bool = False) -> Optional[date]:
    if value is None or isinstance(value, date):
        return value
    return parse_booking_date(value, day_first=day_first)
