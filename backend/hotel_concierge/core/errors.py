# backend/hotel_concierge/core/errors.py

from typing import List, Optional


class BookingError(Exception):
    """Base class for every error the booking backend raises on purpose."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(BookingError):
    def __init__(self, kind: str, key: str):
        super().__init__(f"{kind.capitalize()} not found")
        self.kind = kind
        self.key = key


class ValidationError(BookingError):
    """Missing booking fields, invalid date ranges or not enough rooms."""

    def __init__(self, message: str, missing: Optional[List[str]] = None):
        super().__init__(message)
        self.missing = missing or []


class UpstreamServiceError(BookingError):
    """Text completion, transcription or speech synthesis failed."""

    def __init__(self, service: str, detail: str):
        super().__init__(f"{service} failed: {detail}")
        self.service = service
        self.detail = detail


class StorageError(BookingError):
    def __init__(self, operation: str, detail: str):
        super().__init__(f"Error {operation}: {detail}")
        self.operation = operation
        self.detail = detail
