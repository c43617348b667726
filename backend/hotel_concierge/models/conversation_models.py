# backend/hotel_concierge/models/conversation_models.py

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


GREETING = "Hi there! Tell me what kind of hotel you're looking for and where. I'll handle the rest."

ConversationStatus = Literal["active", "completed", "cancelled"]
MessageRole = Literal["user", "assistant", "system"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Message(CamelModel):
    role: MessageRole
    content: str
    timestamp: datetime


class BookingInfo(CamelModel):
    """
    Partial booking record accumulated across turns.

    Every field is optional; ``None`` means "not known yet". Fields are
    filled in by extraction passes and never fall back to ``None`` once set,
    only a newer value may replace them.
    """

    location: Optional[str] = None
    check_in: Optional[str] = None
    check_out: Optional[str] = None
    guest_name: Optional[str] = None
    guest_email: Optional[str] = None
    guest_phone: Optional[str] = None
    hotel_id: Optional[str] = None
    hotel_name: Optional[str] = None
    guests: Optional[int] = None
    rooms: Optional[int] = None
    special_requests: Optional[str] = None

    def merge(self, update: "BookingInfo") -> "BookingInfo":
        """Return a copy where every field present in ``update`` overwrites ours."""
        return self.model_copy(update=update.present_fields())

    def present_fields(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)

    def is_empty(self) -> bool:
        return not self.present_fields()

    def has_booking_info(self) -> bool:
        """Email plus both dates: enough to start attempting completion."""
        return (
            self.guest_email is not None
            and self.check_in is not None
            and self.check_out is not None
        )

    def missing(self, required: List[str]) -> List[str]:
        """Camel-case names of the ``required`` fields that are still unset."""
        return [
            to_camel(name) for name in required
            if getattr(self, name) in (None, "")
        ]

    def to_public(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class Conversation(CamelModel):
    id: str
    session_id: str
    messages: List[Message] = Field(default_factory=list)
    booking_info: BookingInfo = Field(default_factory=BookingInfo)
    status: ConversationStatus = "active"
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    @property
    def last_message(self) -> Optional[Message]:
        return self.messages[-1] if self.messages else None

    def public_messages(self) -> List[Dict[str, Any]]:
        return [m.model_dump(mode="json", by_alias=True) for m in self.messages]

    def to_public(self) -> Dict[str, Any]:
        data = self.model_dump(mode="json", by_alias=True, exclude={"booking_info"})
        data["bookingInfo"] = self.booking_info.to_public()
        return data


# --------------------------
# Request bodies
# --------------------------
class StartConversationIn(CamelModel):
    session_id: Optional[str] = None


class SendMessageIn(CamelModel):
    session_id: str = Field(min_length=1)
    message: str = Field(min_length=1)


class SessionIn(CamelModel):
    session_id: str = Field(min_length=1)


class ConversationHotelSearchIn(CamelModel):
    search_term: Optional[str] = None
    city: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
