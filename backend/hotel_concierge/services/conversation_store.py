# backend/hotel_concierge/services/conversation_store.py

import random
import string
import time
from typing import Optional
from uuid import uuid4

from hotel_concierge.core.errors import NotFound
from hotel_concierge.core.logger import get_logger
from hotel_concierge.db.sqlite_store import SQLiteStore
from hotel_concierge.models.conversation_models import GREETING, BookingInfo, Conversation

logger = get_logger("conversations")


def generate_session_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"session_{int(time.time() * 1000)}_{suffix}"


class ConversationStore:
    """CRUD over conversations: the message log and the bookingInfo scratchpad."""

    def __init__(self, store: SQLiteStore):
        self.store = store

    def find(self, session_id: str) -> Optional[Conversation]:
        row = self.store.get_conversation(session_id)
        return Conversation.model_validate(row) if row else None

    def get(self, session_id: str) -> Conversation:
        conversation = self.find(session_id)
        if conversation is None:
            raise NotFound("conversation", session_id)
        return conversation

    def get_or_create(self, session_id: Optional[str] = None) -> Conversation:
        """Existing conversation, or a new one opening with the greeting."""
        session_id = session_id or generate_session_id()
        with self.store.transaction():
            conversation = self.find(session_id)
            if conversation is not None:
                return conversation

            conversation_id = uuid4().hex
            self.store.create_conversation(conversation_id, session_id)
            self.store.add_message(conversation_id, "assistant", GREETING)

        logger.info(f"Created conversation {conversation_id} for session {session_id}")
        return self.get(session_id)

    def append_message(self, session_id: str, role: str, content: str) -> Conversation:
        conversation = self.get(session_id)
        self.store.add_message(conversation.id, role, content)
        return self.get(session_id)

    def rewrite_last_assistant_message(self, session_id: str, content: str):
        conversation = self.get(session_id)
        self.store.rewrite_last_assistant_message(conversation.id, content)

    def merge_booking_info(self, session_id: str, update: BookingInfo) -> BookingInfo:
        """Merge ``update`` into the stored bookingInfo and persist the result."""
        conversation = self.get(session_id)
        merged = conversation.booking_info.merge(update)
        if merged != conversation.booking_info:
            self.store.update_booking_info(session_id, merged.present_fields())
        return merged

    def complete(self, session_id: str, booking_info: BookingInfo) -> bool:
        completed = self.store.complete_conversation(session_id, booking_info.present_fields())
        if completed:
            logger.info(f"Conversation for session {session_id} marked completed")
        return completed

    def stats(self) -> dict:
        counts = self.store.count_conversations_by_status()
        return {
            "totalConversations": sum(counts.values()),
            "activeConversations": counts.get("active", 0),
            "completedConversations": counts.get("completed", 0),
            "cancelledConversations": counts.get("cancelled", 0),
        }
