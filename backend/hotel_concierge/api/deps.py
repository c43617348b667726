# backend/hotel_concierge/api/deps.py

from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from hotel_concierge.agents.booking_agent import BookingAgent
from hotel_concierge.core.config_loader import Settings
from hotel_concierge.core.llm import ChatCompletionService
from hotel_concierge.core.session_locks import SessionLocks
from hotel_concierge.db.sqlite_store import SQLiteStore
from hotel_concierge.services.booking_ledger import BookingLedger
from hotel_concierge.services.conversation_store import ConversationStore
from hotel_concierge.services.hotel_catalog import HotelCatalog
from hotel_concierge.services.voice_service import VoiceService


@dataclass
class Services:
    settings: Settings
    store: SQLiteStore
    catalog: HotelCatalog
    conversations: ConversationStore
    ledger: BookingLedger
    agent: BookingAgent
    voice: VoiceService


def build_services(
    settings: Settings,
    catalog: Optional[HotelCatalog] = None,
    llm: Optional[ChatCompletionService] = None,
    voice: Optional[VoiceService] = None,
) -> Services:
    """Wire every collaborator once per process; tests pass their own catalog / llm."""
    store = SQLiteStore(settings.db_path)
    catalog = catalog or HotelCatalog.from_json(settings.hotels_path)
    conversations = ConversationStore(store)
    ledger = BookingLedger(store, catalog, settings)
    agent = BookingAgent(
        settings,
        conversations,
        ledger,
        catalog,
        llm or ChatCompletionService(settings),
        SessionLocks(),
    )
    return Services(
        settings=settings,
        store=store,
        catalog=catalog,
        conversations=conversations,
        ledger=ledger,
        agent=agent,
        voice=voice or VoiceService(settings),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_origin(request: Request) -> Optional[str]:
    return request.headers.get("origin")
