from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from hotel_concierge.api.deps import build_services
from hotel_concierge.core.config_loader import Settings
from hotel_concierge.models.conversation_models import Message
from hotel_concierge.models.hotel_models import Hotel
from hotel_concierge.server import create_app
from hotel_concierge.services.hotel_catalog import HotelCatalog
from hotel_concierge.services.voice_service import VoiceService


class ScriptedChat:
    """Stands in for the completion service; queued replies are returned in order."""

    def __init__(self):
        self.replies = []
        self.calls = []

    def queue(self, *replies):
        self.replies.extend(replies)

    async def complete(self, system_prompt, history):
        self.calls.append((system_prompt, list(history)))
        if not self.replies:
            return "How else can I help with your stay?"
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeAudioClient:
    """Just the two OpenAI audio calls the voice service makes."""

    def __init__(self):
        self.requests = []
        self.audio = SimpleNamespace(
            transcriptions=SimpleNamespace(create=self._transcribe),
            speech=SimpleNamespace(create=self._speak),
        )

    async def _transcribe(self, **kwargs):
        self.requests.append(kwargs)
        return " I need a hotel in Lagos \n"

    async def _speak(self, **kwargs):
        self.requests.append(kwargs)
        return SimpleNamespace(content=b"ID3-fake-mp3")


def make_message(role, content):
    return Message(role=role, content=content, timestamp=datetime.now(timezone.utc))


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        OPENAI_API_KEY="test-key",
        db_path=str(tmp_path / "test.sqlite3"),
        environment="development",
    )


@pytest.fixture
def catalog():
    return HotelCatalog([
        Hotel(id="LAG001", name="Lagos Marriott Hotel Ikeja", brand="Marriott", location="Lagos",
              city="Ikeja", state="Lagos", rating=4.5, stars=5, price_per_night=200, total_rooms=10),
        Hotel(id="LAG002", name="Four Points Lagos", brand="Sheraton", location="Lagos",
              city="Victoria Island", state="Lagos", rating=4.2, stars=4, price_per_night=150, total_rooms=5),
        Hotel(id="LAG003", name="Closed Lagos Inn", location="Lagos", price_per_night=90, is_active=False),
        Hotel(id="NYC001", name="New York Marriott Marquis", brand="Marriott", location="New York",
              city="New York", state="NY", rating=4.4, stars=4, price_per_night=300, total_rooms=20),
        Hotel(id="LON001", name="London Marriott County Hall", brand="Marriott", location="London",
              city="London", rating=4.6, stars=5, price_per_night=350, total_rooms=8),
    ])


@pytest.fixture
def chat():
    return ScriptedChat()


@pytest.fixture
def audio_client():
    return FakeAudioClient()


@pytest.fixture
def services(settings, catalog, chat, audio_client):
    services = build_services(
        settings,
        catalog=catalog,
        llm=chat,
        voice=VoiceService(settings, client=audio_client),
    )
    yield services
    services.store.close()


@pytest.fixture
def agent(services):
    return services.agent


@pytest.fixture
def client(services):
    return TestClient(create_app(services))
