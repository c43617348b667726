import asyncio
from types import SimpleNamespace

import pytest
from openai import OpenAIError

from conftest import make_message

from hotel_concierge.core.errors import UpstreamServiceError, ValidationError
from hotel_concierge.core.llm import ChatCompletionService
from hotel_concierge.core.session_locks import SessionLocks
from hotel_concierge.services.conversation_store import generate_session_id
from hotel_concierge.services.voice_service import MAX_AUDIO_BYTES


class FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.requests = []

    async def create(self, **kwargs):
        self.requests.append(kwargs)
        if self.error:
            raise self.error
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=self.content))])


def chat_service(settings, completions):
    return ChatCompletionService(settings, client=SimpleNamespace(chat=SimpleNamespace(completions=completions)))


# -----------------------------------------------------------
# Chat completion
# -----------------------------------------------------------
def test_completion_sends_prompt_and_capped_history(settings):
    settings.history_limit = 2
    completions = FakeCompletions(content="Sure!")
    history = [make_message("user", f"m{i}") for i in range(5)]

    reply = asyncio.run(chat_service(settings, completions).complete("be nice", history))

    assert reply == "Sure!"
    sent = completions.requests[0]
    assert sent["model"] == settings.openai_model
    assert sent["messages"] == [
        {"role": "system", "content": "be nice"},
        {"role": "user", "content": "m3"},
        {"role": "user", "content": "m4"},
    ]


def test_completion_errors_become_upstream_errors(settings):
    completions = FakeCompletions(error=OpenAIError("rate limited"))
    with pytest.raises(UpstreamServiceError, match="rate limited"):
        asyncio.run(chat_service(settings, completions).complete("p", []))


def test_empty_completion_is_empty_text(settings):
    assert asyncio.run(chat_service(settings, FakeCompletions(content=None)).complete("p", [])) == ""


# -----------------------------------------------------------
# Voice
# -----------------------------------------------------------
def test_transcribe_passes_audio_and_trims(services, audio_client):
    text = asyncio.run(services.voice.transcribe(b"RIFF....", "clip.wav", "audio/wav"))

    assert text == "I need a hotel in Lagos"
    request = audio_client.requests[0]
    assert request["file"] == ("clip.wav", b"RIFF....")
    assert request["language"] == "en"
    assert request["response_format"] == "text"


def test_transcribe_validates_upload(services):
    with pytest.raises(ValidationError):
        asyncio.run(services.voice.transcribe(b"data", "notes.txt", "text/plain"))
    with pytest.raises(ValidationError):
        asyncio.run(services.voice.transcribe(b"x" * (MAX_AUDIO_BYTES + 1), "big.mp3", "audio/mpeg"))


def test_synthesize_validates_voice_and_speed(services, audio_client):
    assert asyncio.run(services.voice.synthesize("Hello", "nova", 1.5)) == b"ID3-fake-mp3"
    assert audio_client.requests[-1]["voice"] == "nova"

    with pytest.raises(ValidationError):
        asyncio.run(services.voice.synthesize("Hello", "robot"))
    with pytest.raises(ValidationError):
        asyncio.run(services.voice.synthesize("Hello", "alloy", 5.0))
    with pytest.raises(ValidationError):
        asyncio.run(services.voice.synthesize("   "))


# -----------------------------------------------------------
# Misc
# -----------------------------------------------------------
def test_session_id_shape():
    session_id = generate_session_id()
    prefix, millis, suffix = session_id.split("_")
    assert prefix == "session"
    assert millis.isdigit()
    assert len(suffix) == 9 and suffix.isalnum() and suffix == suffix.lower()


def test_session_locks_serialize_and_clean_up():
    locks = SessionLocks()
    order = []

    async def turn(name):
        async with locks.hold("s1"):
            order.append(f"{name}-in")
            await asyncio.sleep(0.01)
            order.append(f"{name}-out")

    async def main():
        await asyncio.gather(turn("a"), turn("b"))

    asyncio.run(main())
    assert order == ["a-in", "a-out", "b-in", "b-out"]
    assert len(locks) == 0
