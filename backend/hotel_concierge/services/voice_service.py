# backend/hotel_concierge/services/voice_service.py

from typing import Dict, List, Optional

from openai import AsyncOpenAI, OpenAIError

from hotel_concierge.core.config_loader import Settings
from hotel_concierge.core.errors import UpstreamServiceError, ValidationError
from hotel_concierge.core.logger import get_logger

logger = get_logger("voice")

MAX_AUDIO_BYTES = 10 * 1024 * 1024  # 10 MB

VOICES: List[Dict[str, str]] = [
    {"id": "alloy", "name": "Alloy", "description": "Neutral, balanced voice"},
    {"id": "echo", "name": "Echo", "description": "Clear, confident voice"},
    {"id": "fable", "name": "Fable", "description": "Warm, storytelling voice"},
    {"id": "onyx", "name": "Onyx", "description": "Deep, authoritative voice"},
    {"id": "nova", "name": "Nova", "description": "Bright, energetic voice"},
    {"id": "shimmer", "name": "Shimmer", "description": "Soft, gentle voice"},
]
VOICE_IDS = {v["id"] for v in VOICES}


class VoiceService:
    """Speech-to-text and text-to-speech through the OpenAI audio endpoints."""

    def __init__(self, settings: Settings, client: Optional[AsyncOpenAI] = None):
        self.settings = settings
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.settings.OPENAI_API_KEY)
        return self._client

    async def transcribe(self, audio: bytes, filename: str, content_type: Optional[str]) -> str:
        if not content_type or not content_type.startswith("audio/"):
            raise ValidationError("Only audio files are allowed")
        if not audio:
            raise ValidationError("No audio file provided")
        if len(audio) > MAX_AUDIO_BYTES:
            raise ValidationError("Audio file exceeds the 10MB limit")

        logger.info(f"Transcribing audio file: {filename} ({len(audio)} bytes)")
        try:
            transcription = await self.client.audio.transcriptions.create(
                file=(filename, audio),
                model=self.settings.transcription_model,
                language="en",
                response_format="text",
            )
        except OpenAIError as e:
            logger.error(f"Transcription failed for {filename}: {e}")
            raise UpstreamServiceError("transcription", str(e)) from e

        # response_format="text" yields a plain string
        return str(transcription).strip()

    async def synthesize(self, text: str, voice: str = "alloy", speed: float = 1.0) -> bytes:
        if not text or not text.strip():
            raise ValidationError("Text is required")
        if voice not in VOICE_IDS:
            raise ValidationError(f"Unknown voice '{voice}'")
        if not 0.25 <= speed <= 4.0:
            raise ValidationError("Speed must be between 0.25 and 4.0")

        logger.info(f"Converting text to speech with voice={voice}: {text[:50]}...")
        try:
            speech = await self.client.audio.speech.create(
                model=self.settings.speech_model,
                voice=voice,
                input=text,
                speed=speed,
                response_format="mp3",
            )
        except OpenAIError as e:
            logger.error(f"Speech synthesis failed: {e}")
            raise UpstreamServiceError("speech synthesis", str(e)) from e

        return speech.content
