# backend/hotel_concierge/api/routes_voice.py

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import Response
from pydantic import Field

from hotel_concierge.api.deps import Services, get_services
from hotel_concierge.models.conversation_models import CamelModel
from hotel_concierge.services.voice_service import VOICES

router = APIRouter(prefix="/api/voice", tags=["voice"])


class SpeakIn(CamelModel):
    text: str = Field(min_length=1)


class SpeakEnhancedIn(CamelModel):
    text: str = Field(min_length=1)
    voice: str = "alloy"
    speed: float = 1.0


def _mp3(audio: bytes) -> Response:
    return Response(content=audio, media_type="audio/mpeg")


@router.post("/transcribe")
async def transcribe(audio: UploadFile = File(...), services: Services = Depends(get_services)):
    content = await audio.read()
    text = await services.voice.transcribe(content, audio.filename or "audio.webm", audio.content_type)
    return {"success": True, "transcription": text}


@router.post("/speak")
async def speak(data: SpeakIn, services: Services = Depends(get_services)):
    return _mp3(await services.voice.synthesize(data.text))


@router.post("/speak-enhanced")
async def speak_enhanced(data: SpeakEnhancedIn, services: Services = Depends(get_services)):
    return _mp3(await services.voice.synthesize(data.text, data.voice, data.speed))


@router.get("/voices")
def list_voices():
    return {"success": True, "voices": VOICES}
