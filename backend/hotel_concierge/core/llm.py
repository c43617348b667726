# backend/hotel_concierge/core/llm.py

from typing import Dict, List, Optional, Sequence

from openai import AsyncOpenAI, OpenAIError

from hotel_concierge.core.config_loader import Settings
from hotel_concierge.core.errors import UpstreamServiceError
from hotel_concierge.core.logger import get_logger
from hotel_concierge.models.conversation_models import Message

logger = get_logger("llm")


class ChatCompletionService:
    """
    Opaque text-completion collaborator: system prompt + history in, text out.

    The OpenAI client is created on first use so the app can start (and be
    tested) without an API key.
    """

    def __init__(self, settings: Settings, client: Optional[AsyncOpenAI] = None):
        self.settings = settings
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.settings.OPENAI_API_KEY)
        return self._client

    def build_messages(self, system_prompt: str, history: Sequence[Message]) -> List[Dict[str, str]]:
        messages = [{"role": "system", "content": system_prompt}]
        for msg in list(history)[-self.settings.history_limit:]:
            messages.append({"role": msg.role, "content": msg.content})
        return messages

    async def complete(self, system_prompt: str, history: Sequence[Message]) -> str:
        messages = self.build_messages(system_prompt, history)
        try:
            response = await self.client.chat.completions.create(
                model=self.settings.openai_model,
                messages=messages,
                max_tokens=self.settings.openai_max_tokens,
                temperature=self.settings.openai_temperature,
            )
        except OpenAIError as e:
            logger.error(f"Chat completion failed ({len(messages)} messages): {e}")
            raise UpstreamServiceError("text completion", str(e)) from e

        content = response.choices[0].message.content
        if not content:
            logger.warning("LLM returned empty content")
            return ""
        return content
