"""Route-scoped chat with the guide."""
import logging
from typing import Dict, List, Optional, Sequence

from app.config import settings
from app.models.chat import ChatMessage
from app.models.request import Preferences
from app.models.response import Route
from app.services.guide import RouteGuideLLMClient, run_llm_call
from app.services.guide.prompts import CHAT_FAILED_FALLBACK, build_chat_instructions

logger = logging.getLogger(__name__)


class ChatService:
    """Rebuilds the whole conversation on every call, no server-side chat session."""

    def __init__(
        self,
        llm_client: Optional[RouteGuideLLMClient] = None,
        timeout: Optional[float] = None,
    ):
        self.llm_client = llm_client or RouteGuideLLMClient()
        self.timeout = timeout

    async def reply(
        self,
        transcript: Sequence[ChatMessage],
        message: str,
        route: Route,
        preferences: Preferences,
    ) -> str:
        try:
            text = await run_llm_call(
                self.llm_client.converse,
                self._to_history(transcript),
                message,
                model=settings.openai_chat_model,
                instructions=build_chat_instructions(route, preferences),
                timeout=self.timeout,
            )
        except Exception as exc:
            logger.warning("Chat error for %s: %s", route.name, exc)
            return CHAT_FAILED_FALLBACK
        return text.strip() or CHAT_FAILED_FALLBACK

    @staticmethod
    def _to_history(transcript: Sequence[ChatMessage]) -> List[Dict[str, str]]:
        return [
            {"role": item.role.value, "content": item.text}
            for item in transcript
            if not item.is_thinking
        ]
