"""Deep-dive suitability and safety analysis for the current route."""
import logging
from typing import Optional

from app.config import settings
from app.models.request import Preferences
from app.models.response import Route
from app.services.guide import RouteGuideLLMClient, run_llm_call
from app.services.guide.prompts import (
    ANALYSIS_EMPTY_FALLBACK,
    ANALYSIS_FAILED_FALLBACK,
    build_analysis_prompt,
)

logger = logging.getLogger(__name__)


class DeepDiveService:
    """Independent per call; failures come back as a fallback text."""

    def __init__(
        self,
        llm_client: Optional[RouteGuideLLMClient] = None,
        timeout: Optional[float] = None,
    ):
        self.llm_client = llm_client or RouteGuideLLMClient()
        self.timeout = timeout

    async def analyze(self, route: Route, preferences: Preferences) -> str:
        try:
            text = await run_llm_call(
                self.llm_client.generate,
                build_analysis_prompt(route, preferences),
                model=settings.openai_analysis_model,
                reasoning_effort=settings.analysis_reasoning_effort,
                timeout=self.timeout,
            )
        except Exception as exc:
            logger.warning("Deep dive error for %s: %s", route.name, exc)
            return ANALYSIS_FAILED_FALLBACK
        return text or ANALYSIS_EMPTY_FALLBACK
