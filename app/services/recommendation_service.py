"""
Route recommendation service
One grounded LLM request picks the route, a second one writes its tagline
"""
import asyncio
import logging
from typing import Optional

from app.config import settings
from app.models.request import Preferences
from app.models.response import Route
from app.services.guide import (
    RouteGuideLLMClient,
    RoutePayloadError,
    RouteValidator,
    load_route_payload,
    run_llm_call,
)
from app.services.guide.prompts import (
    ROUTE_FAILED_MESSAGE,
    TAGLINE_EMPTY_FALLBACK,
    TAGLINE_FAILED_FALLBACK,
    build_route_prompt,
    build_tagline_prompt,
)

logger = logging.getLogger(__name__)


class RouteRequestFailure(RuntimeError):
    """Route discovery failed: network error, timeout or unparsable reply."""


class RecommendationService:
    """
    Route pick followed by tagline enrichment

    Only find_route may fail the flow; add_tagline always returns a route.
    """

    def __init__(
        self,
        llm_client: Optional[RouteGuideLLMClient] = None,
        validator: Optional[RouteValidator] = None,
        timeout: Optional[float] = None,
    ):
        self.llm_client = llm_client or RouteGuideLLMClient()
        self.validator = validator or RouteValidator()
        self.timeout = timeout

    async def find_route(self, preferences: Preferences) -> Route:
        prompt = build_route_prompt(preferences)
        try:
            raw_text = await run_llm_call(
                self.llm_client.generate,
                prompt,
                model=settings.openai_model,
                web_search=settings.enable_web_search,
                timeout=self.timeout,
            )
            payload = load_route_payload(raw_text)
            return self.validator.validate(payload, preferences=preferences)
        except asyncio.TimeoutError as exc:
            logger.error("Route finding timed out for %r", preferences.location)
            raise RouteRequestFailure(ROUTE_FAILED_MESSAGE) from exc
        except RoutePayloadError as exc:
            logger.error("Route finding returned an unusable reply: %s", exc)
            raise RouteRequestFailure(ROUTE_FAILED_MESSAGE) from exc
        except Exception as exc:
            logger.error("Route finding error: %s", exc)
            raise RouteRequestFailure(ROUTE_FAILED_MESSAGE) from exc

    async def add_tagline(self, route: Route) -> Route:
        """Replace the description with a short tagline, never raising."""
        try:
            text = await run_llm_call(
                self.llm_client.generate,
                build_tagline_prompt(route),
                model=settings.openai_tagline_model,
                timeout=self.timeout,
            )
            tagline = text.strip() or TAGLINE_EMPTY_FALLBACK
        except Exception as exc:
            logger.warning("Tagline generation failed for %s: %s", route.name, exc)
            tagline = TAGLINE_FAILED_FALLBACK
        return route.model_copy(update={"description": tagline})

    async def spin(self, preferences: Preferences) -> Route:
        """Find a route and enrich it with a tagline."""
        route = await self.find_route(preferences)
        return await self.add_tagline(route)
