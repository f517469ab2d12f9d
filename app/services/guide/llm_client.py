"""LLM adapter that talks to OpenAI for route picks, taglines, analyses and chat."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from openai import OpenAI

from app.config import settings

logger = logging.getLogger(__name__)

_WEB_SEARCH_TOOL = {"type": "web_search_preview"}


class RouteGuideLLMClient:
    """Thin wrapper around the OpenAI Responses API returning plain text.

    Falls back to Chat Completions when the configured client (or an
    OpenAI-compatible gateway) does not expose ``responses``. Tools and
    reasoning options are dropped on that path.
    """

    def __init__(
        self,
        *,
        client: Any = None,
        timeout: Optional[float] = None,
    ) -> None:
        self._client = client
        self._timeout = timeout if timeout is not None else settings.llm_timeout_seconds

    @property
    def client(self) -> Any:
        # Built lazily so the API can start without credentials
        if self._client is None:
            self._client = self._build_client(self._timeout)
        return self._client

    @staticmethod
    def _build_client(timeout: float) -> OpenAI:
        if not settings.openai_api_key:
            raise RuntimeError("OPENAI_API_KEY is not configured.")
        # The SDK timeout matches the asyncio one so abandoned threads finish too
        return OpenAI(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url or None,
            timeout=timeout,
        )

    def generate(
        self,
        prompt: str,
        *,
        model: str,
        web_search: bool = False,
        reasoning_effort: Optional[str] = None,
    ) -> str:
        """Single-turn generation."""
        return self.converse(
            [],
            prompt,
            model=model,
            web_search=web_search,
            reasoning_effort=reasoning_effort,
        )

    def converse(
        self,
        history: Sequence[Dict[str, str]],
        message: str,
        *,
        model: str,
        instructions: Optional[str] = None,
        web_search: bool = False,
        reasoning_effort: Optional[str] = None,
    ) -> str:
        """Multi-turn generation; ``history`` holds prior ``{"role", "content"}`` turns."""
        if self._supports_responses():
            kwargs: Dict[str, Any] = {
                "model": model,
                "input": self._build_input(history, message),
            }
            if instructions:
                kwargs["instructions"] = instructions
            if web_search:
                kwargs["tools"] = [_WEB_SEARCH_TOOL]
            if reasoning_effort:
                kwargs["reasoning"] = {"effort": reasoning_effort}
            response = self.client.responses.create(**kwargs)
        else:
            if web_search or reasoning_effort:
                logger.warning(
                    "Chat Completions fallback for %s ignores web search and reasoning options", model
                )
            response = self._call_chat_completions(history, message, model=model, instructions=instructions)

        return self._extract_text(response)

    @staticmethod
    def _build_input(history: Sequence[Dict[str, str]], message: str) -> List[Dict[str, str]]:
        turns = [{"role": turn["role"], "content": turn["content"]} for turn in history]
        turns.append({"role": "user", "content": message})
        return turns

    def _supports_responses(self) -> bool:
        responses = getattr(self.client, "responses", None)
        if responses is None:
            return False
        return getattr(responses, "create", None) is not None

    def _call_chat_completions(
        self,
        history: Sequence[Dict[str, str]],
        message: str,
        *,
        model: str,
        instructions: Optional[str],
    ) -> Any:
        chat = getattr(self.client, "chat", None)
        if chat is None or not hasattr(chat, "completions"):
            raise RuntimeError("OpenAI client does not support responses or chat completions")

        messages: List[Dict[str, str]] = []
        if instructions:
            messages.append({"role": "system", "content": instructions})
        messages.extend(self._build_input(history, message))
        return chat.completions.create(model=model, messages=messages)

    @staticmethod
    def _extract_text(response: Any) -> str:
        """Concatenate the text parts of a Responses or Chat Completions reply."""
        # SDK objects expose the concatenated output directly
        output_text = getattr(response, "output_text", None)
        if isinstance(output_text, str) and output_text.strip():
            return output_text

        if isinstance(response, dict):
            data = response
        elif hasattr(response, "model_dump"):
            data = response.model_dump()
        else:
            raise RuntimeError("Unexpected response type from OpenAI client")

        def joined(segments: Any) -> str:
            # Segments are plain strings, {"text": "..."} or {"text": {"value": "..."}}
            if isinstance(segments, str):
                return segments
            parts: List[str] = []
            for segment in segments or []:
                if isinstance(segment, str):
                    parts.append(segment)
                elif isinstance(segment, dict):
                    text = segment.get("text", segment.get("value"))
                    if isinstance(text, dict):
                        text = text.get("value")
                    if isinstance(text, str):
                        parts.append(text)
            return "".join(parts)

        if isinstance(data.get("output_text"), str) and data["output_text"].strip():
            return data["output_text"]

        # Responses API: message items carry content blocks, tool calls carry none
        text = "".join(
            joined(item.get("content"))
            for item in data.get("output") or []
            if isinstance(item, dict)
        )
        if text:
            return text

        # chat.completions style payloads
        choices = data.get("choices") or []
        if choices:
            text = joined(choices[0].get("message", {}).get("content"))
            if text:
                return text

        raise RuntimeError("Unable to extract text from LLM response")
