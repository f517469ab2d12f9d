"""LLM-backed route guide: prompts, client and route parsing."""
from .llm_client import RouteGuideLLMClient
from .runner import run_llm_call
from .validator import RoutePayloadError, RouteValidator, load_route_payload

__all__ = [
    "RouteGuideLLMClient",
    "RoutePayloadError",
    "RouteValidator",
    "load_route_payload",
    "run_llm_call",
]
