"""Parsing and repair of the route pick returned by the LLM."""
from __future__ import annotations

import json
import re
import uuid
from typing import Dict, List, Optional
from urllib.parse import quote

from app.models.request import Difficulty, Preferences
from app.models.response import LocationPoint, Route

from .prompts import DEFAULT_SAFETY_NOTES, MAPS_SEARCH_URL

_FENCED_JSON = re.compile(r"```json\s*([\s\S]*?)\s*```")
_DIFFICULTIES = {level.value.lower(): level for level in Difficulty}


class RoutePayloadError(ValueError):
    """The LLM reply could not be turned into a complete route."""


def extract_fenced_json(text: str) -> str:
    """Return the body of the first ```json block, or the text itself when unfenced."""
    match = _FENCED_JSON.search(text)
    return match.group(1) if match else text


def load_route_payload(text: str) -> Dict[str, object]:
    candidate = extract_fenced_json(text or "").strip()
    try:
        loaded = json.loads(candidate or "{}")
    except json.JSONDecodeError as exc:
        raise RoutePayloadError(f"Route reply is not valid JSON: {exc}") from exc
    if not isinstance(loaded, dict):
        raise RoutePayloadError("Route reply must be a JSON object")
    return loaded


class RouteValidator:
    """Validate and repair a raw route pick into a :class:`Route`."""

    def validate(self, payload: Dict[str, object], *, preferences: Preferences) -> Route:
        name = self._text(payload.get("name"))
        if not name:
            raise RoutePayloadError("Route reply is missing a name")

        location = self._text(payload.get("location")) or preferences.location.strip()
        safety_notes = self._safety_notes(payload.get("safetyNotes"))
        maps_link = self._text(payload.get("mapsLink")) or self._maps_search_link(name, location)

        return Route(
            id=str(uuid.uuid4()),
            name=name,
            location=location,
            distance=self._text(payload.get("distance")),
            difficulty=self._difficulty(payload.get("difficulty"), default=preferences.difficulty),
            terrain=self._text(payload.get("terrain")),
            description=self._text(payload.get("description")),
            safety_notes=safety_notes or list(DEFAULT_SAFETY_NOTES),
            maps_link=maps_link,
            coordinates=self._coordinates(payload.get("coordinates")),
        )

    @staticmethod
    def _text(value: object) -> str:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        if isinstance(value, str):
            return value.strip()
        return ""

    @staticmethod
    def _safety_notes(value: object) -> List[str]:
        if not isinstance(value, list):
            return []
        return [item.strip() for item in value if isinstance(item, str) and item.strip()]

    @staticmethod
    def _difficulty(value: object, *, default: Difficulty) -> Difficulty:
        if isinstance(value, str):
            match = _DIFFICULTIES.get(value.strip().lower())
            if match is not None:
                return match
        return default

    @staticmethod
    def _coordinates(value: object) -> Optional[LocationPoint]:
        if not isinstance(value, dict):
            return None
        try:
            return LocationPoint(lat=float(value["lat"]), lng=float(value["lng"]))
        except (KeyError, TypeError, ValueError):
            return None

    @staticmethod
    def _maps_search_link(name: str, location: str) -> str:
        # Matches encodeURIComponent so links stay identical to the web client's
        return MAPS_SEARCH_URL.format(query=quote(f"{name} {location}", safe="-_.!~*'()"))
