from pathlib import Path
import sys

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

import pytest

from app.models.request import Preferences
from app.models.response import Route


ROUTE_REPLY = """Here is your spin!
```json
{
  "name": "Ridge Loop",
  "location": "Boulder, CO",
  "distance": "7.4 km",
  "difficulty": "Moderate",
  "terrain": "Forest, Ridge",
  "description": "Pine shade and a windy ridge.",
  "safetyNotes": ["Start early to beat afternoon storms."],
  "mapsLink": "https://maps.google.com/?q=Ridge+Loop"
}
```"""


class StubLLMClient:
    """Replays canned replies in order, or raises ``error`` on every call."""

    def __init__(self, replies=None, *, error=None):
        self.replies = list(replies or [])
        self.error = error
        self.calls = []

    def generate(self, prompt, **kwargs):
        self.calls.append({"prompt": prompt, **kwargs})
        return self._next()

    def converse(self, history, message, **kwargs):
        self.calls.append({"history": list(history), "message": message, **kwargs})
        return self._next()

    def _next(self):
        if self.error is not None:
            raise self.error
        return self.replies.pop(0) if self.replies else ""


@pytest.fixture
def preferences():
    return Preferences(
        location="Boulder, CO",
        min_distance=5,
        max_distance=12,
        difficulty="Moderate",
        time_window="Morning",
        experience="Intermediate",
        notes="Dog friendly",
    )


@pytest.fixture
def route():
    return Route(
        id="route-1",
        name="Ridge Loop",
        location="Boulder, CO",
        distance="7.4 km",
        difficulty="Moderate",
        terrain="Forest, Ridge",
        description="Pine shade and a windy ridge.",
        safety_notes=["Start early to beat afternoon storms."],
        maps_link="https://maps.google.com/?q=Ridge+Loop",
    )
