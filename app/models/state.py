"""
Session state exposed to the client
Everything a renderer needs to draw the preferences panel, the route card and the chat
"""
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, computed_field

from app.models.chat import ChatMessage
from app.models.request import Preferences
from app.models.response import Route


class SpinStatus(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    READY = "ready"


class AppState(BaseModel):
    """Immutable snapshot; transitions return a new instance"""
    preferences: Preferences = Field(default_factory=Preferences)
    status: SpinStatus = SpinStatus.IDLE
    current_route: Optional[Route] = None
    history: List[Route] = Field(default_factory=list)
    alert: Optional[str] = None
    analysis: Optional[str] = None
    is_analyzing: bool = False
    chat_history: List[ChatMessage] = Field(default_factory=list)
    is_chat_loading: bool = False
    panel_open: bool = True

    model_config = {"frozen": True}

    @computed_field
    @property
    def can_spin(self) -> bool:
        return self.status != SpinStatus.SCANNING and bool(self.preferences.location.strip())


class SessionState(BaseModel):
    session_id: str
    state: AppState
