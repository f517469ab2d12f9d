"""Pure transition functions for the per-session application state.

Each function takes the current :class:`AppState` plus the event payload and
returns a new state. Nothing here performs I/O; the session store decides when
an event has happened and feeds it through the matching transition.
"""
from __future__ import annotations

from typing import List

from app.models.chat import ChatMessage, ChatRole
from app.models.request import Preferences
from app.models.response import Route
from app.models.state import AppState, SpinStatus


def preferences_updated(state: AppState, preferences: Preferences) -> AppState:
    return state.model_copy(update={"preferences": preferences})


def panel_toggled(state: AppState) -> AppState:
    return state.model_copy(update={"panel_open": not state.panel_open})


def spin_started(state: AppState, *, narrow_viewport: bool = False) -> AppState:
    """Idle/Ready -> Scanning. Drops the current route and everything tied to it."""
    update = {
        "status": SpinStatus.SCANNING,
        "current_route": None,
        "alert": None,
        "analysis": None,
        "is_analyzing": False,
        "chat_history": [],
        "is_chat_loading": False,
    }
    if narrow_viewport:
        update["panel_open"] = False
    return state.model_copy(update=update)


def spin_succeeded(state: AppState, route: Route, *, history_limit: int) -> AppState:
    """Scanning -> Ready. The newest route goes to the front of the bounded history."""
    history = [route, *state.history][: max(history_limit, 0)]
    return state.model_copy(
        update={
            "status": SpinStatus.READY,
            "current_route": route,
            "history": history,
            "chat_history": [],
        }
    )


def spin_failed(state: AppState, alert: str) -> AppState:
    return state.model_copy(
        update={"status": SpinStatus.IDLE, "current_route": None, "alert": alert}
    )


def spin_cancelled(state: AppState) -> AppState:
    return state.model_copy(update={"status": SpinStatus.IDLE, "current_route": None})


def deep_dive_started(state: AppState) -> AppState:
    return state.model_copy(update={"is_analyzing": True, "analysis": None})


def deep_dive_finished(state: AppState, route_id: str, analysis: str) -> AppState:
    # A spin may have replaced the route while the analysis was running
    if not _is_current(state, route_id):
        return state
    return state.model_copy(update={"is_analyzing": False, "analysis": analysis})


def message_sent(state: AppState, text: str, *, max_messages: int) -> AppState:
    transcript = _truncate(
        [*state.chat_history, ChatMessage(role=ChatRole.USER, text=text)], max_messages
    )
    return state.model_copy(update={"chat_history": transcript, "is_chat_loading": True})


def message_received(
    state: AppState, route_id: str, text: str, *, max_messages: int
) -> AppState:
    if not _is_current(state, route_id):
        return state
    transcript = _truncate(
        [*state.chat_history, ChatMessage(role=ChatRole.ASSISTANT, text=text)], max_messages
    )
    return state.model_copy(update={"chat_history": transcript, "is_chat_loading": False})


def _is_current(state: AppState, route_id: str) -> bool:
    return state.current_route is not None and state.current_route.id == route_id


def _truncate(transcript: List[ChatMessage], max_messages: int) -> List[ChatMessage]:
    if max_messages <= 0 or len(transcript) <= max_messages:
        return transcript
    return transcript[-max_messages:]
