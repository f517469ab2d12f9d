"""In-memory sessions tying the services to the per-session state.

A session owns one :class:`AppState` and applies every change through the pure
transitions in :mod:`app.services.session.reducer`. Spins run in a single-slot
``asyncio`` task so a second spin is rejected while one is scanning, and chat
sends are serialised with a lock so replies land in the order they were asked.
"""
from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Callable, Dict, Optional

from app.config import settings
from app.models.request import Center, Preferences, PreferencesUpdate
from app.models.response import Route
from app.models.state import AppState, SpinStatus
from app.services.chat_service import ChatService
from app.services.deep_dive_service import DeepDiveService
from app.services.guide.prompts import SPIN_FAILED_ALERT
from app.services.recommendation_service import RecommendationService, RouteRequestFailure

from . import reducer

logger = logging.getLogger(__name__)


class SessionError(RuntimeError):
    """Base class for session operations the client asked for at the wrong time."""


class SessionNotFoundError(SessionError):
    pass


class SpinInProgressError(SessionError):
    pass


class SpinCancelledError(SessionError):
    pass


class MissingLocationError(SessionError):
    pass


class NoActiveRouteError(SessionError):
    pass


class RouteSession:
    def __init__(
        self,
        session_id: str,
        *,
        recommendation_service: RecommendationService,
        deep_dive_service: DeepDiveService,
        chat_service: ChatService,
        history_limit: Optional[int] = None,
        max_chat_messages: Optional[int] = None,
    ) -> None:
        self.session_id = session_id
        self.recommendation_service = recommendation_service
        self.deep_dive_service = deep_dive_service
        self.chat_service = chat_service
        self.history_limit = settings.history_limit if history_limit is None else history_limit
        self.max_chat_messages = (
            settings.max_chat_messages if max_chat_messages is None else max_chat_messages
        )
        self._state = AppState()
        self._spin_task: Optional[asyncio.Task] = None
        self._chat_lock = asyncio.Lock()
        self._analysis_runs = 0

    @property
    def state(self) -> AppState:
        return self._state

    @property
    def is_spinning(self) -> bool:
        return self._spin_task is not None and not self._spin_task.done()

    def _dispatch(self, transition: Callable[..., AppState], *args, **kwargs) -> AppState:
        self._state = transition(self._state, *args, **kwargs)
        return self._state

    # Preferences

    def update_preferences(self, update: PreferencesUpdate) -> AppState:
        return self._dispatch(reducer.preferences_updated, update.apply(self._state.preferences))

    def set_coordinates(self, center: Center) -> AppState:
        return self.update_preferences(PreferencesUpdate(location=center.as_location()))

    def toggle_panel(self) -> AppState:
        return self._dispatch(reducer.panel_toggled)

    # Spin

    async def spin(self, *, narrow_viewport: bool = False) -> AppState:
        """Run one spin to completion; raises RouteRequestFailure after moving back to idle."""
        if self.is_spinning:
            raise SpinInProgressError("A spin is already in progress")
        preferences = self._state.preferences
        if not preferences.location.strip():
            raise MissingLocationError("Location is required before spinning")

        self._dispatch(reducer.spin_started, narrow_viewport=narrow_viewport)
        task = asyncio.create_task(self._run_spin(preferences))
        self._spin_task = task
        try:
            return await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                # The caller itself is being cancelled (timeout, shutdown)
                raise
            raise SpinCancelledError("Spin was cancelled") from None

    async def _run_spin(self, preferences: Preferences) -> AppState:
        task = asyncio.current_task()
        logger.info("Session %s spinning near %r", self.session_id, preferences.location)
        try:
            route = await self.recommendation_service.spin(preferences)
        except RouteRequestFailure as exc:
            logger.error("Session %s spin failed: %s", self.session_id, exc)
            self._dispatch(reducer.spin_failed, SPIN_FAILED_ALERT)
            raise
        except asyncio.CancelledError:
            logger.info("Session %s spin cancelled", self.session_id)
            # After cancel_spin the slot may already hold a newer spin
            if self._spin_task is task:
                self._spin_task = None
                self._dispatch(reducer.spin_cancelled)
            raise
        logger.info("Session %s picked %s", self.session_id, route.name)
        return self._dispatch(reducer.spin_succeeded, route, history_limit=self.history_limit)

    def cancel_spin(self) -> bool:
        if not self.is_spinning:
            return False
        self._spin_task.cancel()
        self._spin_task = None
        self._dispatch(reducer.spin_cancelled)
        return True

    # Route card

    def _require_route(self) -> Route:
        route = self._state.current_route
        if route is None or self._state.status != SpinStatus.READY:
            raise NoActiveRouteError("Spin for a route first")
        return route

    async def deep_dive(self) -> str:
        route = self._require_route()
        self._analysis_runs += 1
        run = self._analysis_runs
        self._dispatch(reducer.deep_dive_started)
        analysis = await self.deep_dive_service.analyze(route, self._state.preferences)
        # Only the most recent request updates the card
        if run == self._analysis_runs:
            self._dispatch(reducer.deep_dive_finished, route.id, analysis)
        return analysis

    async def send_message(self, text: str) -> AppState:
        async with self._chat_lock:
            route = self._require_route()
            transcript = list(self._state.chat_history)
            self._dispatch(reducer.message_sent, text, max_messages=self.max_chat_messages)
            reply = await self.chat_service.reply(
                transcript, text, route, self._state.preferences
            )
            return self._dispatch(
                reducer.message_received, route.id, reply, max_messages=self.max_chat_messages
            )


class SessionStore:
    """Registry of live sessions; nothing outlives the process."""

    def __init__(
        self,
        *,
        recommendation_service: Optional[RecommendationService] = None,
        deep_dive_service: Optional[DeepDiveService] = None,
        chat_service: Optional[ChatService] = None,
    ) -> None:
        self.recommendation_service = recommendation_service or RecommendationService()
        self.deep_dive_service = deep_dive_service or DeepDiveService()
        self.chat_service = chat_service or ChatService()
        self._sessions: Dict[str, RouteSession] = {}

    def create(self) -> RouteSession:
        session_id = uuid.uuid4().hex
        session = RouteSession(
            session_id,
            recommendation_service=self.recommendation_service,
            deep_dive_service=self.deep_dive_service,
            chat_service=self.chat_service,
        )
        self._sessions[session_id] = session
        return session

    def get(self, session_id: str) -> RouteSession:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise SessionNotFoundError(f"Unknown session {session_id}") from None

    def __len__(self) -> int:
        return len(self._sessions)
