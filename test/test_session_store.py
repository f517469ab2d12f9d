import asyncio

import pytest

from app.models.chat import ChatRole
from app.models.request import Center, PreferencesUpdate
from app.models.state import SpinStatus
from app.services.chat_service import ChatService
from app.services.deep_dive_service import DeepDiveService
from app.services.guide.prompts import ANALYSIS_FAILED_FALLBACK, SPIN_FAILED_ALERT
from app.services.recommendation_service import RouteRequestFailure
from app.services.session import (
    MissingLocationError,
    NoActiveRouteError,
    SessionNotFoundError,
    SessionStore,
    SpinCancelledError,
    SpinInProgressError,
)

from conftest import StubLLMClient


class StubRecommendationService:
    """Hands out numbered routes; ``gate`` holds every spin until it is set."""

    def __init__(self, route, *, error=None, gate=None):
        self.route = route
        self.error = error
        self.gate = gate
        self.calls = 0

    async def spin(self, preferences):
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.route.model_copy(
            update={"id": f"route-{self.calls}", "description": "Tagline!"}
        )


class StubChatService:
    def __init__(self, reply="Sure thing."):
        self.reply_text = reply
        self.calls = []

    async def reply(self, transcript, message, route, preferences):
        self.calls.append((list(transcript), message, route.name))
        await asyncio.sleep(0)
        return self.reply_text


class StubDeepDiveService:
    def __init__(self):
        self.calls = 0

    async def analyze(self, route, preferences):
        self.calls += 1
        return f"Analysis #{self.calls} for {route.name}"


def _store(route, **kwargs):
    return SessionStore(
        recommendation_service=kwargs.get("recommendation") or StubRecommendationService(route),
        deep_dive_service=kwargs.get("deep_dive") or StubDeepDiveService(),
        chat_service=kwargs.get("chat") or StubChatService(),
    )


def _session_with_location(store):
    session = store.create()
    session.update_preferences(PreferencesUpdate(location="Boulder, CO"))
    return session


def test_get_unknown_session_raises(route):
    with pytest.raises(SessionNotFoundError):
        _store(route).get("missing")


def test_spin_requires_location(route):
    session = _store(route).create()
    with pytest.raises(MissingLocationError):
        asyncio.run(session.spin())
    assert session.state.status == SpinStatus.IDLE


def test_geolocation_fix_becomes_location(route):
    session = _store(route).create()
    session.set_coordinates(Center(lat=40.015, lng=-105.2705))
    assert session.state.preferences.location == "40.015, -105.2705"
    assert session.state.can_spin is True


def test_successful_spin_sets_route_and_history(route):
    store = _store(route)
    session = _session_with_location(store)

    state = asyncio.run(session.spin())

    assert state.status == SpinStatus.READY
    assert state.current_route.id == "route-1"
    assert state.current_route.description == "Tagline!"
    assert state.history == [state.current_route]


def test_failed_spin_returns_to_idle_with_alert(route):
    recommendation = StubRecommendationService(route, error=RouteRequestFailure("offline"))
    session = _session_with_location(_store(route, recommendation=recommendation))

    with pytest.raises(RouteRequestFailure):
        asyncio.run(session.spin())

    assert session.state.status == SpinStatus.IDLE
    assert session.state.current_route is None
    assert session.state.alert == SPIN_FAILED_ALERT


def test_spin_while_scanning_does_not_start_second_request(route):
    async def scenario():
        gate = asyncio.Event()
        recommendation = StubRecommendationService(route, gate=gate)
        session = _session_with_location(_store(route, recommendation=recommendation))

        first = asyncio.create_task(session.spin())
        await asyncio.sleep(0)
        assert session.state.status == SpinStatus.SCANNING
        assert session.state.can_spin is False

        with pytest.raises(SpinInProgressError):
            await session.spin()

        gate.set()
        state = await first
        return recommendation.calls, state

    calls, state = asyncio.run(scenario())
    assert calls == 1
    assert state.status == SpinStatus.READY


def test_cancel_spin_returns_to_idle(route):
    async def scenario():
        gate = asyncio.Event()
        recommendation = StubRecommendationService(route, gate=gate)
        session = _session_with_location(_store(route, recommendation=recommendation))

        first = asyncio.create_task(session.spin())
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert session.cancel_spin() is True
        with pytest.raises(SpinCancelledError):
            await first
        return session

    session = asyncio.run(scenario())
    assert session.state.status == SpinStatus.IDLE
    assert session.state.current_route is None
    assert session.state.alert is None
    assert session.cancel_spin() is False


def test_caller_timeout_surfaces_as_timeout_error(route):
    async def scenario():
        gate = asyncio.Event()
        recommendation = StubRecommendationService(route, gate=gate)
        session = _session_with_location(_store(route, recommendation=recommendation))

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(session.spin(), timeout=0.05)
        return session

    session = asyncio.run(scenario())
    assert session.state.status == SpinStatus.IDLE
    assert session.state.current_route is None
    assert session.is_spinning is False


def test_spin_right_after_cancel_is_accepted(route):
    async def scenario():
        gate = asyncio.Event()
        recommendation = StubRecommendationService(route, gate=gate)
        session = _session_with_location(_store(route, recommendation=recommendation))

        first = asyncio.create_task(session.spin())
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert session.cancel_spin() is True
        assert session.state.can_spin is True

        second = asyncio.create_task(session.spin())
        with pytest.raises(SpinCancelledError):
            await first
        # The cancelled spin must not reset the one that replaced it
        assert session.state.status == SpinStatus.SCANNING
        assert session.is_spinning is True

        gate.set()
        return recommendation, await second

    recommendation, state = asyncio.run(scenario())
    assert recommendation.calls == 2
    assert state.status == SpinStatus.READY
    assert state.current_route.id == "route-2"


def test_second_spin_clears_transcript(route):
    session = _session_with_location(_store(route))

    async def scenario():
        await session.spin()
        await session.send_message("Is it kid friendly?")
        await session.send_message("Where do I park?")
        assert len(session.state.chat_history) == 4
        await session.spin()

    asyncio.run(scenario())
    assert session.state.chat_history == []
    assert session.state.current_route.id == "route-2"


def test_history_keeps_five_most_recent_spins(route):
    session = _session_with_location(_store(route))

    async def scenario():
        for _ in range(7):
            await session.spin()

    asyncio.run(scenario())
    assert len(session.state.history) == 5
    assert session.state.history[0] == session.state.current_route
    assert session.state.history[0].id == "route-7"


def test_chat_scenario_appends_user_then_assistant(route):
    chat = StubChatService("Yes, it is mostly flat.")
    session = _session_with_location(_store(route, chat=chat))

    async def scenario():
        await session.spin()
        assert session.state.chat_history == []
        await session.send_message("Is it kid friendly?")

    asyncio.run(scenario())
    transcript = session.state.chat_history
    assert session.state.current_route.name == "Ridge Loop"
    assert len(transcript) == 2
    assert transcript[0].role == ChatRole.USER
    assert transcript[0].text == "Is it kid friendly?"
    assert transcript[1].role == ChatRole.ASSISTANT
    assert chat.calls == [([], "Is it kid friendly?", "Ridge Loop")]


def test_overlapping_sends_are_serialised(route):
    chat = StubChatService("Noted.")
    session = _session_with_location(_store(route, chat=chat))

    async def scenario():
        await session.spin()
        await asyncio.gather(session.send_message("first"), session.send_message("second"))

    asyncio.run(scenario())
    assert [m.text for m in session.state.chat_history] == ["first", "Noted.", "second", "Noted."]
    # The second send saw the first exchange as context
    assert [m.text for m in chat.calls[1][0]] == ["first", "Noted."]


def test_chat_and_deep_dive_need_a_route(route):
    session = _session_with_location(_store(route))
    with pytest.raises(NoActiveRouteError):
        asyncio.run(session.send_message("hello"))
    with pytest.raises(NoActiveRouteError):
        asyncio.run(session.deep_dive())


def test_deep_dive_overwrites_previous_analysis(route):
    session = _session_with_location(_store(route))

    async def scenario():
        await session.spin()
        await session.deep_dive()
        return await session.deep_dive()

    analysis = asyncio.run(scenario())
    assert analysis == "Analysis #2 for Ridge Loop"
    assert session.state.analysis == analysis
    assert session.state.is_analyzing is False


class GatedDeepDiveService:
    """Each analysis waits on its own event so completion order is up to the test."""

    def __init__(self):
        self.gates = []

    async def analyze(self, route, preferences):
        gate = asyncio.Event()
        self.gates.append(gate)
        number = len(self.gates)
        await gate.wait()
        return f"Analysis #{number}"


def test_overlapping_deep_dives_keep_latest_in_progress(route):
    deep_dive = GatedDeepDiveService()
    session = _session_with_location(_store(route, deep_dive=deep_dive))

    async def scenario():
        await session.spin()
        first = asyncio.create_task(session.deep_dive())
        second = asyncio.create_task(session.deep_dive())
        await asyncio.sleep(0)
        assert len(deep_dive.gates) == 2

        deep_dive.gates[0].set()
        assert await first == "Analysis #1"
        assert session.state.is_analyzing is True
        assert session.state.analysis is None

        deep_dive.gates[1].set()
        assert await second == "Analysis #2"

    asyncio.run(scenario())
    assert session.state.is_analyzing is False
    assert session.state.analysis == "Analysis #2"


def test_deep_dive_failure_is_masked(route):
    deep_dive = DeepDiveService(llm_client=StubLLMClient(error=RuntimeError("quota")))
    session = _session_with_location(_store(route, deep_dive=deep_dive))

    async def scenario():
        await session.spin()
        return await session.deep_dive(), await session.deep_dive()

    first, second = asyncio.run(scenario())
    assert first == second == ANALYSIS_FAILED_FALLBACK
    assert session.state.analysis == ANALYSIS_FAILED_FALLBACK


def test_chat_failure_is_masked(route):
    chat = ChatService(llm_client=StubLLMClient(error=ConnectionError("down")))
    session = _session_with_location(_store(route, chat=chat))

    async def scenario():
        await session.spin()
        await session.send_message("Hello?")

    asyncio.run(scenario())
    assert session.state.chat_history[-1].text.startswith("I'm having trouble")
