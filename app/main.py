import logging

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.models.request import Center, ChatRequest, Preferences, PreferencesUpdate, SpinRequest
from app.models.response import DeepDiveResponse, Route
from app.models.state import SessionState
from app.services.guide.prompts import SPIN_FAILED_ALERT
from app.services.recommendation_service import RouteRequestFailure
from app.services.session import (
    MissingLocationError,
    NoActiveRouteError,
    RouteSession,
    SessionNotFoundError,
    SessionStore,
    SpinCancelledError,
    SpinInProgressError,
)

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Route Roulette API",
    description="Spin for a hiking route, then dig into it with the guide",
    version=settings.api_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, specify exact origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

session_store = SessionStore()


def get_session_store() -> SessionStore:
    return session_store


def _get_session(session_id: str, store: SessionStore) -> RouteSession:
    try:
        return store.get(session_id)
    except SessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


def _snapshot(session: RouteSession) -> SessionState:
    return SessionState(session_id=session.session_id, state=session.state)


@app.post("/api/v1/sessions", response_model=SessionState, status_code=201)
async def create_session(store: SessionStore = Depends(get_session_store)):
    """Start a session with default preferences"""
    return _snapshot(store.create())


@app.get("/api/v1/sessions/{session_id}", response_model=SessionState)
async def get_session(session_id: str, store: SessionStore = Depends(get_session_store)):
    return _snapshot(_get_session(session_id, store))


@app.patch("/api/v1/sessions/{session_id}/preferences", response_model=SessionState)
async def update_preferences(
    session_id: str,
    update: PreferencesUpdate,
    store: SessionStore = Depends(get_session_store),
):
    """Merge the given fields into the session preferences"""
    session = _get_session(session_id, store)
    try:
        session.update_preferences(update)
    except ValueError as e:
        # pydantic.ValidationError subclasses ValueError
        raise HTTPException(status_code=422, detail=str(e))
    return _snapshot(session)


@app.post("/api/v1/sessions/{session_id}/location", response_model=SessionState)
async def set_location(
    session_id: str, center: Center, store: SessionStore = Depends(get_session_store)
):
    """Use a browser geolocation fix as the search location"""
    session = _get_session(session_id, store)
    session.set_coordinates(center)
    return _snapshot(session)


@app.post("/api/v1/sessions/{session_id}/panel", response_model=SessionState)
async def toggle_panel(session_id: str, store: SessionStore = Depends(get_session_store)):
    session = _get_session(session_id, store)
    session.toggle_panel()
    return _snapshot(session)


@app.post("/api/v1/sessions/{session_id}/spin", response_model=SessionState)
async def spin(
    session_id: str,
    request: SpinRequest | None = None,
    store: SessionStore = Depends(get_session_store),
):
    """Pick one route for the current preferences"""
    session = _get_session(session_id, store)
    narrow_viewport = request.narrow_viewport if request else False
    try:
        await session.spin(narrow_viewport=narrow_viewport)
    except MissingLocationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (SpinInProgressError, SpinCancelledError) as e:
        raise HTTPException(status_code=409, detail=str(e))
    except RouteRequestFailure:
        raise HTTPException(status_code=502, detail=SPIN_FAILED_ALERT)
    return _snapshot(session)


@app.delete("/api/v1/sessions/{session_id}/spin", response_model=SessionState)
async def cancel_spin(session_id: str, store: SessionStore = Depends(get_session_store)):
    session = _get_session(session_id, store)
    if not session.cancel_spin():
        raise HTTPException(status_code=409, detail="No spin in progress")
    return _snapshot(session)


@app.post("/api/v1/sessions/{session_id}/deep-dive", response_model=DeepDiveResponse)
async def deep_dive(session_id: str, store: SessionStore = Depends(get_session_store)):
    """Detailed suitability and safety analysis of the current route"""
    session = _get_session(session_id, store)
    route = session.state.current_route
    try:
        analysis = await session.deep_dive()
    except NoActiveRouteError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return DeepDiveResponse(route_id=route.id, analysis=analysis)


@app.post("/api/v1/sessions/{session_id}/messages", response_model=SessionState)
async def send_message(
    session_id: str, request: ChatRequest, store: SessionStore = Depends(get_session_store)
):
    """Ask the guide about the current route"""
    session = _get_session(session_id, store)
    try:
        await session.send_message(request.text)
    except NoActiveRouteError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _snapshot(session)


# Stateless spin, no session bookkeeping
@app.post("/api/v1/routes/spin", response_model=Route)
async def spin_once(preferences: Preferences, store: SessionStore = Depends(get_session_store)):
    if not preferences.location.strip():
        raise HTTPException(status_code=400, detail="Location is required before spinning")
    try:
        return await store.recommendation_service.spin(preferences)
    except RouteRequestFailure as e:
        raise HTTPException(status_code=502, detail=str(e))


@app.get("/health")
async def health_check():
    """Health check"""
    return {"status": "healthy", "version": settings.api_version}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
