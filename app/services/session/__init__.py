# Session package
from .store import (
    MissingLocationError,
    NoActiveRouteError,
    RouteSession,
    SessionError,
    SessionNotFoundError,
    SessionStore,
    SpinCancelledError,
    SpinInProgressError,
)

__all__ = [
    "MissingLocationError",
    "NoActiveRouteError",
    "RouteSession",
    "SessionError",
    "SessionNotFoundError",
    "SessionStore",
    "SpinCancelledError",
    "SpinInProgressError",
]
