from collections.abc import Callable

from fastapi import Request

from retainly.clock import now_ms
from retainly.db.base import CardStore
from retainly.services.session_registry import SessionRegistry


def get_store(request: Request) -> CardStore:
    return request.app.state.store


def get_sessions(request: Request) -> SessionRegistry:
    return request.app.state.sessions


def get_clock() -> Callable[[], int]:
    """Overridden in tests to pin "now"."""
    return now_ms
