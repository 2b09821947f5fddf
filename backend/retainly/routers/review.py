"""
Review session router.

Endpoints:
  POST   /review/sessions                - start a session over the current due set
  GET    /review/sessions/{sid}          - current session view
  POST   /review/sessions/{sid}/reveal   - show the answer side
  POST   /review/sessions/{sid}/respond  - submit quality 1–4, schedule and save
  POST   /review/sessions/{sid}/skip     - move on without saving
  POST   /review/sessions/{sid}/reload   - re-read the current item after a conflict
  DELETE /review/sessions/{sid}          - abandon the session
"""
from __future__ import annotations

from collections.abc import Callable

from fastapi import APIRouter, Depends, Query

from retainly.db.base import CardStore
from retainly.deps import get_clock, get_sessions, get_store
from retainly.models.session import ReviewRequest, SessionView
from retainly.services.session_registry import SessionRegistry

router = APIRouter()


@router.post("/sessions", response_model=SessionView, status_code=201)
async def start_session(
    as_of: int | None = Query(default=None, ge=0),
    store: CardStore = Depends(get_store),
    sessions: SessionRegistry = Depends(get_sessions),
    clock: Callable[[], int] = Depends(get_clock),
) -> SessionView:
    session_id, session = await sessions.start(store, as_of if as_of is not None else clock())
    return session.view(session_id)


@router.get("/sessions/{session_id}", response_model=SessionView)
async def get_session(
    session_id: str, sessions: SessionRegistry = Depends(get_sessions)
) -> SessionView:
    return sessions.get(session_id).view(session_id)


@router.post("/sessions/{session_id}/reveal", response_model=SessionView)
async def reveal(
    session_id: str, sessions: SessionRegistry = Depends(get_sessions)
) -> SessionView:
    session = sessions.get(session_id)
    session.reveal()
    return session.view(session_id)


@router.post("/sessions/{session_id}/respond", response_model=SessionView)
async def respond(
    session_id: str,
    body: ReviewRequest,
    sessions: SessionRegistry = Depends(get_sessions),
    clock: Callable[[], int] = Depends(get_clock),
) -> SessionView:
    """Schedule the revealed item; "now" is read at response time, not session start."""
    session = sessions.get(session_id)
    await session.respond(body.quality, clock())
    view = session.view(session_id)
    sessions.release_if_finished(session_id)
    return view


@router.post("/sessions/{session_id}/skip", response_model=SessionView)
async def skip(
    session_id: str, sessions: SessionRegistry = Depends(get_sessions)
) -> SessionView:
    session = sessions.get(session_id)
    session.skip()
    view = session.view(session_id)
    sessions.release_if_finished(session_id)
    return view


@router.post("/sessions/{session_id}/reload", response_model=SessionView)
async def reload_current(
    session_id: str, sessions: SessionRegistry = Depends(get_sessions)
) -> SessionView:
    session = sessions.get(session_id)
    await session.reload_current()
    return session.view(session_id)


@router.delete("/sessions/{session_id}", status_code=204)
async def abandon_session(
    session_id: str, sessions: SessionRegistry = Depends(get_sessions)
) -> None:
    sessions.discard(session_id)
