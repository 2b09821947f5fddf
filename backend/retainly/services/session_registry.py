from __future__ import annotations

import logging
import uuid

from retainly.db.base import CardStore
from retainly.errors import RetainlyError
from retainly.models.session import SessionState
from retainly.services.review_session import ReviewSession

logger = logging.getLogger(__name__)


class SessionNotFound(RetainlyError):
    def __init__(self, session_id: str) -> None:
        super().__init__(f"Review session {session_id} not found")
        self.session_id = session_id


class SessionRegistry:
    """Live review sessions by id, one registry per application."""

    def __init__(self, max_sessions: int = 100) -> None:
        self.max_sessions = max_sessions
        self._sessions: dict[str, ReviewSession] = {}  # oldest first

    async def start(self, store: CardStore, as_of: int) -> tuple[str, ReviewSession]:
        session_id = uuid.uuid4().hex
        session = ReviewSession(store)
        await session.start(as_of)
        logger.info("Started review session %s with %d items", session_id, session.total)
        if session.state == SessionState.EXHAUSTED:
            return session_id, session

        while len(self._sessions) >= self.max_sessions:
            evicted = next(iter(self._sessions))
            del self._sessions[evicted]
            logger.info("Evicted review session %s (limit %d)", evicted, self.max_sessions)
        self._sessions[session_id] = session
        return session_id, session

    def get(self, session_id: str) -> ReviewSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFound(session_id)
        return session

    def discard(self, session_id: str) -> None:
        if self._sessions.pop(session_id, None) is None:
            raise SessionNotFound(session_id)
        logger.info("Abandoned review session %s", session_id)

    def release_if_finished(self, session_id: str) -> None:
        """Forget a session once it has no items left to present."""
        session = self._sessions.get(session_id)
        if session is not None and session.state == SessionState.EXHAUSTED:
            del self._sessions[session_id]
            logger.info("Review session %s finished", session_id)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions
