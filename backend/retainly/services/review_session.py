"""
One review pass over a fixed snapshot of due items.

    IDLE -> LOADED -> PRESENTING -> ANSWERED -> ADVANCING -> PRESENTING | EXHAUSTED

The cursor only moves after the store has accepted the review, so abandoning
a session between items never leaves stored state half-written.
"""
from __future__ import annotations

import logging
from collections.abc import Callable

from retainly.db.base import CardStore
from retainly.errors import NotFound, SessionStateError
from retainly.models.review_item import ReviewItem
from retainly.models.session import SessionState, SessionView
from retainly.services.scheduler import check_quality, compute_next

logger = logging.getLogger(__name__)

Scheduler = Callable[[ReviewItem, int, int], ReviewItem]


class ReviewSession:
    def __init__(self, store: CardStore, scheduler: Scheduler = compute_next) -> None:
        self._store = store
        self._scheduler = scheduler
        self.state = SessionState.IDLE
        self.cursor = 0
        self.reviewed = 0
        self.skipped: list[int] = []
        self.last_error: Exception | None = None
        self._due: list[ReviewItem] = []

    # --- read-only views ---

    @property
    def total(self) -> int:
        return len(self._due)

    @property
    def current(self) -> ReviewItem | None:
        if self.state in (SessionState.PRESENTING, SessionState.ANSWERED):
            return self._due[self.cursor]
        return None

    def view(self, session_id: str | None = None) -> SessionView:
        item = self.current
        revealed = self.state == SessionState.ANSWERED
        return SessionView(
            session_id=session_id,
            state=self.state,
            cursor=self.cursor,
            total=self.total,
            reviewed=self.reviewed,
            skipped=list(self.skipped),
            item_id=item.id if item else None,
            prompt=item.prompt if item else None,
            answer=item.answer if item and revealed else None,
            note=item.note if item and revealed else None,
            last_error=str(self.last_error) if self.last_error else None,
        )

    # --- transitions ---

    async def start(self, as_of: int) -> ReviewItem | None:
        """Snapshot the items due at `as_of` and present the first one."""
        self._require(SessionState.IDLE)
        self._due = await self._store.due_items(as_of)
        self.cursor = 0
        self._move(SessionState.LOADED)
        logger.info("Review session loaded %d due items (as_of=%s)", len(self._due), as_of)
        return self._present()

    def reveal(self) -> ReviewItem:
        self._require(SessionState.PRESENTING)
        self._move(SessionState.ANSWERED)
        return self._due[self.cursor]

    async def respond(self, quality: int, now: int) -> ReviewItem | None:
        """
        Score the revealed item, persist it, and present the next one.

        On a store failure the session stays on the same item in ANSWERED and
        the error is re-raised; call respond() again to retry, reload_current()
        after a conflict, or skip() to move on without saving.
        """
        self._require(SessionState.ANSWERED)
        check_quality(quality)
        item = self._due[self.cursor]
        updated = self._scheduler(item, quality, now)

        self._move(SessionState.ADVANCING)
        stored = None
        try:
            stored = await self._store.update(updated)
        except Exception as exc:
            logger.warning("Saving review of item %s failed: %s", item.id, exc)
            self.last_error = exc
            raise
        finally:
            # Covers cancellation too: never left mid-advance
            if stored is None:
                self._move(SessionState.ANSWERED)

        self.last_error = None
        self._due[self.cursor] = stored
        self.reviewed += 1
        self.cursor += 1
        return self._present()

    async def reload_current(self) -> ReviewItem:
        """Re-read the current item so the next respond() works from fresh state."""
        if self.state not in (SessionState.PRESENTING, SessionState.ANSWERED):
            raise SessionStateError(f"No current item in state {self.state.value}")
        item_id = self._due[self.cursor].id
        fresh = await self._store.get_by_id(item_id)
        if fresh is None:
            raise NotFound(item_id)
        self._due[self.cursor] = fresh
        self.last_error = None
        return fresh

    def skip(self) -> ReviewItem | None:
        """Move past the current item without recording a review."""
        if self.state not in (SessionState.PRESENTING, SessionState.ANSWERED):
            raise SessionStateError(f"Cannot skip in state {self.state.value}")
        item = self._due[self.cursor]
        logger.info("Skipping item %s without saving a review", item.id)
        self.skipped.append(item.id)
        self.last_error = None
        self._move(SessionState.ADVANCING)
        self.cursor += 1
        return self._present()

    # --- internals ---

    def _present(self) -> ReviewItem | None:
        if self.cursor < len(self._due):
            self._move(SessionState.PRESENTING)
            return self._due[self.cursor]
        self._move(SessionState.EXHAUSTED)
        return None

    def _move(self, state: SessionState) -> None:
        logger.debug("Session %s -> %s (cursor=%d)", self.state.value, state.value, self.cursor)
        self.state = state

    def _require(self, state: SessionState) -> None:
        if self.state != state:
            raise SessionStateError(
                f"Expected session state {state.value}, current state is {self.state.value}"
            )
