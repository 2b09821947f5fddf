"""
Card store contract shared by the in-memory and SQLite stores.

Subclasses provide raw row access (`_insert_row`, `_fetch`, `_replace`,
`_query_due`, `_count`); this module owns the rules on top of it:
validation of new items, per-item serialization of updates, the
version-conditional write, and delivery of due-set snapshots to subscribers.
"""
from __future__ import annotations

import asyncio
import logging
import weakref
from abc import ABC, abstractmethod
from collections.abc import Callable

from retainly.clock import now_ms
from retainly.errors import ConcurrencyConflict, NotFound, ValidationError
from retainly.models.review_item import (
    EASE_MAX,
    EASE_MIN,
    DueStats,
    ReviewItem,
    ReviewItemCreate,
)

logger = logging.getLogger(__name__)


class DueSubscription:
    """Live view of the items due at `as_of`.

    Iterate it (`async for snapshot in sub`) to receive ordered snapshots.
    The first one is ready on subscription; later ones only when the due set
    actually changes. Only the newest unread snapshot is kept, so a slow
    reader skips intermediate states instead of buffering them.
    """

    def __init__(self, store: CardStore, as_of: int) -> None:
        self._store = store
        self._as_of = as_of
        self._pending: list[ReviewItem] | None = None
        self._ready = asyncio.Event()
        self._last: list[ReviewItem] | None = None
        self._cancelled = False

    @property
    def as_of(self) -> int:
        return self._as_of

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    async def advance(self, as_of: int) -> None:
        """Re-evaluate against a later instant; emits only if the due set changed."""
        self._as_of = as_of
        await self._store._deliver(self)

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        self._store._unsubscribe(self)
        self._ready.set()

    def _offer(self, snapshot: list[ReviewItem]) -> None:
        if self._cancelled or snapshot == self._last:
            return
        self._last = snapshot
        self._pending = snapshot
        self._ready.set()

    async def next_snapshot(self, timeout: float | None = None) -> list[ReviewItem]:
        return await asyncio.wait_for(self.__anext__(), timeout)

    def __aiter__(self) -> DueSubscription:
        return self

    async def __anext__(self) -> list[ReviewItem]:
        while True:
            if self._pending is not None:
                snapshot, self._pending = self._pending, None
                self._ready.clear()
                return snapshot
            if self._cancelled:
                raise StopAsyncIteration
            await self._ready.wait()


class CardStore(ABC):
    def __init__(self, clock: Callable[[], int] = now_ms) -> None:
        self._clock = clock
        # Entries vanish once no update on that id holds or awaits the lock
        self._item_locks: weakref.WeakValueDictionary[int, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )
        self._publish_lock = asyncio.Lock()
        self._subscribers: list[DueSubscription] = []

    # --- lifecycle ---

    async def open(self) -> None:
        pass

    async def close(self) -> None:
        for sub in list(self._subscribers):
            sub.cancel()

    async def __aenter__(self) -> CardStore:
        await self.open()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # --- contract ---

    async def insert(self, new: ReviewItemCreate) -> int:
        """Persist a new item with initial scheduling state and return its id."""
        if not new.prompt.strip():
            raise ValidationError("prompt must not be blank")
        if not new.answer.strip():
            raise ValidationError("answer must not be blank")

        created_at = new.created_at if new.created_at is not None else self._clock()
        item = await self._insert_row(new, created_at)
        logger.debug("Inserted review item %s (due %s)", item.id, item.next_review_at)
        await self._publish()
        return item.id

    async def update(self, item: ReviewItem) -> ReviewItem:
        """
        Overwrite the stored item with the same id and return what was stored.

        The write only lands if `item.version` matches the stored version.
        Re-sending an item whose scheduling state is already stored is a no-op,
        so repeating an update is harmless. Any other version mismatch raises
        ConcurrencyConflict.
        """
        _check_invariants(item)
        async with self._lock_for(item.id):
            stored = await self._fetch(item.id)
            if stored is None:
                raise NotFound(item.id)
            if item.created_at != stored.created_at:
                raise ValidationError(f"created_at of review item {item.id} is immutable")
            if _same_content(stored, item):
                return stored
            if stored.version != item.version:
                logger.warning(
                    "Rejected stale update for item %s (version %s, stored %s)",
                    item.id,
                    item.version,
                    stored.version,
                )
                raise ConcurrencyConflict(item.id, item.version, stored.version)

            committed = item.model_copy(update={"version": stored.version + 1})
            if not await self._replace(committed, stored.version):
                current = await self._fetch(item.id)
                raise ConcurrencyConflict(
                    item.id, item.version, current.version if current else None
                )

        logger.debug(
            "Updated review item %s: interval=%sd ease=%.2f due=%s",
            committed.id,
            committed.interval_days,
            committed.ease_factor,
            committed.next_review_at,
        )
        await self._publish()
        return committed

    async def get_by_id(self, item_id: int) -> ReviewItem | None:
        return await self._fetch(item_id)

    async def due_items(self, as_of: int) -> list[ReviewItem]:
        """Items with next_review_at <= as_of, oldest-due first, ties by id."""
        return await self._query_due(as_of)

    async def watch_due(self, as_of: int) -> DueSubscription:
        sub = DueSubscription(self, as_of)
        self._subscribers.append(sub)
        await self._deliver(sub)
        return sub

    async def stats(self, as_of: int) -> DueStats:
        total, due = await self._count(as_of)
        return DueStats(total_items=total, due=due, as_of=as_of)

    # --- subscriptions ---

    async def _publish(self) -> None:
        for sub in list(self._subscribers):
            await self._deliver(sub)

    async def _deliver(self, sub: DueSubscription) -> None:
        # Query and hand-off happen under one lock so snapshots reach a
        # subscriber in commit order.
        async with self._publish_lock:
            if sub.cancelled:
                return
            sub._offer(await self._query_due(sub.as_of))

    def _unsubscribe(self, sub: DueSubscription) -> None:
        if sub in self._subscribers:
            self._subscribers.remove(sub)

    def _lock_for(self, item_id: int) -> asyncio.Lock:
        lock = self._item_locks.get(item_id)
        if lock is None:
            lock = self._item_locks[item_id] = asyncio.Lock()
        return lock

    # --- storage primitives ---

    @abstractmethod
    async def _insert_row(self, new: ReviewItemCreate, created_at: int) -> ReviewItem: ...

    @abstractmethod
    async def _fetch(self, item_id: int) -> ReviewItem | None: ...

    @abstractmethod
    async def _replace(self, item: ReviewItem, expected_version: int) -> bool:
        """Write `item` if the stored version is still `expected_version`."""

    @abstractmethod
    async def _query_due(self, as_of: int) -> list[ReviewItem]: ...

    @abstractmethod
    async def _count(self, as_of: int) -> tuple[int, int]:
        """Return (total items, items due at as_of)."""


def _check_invariants(item: ReviewItem) -> None:
    # model_copy(update=...) bypasses field validation, so re-check here
    if item.interval_days < 0:
        raise ValidationError(
            f"interval_days of review item {item.id} must be >= 0, got {item.interval_days}"
        )
    if not EASE_MIN <= item.ease_factor <= EASE_MAX:
        raise ValidationError(
            f"ease_factor of review item {item.id} must be within "
            f"[{EASE_MIN}, {EASE_MAX}], got {item.ease_factor}"
        )


def _same_content(a: ReviewItem, b: ReviewItem) -> bool:
    return a.model_dump(exclude={"version"}) == b.model_dump(exclude={"version"})
