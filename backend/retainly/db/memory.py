from __future__ import annotations

import itertools

from retainly.db.base import CardStore
from retainly.models.review_item import ReviewItem, ReviewItemCreate


class MemoryCardStore(CardStore):
    """Process-local card store. Contents are lost when the process exits."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._items: dict[int, ReviewItem] = {}
        self._ids = itertools.count(1)

    async def _insert_row(self, new: ReviewItemCreate, created_at: int) -> ReviewItem:
        item = ReviewItem(
            id=next(self._ids),
            prompt=new.prompt,
            answer=new.answer,
            note=new.note,
            created_at=created_at,
            next_review_at=created_at,
        )
        self._items[item.id] = item
        return item

    async def _fetch(self, item_id: int) -> ReviewItem | None:
        return self._items.get(item_id)

    async def _replace(self, item: ReviewItem, expected_version: int) -> bool:
        stored = self._items.get(item.id)
        if stored is None or stored.version != expected_version:
            return False
        self._items[item.id] = item
        return True

    async def _query_due(self, as_of: int) -> list[ReviewItem]:
        due = [i for i in self._items.values() if i.next_review_at <= as_of]
        return sorted(due, key=lambda i: (i.next_review_at, i.id))

    async def _count(self, as_of: int) -> tuple[int, int]:
        due = sum(1 for i in self._items.values() if i.next_review_at <= as_of)
        return len(self._items), due
