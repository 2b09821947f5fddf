"""
Review item endpoints.

Endpoints:
  POST /cards              - create a review item (the only creation entry point)
  GET  /cards/due          - items due at `as_of` (default: now), oldest first
  GET  /cards/due/stream   - SSE stream of due-set snapshots
  GET  /cards/stats        - total and due counts
  GET  /cards/{id}         - single item
"""
from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from retainly.config import settings
from retainly.db.base import CardStore
from retainly.deps import get_clock, get_store
from retainly.errors import NotFound
from retainly.models.review_item import (
    DueStats,
    ReviewItem,
    ReviewItemCreate,
    ReviewItemList,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("", response_model=ReviewItem, status_code=201)
async def create_card(
    body: ReviewItemCreate,
    store: CardStore = Depends(get_store),
) -> ReviewItem:
    item_id = await store.insert(body)
    return await store.get_by_id(item_id)  # type: ignore[return-value]


@router.get("/due", response_model=ReviewItemList)
async def list_due(
    as_of: int | None = Query(default=None, ge=0),
    store: CardStore = Depends(get_store),
    clock: Callable[[], int] = Depends(get_clock),
) -> ReviewItemList:
    instant = as_of if as_of is not None else clock()
    items = await store.due_items(instant)
    return ReviewItemList(items=items, total=len(items), as_of=instant)


@router.get("/due/stream")
async def stream_due(
    max_events: int | None = Query(default=None, ge=1),
    store: CardStore = Depends(get_store),
    clock: Callable[[], int] = Depends(get_clock),
):
    """SSE stream of the due set; a new event whenever it changes."""
    interval = settings.due_stream_interval_seconds

    async def event_generator():
        sub = await store.watch_due(clock())
        sent = 0
        try:
            while max_events is None or sent < max_events:
                try:
                    snapshot = await sub.next_snapshot(timeout=interval)
                except asyncio.TimeoutError:
                    # Time passing can make more items due without any write
                    await sub.advance(clock())
                    continue
                data = json.dumps(
                    {"as_of": sub.as_of, "items": [i.model_dump() for i in snapshot]}
                )
                yield f"data: {data}\n\n"
                sent += 1
        finally:
            sub.cancel()

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.get("/stats", response_model=DueStats)
async def card_stats(
    as_of: int | None = Query(default=None, ge=0),
    store: CardStore = Depends(get_store),
    clock: Callable[[], int] = Depends(get_clock),
) -> DueStats:
    return await store.stats(as_of if as_of is not None else clock())


@router.get("/{item_id}", response_model=ReviewItem)
async def get_card(item_id: int, store: CardStore = Depends(get_store)) -> ReviewItem:
    item = await store.get_by_id(item_id)
    if item is None:
        raise NotFound(item_id)
    return item
