from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

EASE_MIN = 1.3
EASE_MAX = 2.5


class ReviewItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    prompt: str             # shown first
    answer: str             # revealed on demand
    note: str | None = None
    created_at: int         # epoch ms, immutable
    next_review_at: int     # epoch ms; eligible for review once reached
    interval_days: int = Field(default=0, ge=0)
    ease_factor: float = Field(default=2.5, ge=EASE_MIN, le=EASE_MAX)  # higher = easier
    version: int = 0        # bumped by the store on every committed update


class ReviewItemCreate(BaseModel):
    prompt: str
    answer: str
    note: str | None = None
    created_at: int | None = None  # None = store clock at insert time


class ReviewItemList(BaseModel):
    items: list[ReviewItem]
    total: int
    as_of: int


class DueStats(BaseModel):
    total_items: int
    due: int
    as_of: int
