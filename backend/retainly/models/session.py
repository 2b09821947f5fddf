from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, StrictInt


class SessionState(str, Enum):
    IDLE = "idle"
    LOADED = "loaded"
    PRESENTING = "presenting"
    ANSWERED = "answered"
    ADVANCING = "advancing"
    EXHAUSTED = "exhausted"


class ReviewRequest(BaseModel):
    quality: StrictInt  # 1=forgot … 4=perfect; no coercion from bool or str


class SessionView(BaseModel):
    session_id: str | None = None
    state: SessionState
    cursor: int
    total: int
    reviewed: int
    skipped: list[int]
    item_id: int | None = None
    prompt: str | None = None
    answer: str | None = None   # only once revealed
    note: str | None = None     # only once revealed
    last_error: str | None = None
