from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import aiosqlite

from retainly.db.base import CardStore
from retainly.errors import StoreError
from retainly.models.review_item import ReviewItem, ReviewItemCreate

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
PRAGMA journal_mode=WAL;

CREATE TABLE IF NOT EXISTS review_items (
    id             INTEGER PRIMARY KEY AUTOINCREMENT,
    prompt         TEXT NOT NULL,
    answer         TEXT NOT NULL,
    note           TEXT,
    created_at     INTEGER NOT NULL,
    next_review_at INTEGER NOT NULL,
    interval_days  INTEGER NOT NULL DEFAULT 0 CHECK (interval_days >= 0),
    ease_factor    REAL NOT NULL DEFAULT 2.5,
    version        INTEGER NOT NULL DEFAULT 0
);
CREATE INDEX IF NOT EXISTS idx_review_items_due ON review_items(next_review_at, id);

CREATE TABLE IF NOT EXISTS schema_version (
    version    INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);
INSERT OR IGNORE INTO schema_version(version) VALUES (1);
"""

_COLUMNS = (
    "id, prompt, answer, note, created_at, next_review_at, "
    "interval_days, ease_factor, version"
)


class SqliteCardStore(CardStore):
    """Durable card store backed by a single SQLite file."""

    def __init__(self, path: Path, **kwargs) -> None:
        super().__init__(**kwargs)
        self.path = Path(path)

    async def open(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StoreError(f"Cannot create data directory for {self.path}") from exc
        async with self._connect() as db:
            await db.executescript(SCHEMA_SQL)
            await db.commit()
        logger.info("SQLite card store ready at %s", self.path)

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        try:
            async with aiosqlite.connect(self.path) as db:
                db.row_factory = aiosqlite.Row
                yield db
        except (aiosqlite.Error, OSError) as exc:
            logger.warning("SQLite operation failed on %s: %s", self.path, exc)
            raise StoreError(f"SQLite operation failed: {exc}") from exc

    async def _insert_row(self, new: ReviewItemCreate, created_at: int) -> ReviewItem:
        async with self._connect() as db:
            cursor = await db.execute(
                """INSERT INTO review_items
                   (prompt, answer, note, created_at, next_review_at,
                    interval_days, ease_factor, version)
                   VALUES (?, ?, ?, ?, ?, 0, 2.5, 0)""",
                (new.prompt, new.answer, new.note, created_at, created_at),
            )
            item_id = cursor.lastrowid
            await db.commit()
        return ReviewItem(
            id=item_id,
            prompt=new.prompt,
            answer=new.answer,
            note=new.note,
            created_at=created_at,
            next_review_at=created_at,
        )

    async def _fetch(self, item_id: int) -> ReviewItem | None:
        async with self._connect() as db:
            cursor = await db.execute(
                f"SELECT {_COLUMNS} FROM review_items WHERE id = ?",  # noqa: S608
                (item_id,),
            )
            row = await cursor.fetchone()
        return _row_to_item(row) if row else None

    async def _replace(self, item: ReviewItem, expected_version: int) -> bool:
        async with self._connect() as db:
            cursor = await db.execute(
                """UPDATE review_items
                   SET prompt = ?, answer = ?, note = ?, next_review_at = ?,
                       interval_days = ?, ease_factor = ?, version = ?
                   WHERE id = ? AND version = ?""",
                (
                    item.prompt,
                    item.answer,
                    item.note,
                    item.next_review_at,
                    item.interval_days,
                    item.ease_factor,
                    item.version,
                    item.id,
                    expected_version,
                ),
            )
            await db.commit()
        return (cursor.rowcount or 0) == 1

    async def _query_due(self, as_of: int) -> list[ReviewItem]:
        async with self._connect() as db:
            cursor = await db.execute(
                f"""SELECT {_COLUMNS} FROM review_items
                    WHERE next_review_at <= ?
                    ORDER BY next_review_at ASC, id ASC""",  # noqa: S608
                (as_of,),
            )
            rows = await cursor.fetchall()
        return [_row_to_item(r) for r in rows]

    async def _count(self, as_of: int) -> tuple[int, int]:
        async with self._connect() as db:
            cursor = await db.execute(
                """SELECT COUNT(*),
                          COALESCE(SUM(CASE WHEN next_review_at <= ? THEN 1 ELSE 0 END), 0)
                   FROM review_items""",
                (as_of,),
            )
            row = await cursor.fetchone()
        return row[0], row[1]


def _row_to_item(row: aiosqlite.Row) -> ReviewItem:
    return ReviewItem(**dict(row))
