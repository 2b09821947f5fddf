from pathlib import Path

from retainly.db.base import CardStore, DueSubscription
from retainly.db.memory import MemoryCardStore
from retainly.db.sqlite import SqliteCardStore

__all__ = [
    "CardStore",
    "DueSubscription",
    "MemoryCardStore",
    "SqliteCardStore",
    "build_store",
]


def build_store(backend: str, data_dir: Path, sqlite_filename: str) -> CardStore:
    if backend == "memory":
        return MemoryCardStore()
    return SqliteCardStore(data_dir / sqlite_filename)
