"""Error taxonomy shared by the scheduler, the card stores and the session controller."""
from __future__ import annotations


class RetainlyError(Exception):
    """Base class for every error raised by the review core."""


class ValidationError(RetainlyError):
    """A quality signal outside the rating scale, or a malformed new item.

    Raised at the boundary, before the scheduler runs. Values are never clamped.
    """


class NotFound(RetainlyError):
    """An operation referenced an item id the store does not hold."""

    def __init__(self, item_id: int) -> None:
        super().__init__(f"Review item {item_id} not found")
        self.item_id = item_id


class StoreError(RetainlyError):
    """Persistence failed. Safe to retry at the caller's discretion."""


class ConcurrencyConflict(RetainlyError):
    """Another update to the same item committed first.

    The caller should reload the item and recompute instead of retrying
    with the stale snapshot.
    """

    def __init__(self, item_id: int, expected_version: int, actual_version: int | None) -> None:
        super().__init__(
            f"Review item {item_id} changed concurrently "
            f"(expected version {expected_version}, found {actual_version})"
        )
        self.item_id = item_id
        self.expected_version = expected_version
        self.actual_version = actual_version


class SessionStateError(RetainlyError):
    """A session call was made in a state that does not allow it."""
