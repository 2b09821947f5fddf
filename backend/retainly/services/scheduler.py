"""
SM-2 style review scheduler.

Quality ratings (four-point scale):
  1 - Forgot
  2 - Recalled with heavy hints
  3 - Recalled with effort (pass)
  4 - Perfect recall

Pure and synchronous: the review instant is passed in, never read from the clock.
"""
from __future__ import annotations

import math

from retainly.clock import DAY_MS
from retainly.errors import ValidationError
from retainly.models.review_item import EASE_MAX, EASE_MIN, ReviewItem

QUALITY_MIN = 1
QUALITY_MAX = 4
PASS_QUALITY = 3

EASE_PENALTY = 0.2
EASE_BONUS = 0.1

GRADUATION_INTERVAL = 6  # days, second successful review


def check_quality(quality: int) -> int:
    """Reject anything that is not an integer rating on the 1–4 scale."""
    if isinstance(quality, bool) or not isinstance(quality, int):
        raise ValidationError(f"quality must be an integer, got {quality!r}")
    if not QUALITY_MIN <= quality <= QUALITY_MAX:
        raise ValidationError(
            f"quality must be between {QUALITY_MIN} and {QUALITY_MAX}, got {quality}"
        )
    return quality


def next_ease(ease_factor: float, quality: int) -> float:
    if quality < PASS_QUALITY:
        ease = ease_factor - EASE_PENALTY
    elif quality > PASS_QUALITY:
        ease = ease_factor + EASE_BONUS
    else:
        ease = ease_factor
    # Rounded so repeated ±0.1/0.2 steps do not drift off the 2-decimal grid
    return round(max(EASE_MIN, min(EASE_MAX, ease)), 2)


def next_interval(interval_days: int, ease_factor: float, quality: int) -> int:
    """Interval in days; `ease_factor` is the already-updated ease."""
    if quality < PASS_QUALITY:
        return 1
    if interval_days == 0:
        return 1
    if interval_days == 1:
        return GRADUATION_INTERVAL
    return math.floor(round(interval_days * ease_factor, 6))


def compute_next(item: ReviewItem, quality: int, now: int) -> ReviewItem:
    """
    Compute the item's next scheduling state for one review.

    `now` is the review instant in epoch milliseconds; the returned item is due
    `interval_days` whole days after it. The input item is not modified.
    """
    check_quality(quality)
    ease = next_ease(item.ease_factor, quality)
    interval = next_interval(item.interval_days, ease, quality)
    return item.model_copy(
        update={
            "ease_factor": ease,
            "interval_days": interval,
            "next_review_at": now + interval * DAY_MS,
        }
    )
