from retainly.models.review_item import (
    DueStats,
    ReviewItem,
    ReviewItemCreate,
    ReviewItemList,
)
from retainly.models.session import ReviewRequest, SessionState, SessionView

__all__ = [
    "DueStats",
    "ReviewItem",
    "ReviewItemCreate",
    "ReviewItemList",
    "ReviewRequest",
    "SessionState",
    "SessionView",
]
