"""SQLAlchemy ORM models for the review scheduling store."""

from backend.models.base import Base
from backend.models.learner import Learner
from backend.models.review_item import ReviewItem
from backend.models.review_log import ReviewLog

__all__ = ["Base", "Learner", "ReviewItem", "ReviewLog"]
