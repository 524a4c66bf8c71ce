"""Pydantic models for the coordinator's outbound records."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

from backend.srs.fsrs import State


class ReviewItemView(BaseModel):
    """A review item with its card state and due time."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    learner_id: int
    item_type: str
    item_key: str
    display_data: dict[str, Any]  # Opaque, passed through unmodified
    stability: float
    difficulty: float
    elapsed_days: float
    scheduled_days: int
    reps: int
    lapses: int
    state: State
    last_review: datetime | None
    next_review: datetime


class DueItem(ReviewItemView):
    """A review item annotated with what each rating would schedule."""

    schedule_preview: dict[int, str]  # rating -> bucketed interval label


class ReviewStats(BaseModel):
    """Aggregate review counts for a learner."""

    due_count: int
    total_items: int
    next_review_at: datetime | None
