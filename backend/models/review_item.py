"""Review item model: a learner's card for one learnable item plus its due time."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Enum, Float, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.config import utcnow
from backend.models.base import Base, TimestampMixin
from backend.srs.fsrs import Card, State


class ReviewItem(Base, TimestampMixin):
    """An FSRS card owned by a learner, keyed by an opaque (item_type, item_key) reference."""

    __tablename__ = "review_items"
    __table_args__ = (
        UniqueConstraint("learner_id", "item_type", "item_key", name="uq_review_items_learner_item"),
        Index("ix_review_items_learner_next_review", "learner_id", "next_review"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    learner_id: Mapped[int] = mapped_column(ForeignKey("learners.id", ondelete="CASCADE"), nullable=False)
    item_type: Mapped[str] = mapped_column(String(50), nullable=False)  # grammar, vocabulary, ...
    item_key: Mapped[str] = mapped_column(String(500), nullable=False)
    display_data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    stability: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    difficulty: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    elapsed_days: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    scheduled_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    reps: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    lapses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    state: Mapped[State] = mapped_column(
        Enum(State, native_enum=False, values_callable=lambda e: [m.value for m in e], length=20),
        nullable=False,
        default=State.NEW,
    )
    last_review: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    next_review: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    # Every review bumps reps, so an UPDATE only lands on the row it was computed from
    __mapper_args__ = {"version_id_col": reps, "version_id_generator": False}

    learner: Mapped["Learner"] = relationship(back_populates="review_items")  # type: ignore[name-defined] # noqa: F821
    review_logs: Mapped[list["ReviewLog"]] = relationship(  # type: ignore[name-defined] # noqa: F821
        back_populates="review_item", cascade="all, delete-orphan"
    )

    def to_card(self) -> Card:
        """Extract the scheduler's view of this item."""
        return Card(
            stability=self.stability,
            difficulty=self.difficulty,
            elapsed_days=self.elapsed_days,
            scheduled_days=self.scheduled_days,
            reps=self.reps,
            lapses=self.lapses,
            state=self.state,
            last_review=self.last_review,
        )

    def apply_card(self, card: Card, next_review: datetime) -> None:
        """Copy a scheduled card and its due time onto this row."""
        self.stability = card.stability
        self.difficulty = card.difficulty
        self.elapsed_days = card.elapsed_days
        self.scheduled_days = card.scheduled_days
        self.reps = card.reps
        self.lapses = card.lapses
        self.state = card.state
        self.last_review = card.last_review
        self.next_review = next_review
