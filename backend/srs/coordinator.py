"""Review store coordinator.

Owns the persisted review items of every learner and routes all card
updates through the FSRS scheduler:

- due-item queries annotated with a four-rating schedule preview
- atomic, per-item serialized review recording (with a review log row)
- aggregate stats for badges and dashboards
"""

import logging
from collections.abc import Callable
from datetime import datetime

from sqlalchemy import and_, func, select
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from backend.config import settings, utcnow
from backend.database import async_session
from backend.errors import ConcurrencyConflict, NotFound, ValidationFailure
from backend.models.review_item import ReviewItem
from backend.models.review_log import ReviewLog
from backend.schemas import DueItem, ReviewItemView, ReviewStats
from backend.srs.fsrs import FSRS, Card, FSRSWeights, Rating, ScheduleResult
from backend.srs.locks import ItemLockRegistry

logger = logging.getLogger(__name__)

# Driver messages that mean another writer held the row or table
_WRITE_CONFLICT_MARKERS = ("database is locked", "could not serialize", "deadlock detected")


def validate_rating(rating: object) -> Rating:
    """Check a caller-supplied rating and return it as a Rating.

    Raises:
        ValidationFailure: If the rating is not an integer in 1-4.
    """
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise ValidationFailure("rating", rating, "must be an integer")
    if not Rating.AGAIN <= rating <= Rating.EASY:
        raise ValidationFailure("rating", rating, "must be one of 1, 2, 3, 4")
    return Rating(rating)


def _is_write_conflict(exc: BaseException) -> bool:
    if isinstance(exc, StaleDataError):
        return True
    if not isinstance(exc, DBAPIError):
        return False
    message = str(exc).lower()
    return any(marker in message for marker in _WRITE_CONFLICT_MARKERS)


class ReviewCoordinator:
    """Mediates all reads and writes of review items."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        fsrs: FSRS | None = None,
        clock: Callable[[], datetime] = utcnow,
        locale: str | None = None,
        due_limit: int | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            session_factory: Session factory for the store (defaults to the app database).
            fsrs: Scheduler instance (defaults to one built from settings).
            clock: Source of "now" as a naive UTC datetime.
            locale: Label locale for schedule previews (defaults to settings).
            due_limit: Default page size for due-item queries (defaults to settings).
        """
        self.session_factory = session_factory or async_session
        self.fsrs = fsrs or FSRS(FSRSWeights.from_settings())
        self.clock = clock
        self.locale = locale or settings.preview_locale
        self.due_limit = due_limit if due_limit is not None else settings.due_items_limit
        self._locks = ItemLockRegistry()

    async def get_due_items(self, learner_id: int, limit: int | None = None) -> list[DueItem]:
        """Return a learner's due items, oldest due first.

        Ties on the due time are broken by item id so the order is stable.
        """
        now = self.clock()
        limit = limit if limit is not None else self.due_limit

        stmt = (
            select(ReviewItem)
            .where(
                and_(
                    ReviewItem.learner_id == learner_id,
                    ReviewItem.next_review <= now,
                )
            )
            .order_by(ReviewItem.next_review.asc(), ReviewItem.id.asc())
            .limit(limit)
        )
        async with self.session_factory() as db:
            items = list((await db.execute(stmt)).scalars().all())

        logger.debug("Learner %d has %d due items (limit %d)", learner_id, len(items), limit)
        return [self._due_item(item, now) for item in items]

    async def get_item(self, item_id: int, learner_id: int | None = None) -> DueItem:
        """Return one item with its schedule preview, due or not."""
        now = self.clock()
        async with self.session_factory() as db:
            item = await db.get(ReviewItem, item_id)
        if item is None or (learner_id is not None and item.learner_id != learner_id):
            raise NotFound("ReviewItem", "item_id", item_id)
        return self._due_item(item, now)

    async def record_review(
        self,
        item_id: int,
        rating: int,
        learner_id: int | None = None,
    ) -> ReviewItemView:
        """Apply a rating to an item and persist the new card state.

        Reviews of the same item are applied strictly in sequence; each one
        reads the state committed by the previous one. Within a coordinator
        the per-item lock orders them. Across coordinators and processes the
        versioned UPDATE rejects a write computed from stale state, and the
        review is re-read and retried.

        Args:
            item_id: The review item to update.
            rating: Review rating (1=Again, 2=Hard, 3=Good, 4=Easy).
            learner_id: If given, the item must belong to this learner.

        Returns:
            The updated review item.

        Raises:
            ValidationFailure: If the rating is outside 1-4.
            NotFound: If the item does not exist for the caller.
            ConcurrencyConflict: If the item kept changing underneath every retry.
        """
        rating = validate_rating(rating)
        async with self._locks.hold(item_id):
            try:
                return await self._apply_review(item_id, rating, learner_id)
            except (DBAPIError, StaleDataError) as exc:
                if _is_write_conflict(exc):
                    raise ConcurrencyConflict(item_id) from exc
                raise

    async def get_review_stats(self, learner_id: int) -> ReviewStats:
        """Return due count, total items, and the earliest due time for a learner."""
        now = self.clock()
        owned = ReviewItem.learner_id == learner_id

        async with self.session_factory() as db:
            total = (await db.execute(select(func.count(ReviewItem.id)).where(owned))).scalar() or 0
            due = (
                await db.execute(
                    select(func.count(ReviewItem.id)).where(and_(owned, ReviewItem.next_review <= now))
                )
            ).scalar() or 0
            next_review_at = (
                await db.execute(select(func.min(ReviewItem.next_review)).where(owned))
            ).scalar()

        return ReviewStats(due_count=due, total_items=total, next_review_at=next_review_at)

    def preview_labels(self, card: Card, now: datetime | None = None) -> dict[int, str]:
        """Return rating -> interval label for every rating."""
        preview = self.fsrs.preview(card, now or self.clock())
        return {int(rating): interval.label(self.locale) for rating, interval in preview.items()}

    @retry(
        retry=retry_if_exception(_is_write_conflict),
        stop=stop_after_attempt(5),
        wait=wait_exponential(multiplier=0.05, max=1),
        reraise=True,
    )
    async def _apply_review(
        self,
        item_id: int,
        rating: Rating,
        learner_id: int | None,
    ) -> ReviewItemView:
        async with self.session_factory() as db:
            async with db.begin():
                stmt = select(ReviewItem).where(ReviewItem.id == item_id).with_for_update()
                item = (await db.execute(stmt)).scalar_one_or_none()
                if item is None or (learner_id is not None and item.learner_id != learner_id):
                    raise NotFound("ReviewItem", "item_id", item_id)

                now = self.clock()
                before = item.to_card()
                result = self.fsrs.schedule(before, rating, now)
                item.apply_card(result.card, result.next_review)
                db.add(self._log_entry(item, rating, before, result, now))
                await db.flush()
                view = ReviewItemView.model_validate(item)

            logger.info(
                "Reviewed item %d (rating %d): %s -> %s, next review %s",
                item_id,
                rating,
                before.state.value,
                result.card.state.value,
                result.next_review.isoformat(),
            )
            return view

    def _log_entry(
        self,
        item: ReviewItem,
        rating: Rating,
        before: Card,
        result: ScheduleResult,
        now: datetime,
    ) -> ReviewLog:
        return ReviewLog(
            review_item_id=item.id,
            learner_id=item.learner_id,
            rating=int(rating),
            state_before=before.state,
            state_after=result.card.state,
            stability_before=before.stability,
            stability_after=result.card.stability,
            difficulty_before=before.difficulty,
            difficulty_after=result.card.difficulty,
            elapsed_days=result.card.elapsed_days,
            scheduled_days=result.card.scheduled_days,
            reviewed_at=now,
        )

    def _due_item(self, item: ReviewItem, now: datetime) -> DueItem:
        view = ReviewItemView.model_validate(item)
        return DueItem(**view.model_dump(), schedule_preview=self.preview_labels(item.to_card(), now))
