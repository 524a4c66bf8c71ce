"""Shared fixtures: a throwaway SQLite store, a controllable clock and a coordinator."""

from collections.abc import AsyncIterator, Awaitable, Callable
from datetime import datetime, timedelta

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from backend.database import init_db
from backend.models.learner import Learner
from backend.models.review_item import ReviewItem
from backend.srs.coordinator import ReviewCoordinator

NOW = datetime(2026, 2, 23, 12, 0)


class FakeClock:
    """A clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncIterator[AsyncEngine]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'review.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(NOW)


@pytest.fixture
def coordinator(session_factory, clock) -> ReviewCoordinator:
    return ReviewCoordinator(session_factory=session_factory, clock=clock, locale="en", due_limit=20)


async def _create_learner(session_factory, name: str) -> int:
    async with session_factory() as db:
        learner = Learner(name=name)
        db.add(learner)
        await db.commit()
        return learner.id


@pytest_asyncio.fixture
async def learner_id(session_factory) -> int:
    return await _create_learner(session_factory, "Ana")


@pytest_asyncio.fixture
async def other_learner_id(session_factory) -> int:
    return await _create_learner(session_factory, "Bo")


@pytest.fixture
def make_item(session_factory) -> Callable[..., Awaitable[int]]:
    """Insert a review item the way the item lifecycle owner would, returning its id."""
    counter = iter(range(1, 10_000))

    async def _make_item(learner_id: int, **fields) -> int:
        fields.setdefault("item_type", "vocabulary")
        fields.setdefault("item_key", f"word-{next(counter)}")
        fields.setdefault("display_data", {"word": fields["item_key"]})
        fields.setdefault("next_review", NOW)
        async with session_factory() as db:
            item = ReviewItem(learner_id=learner_id, **fields)
            db.add(item)
            await db.commit()
            return item.id

    return _make_item
