"""FSRS (Free Spaced Repetition Scheduler) algorithm implementation.

A compact FSRS v4 scheduler with a four-state card lifecycle.
Reference: https://github.com/open-spaced-repetition/fsrs4anki

Key concepts:
- Stability (S): The number of days after which recall probability drops to ~90%.
- Difficulty (D): A value between 1 and 10 representing inherent item difficulty.
- Retrievability (R): The probability of recall at a given time since last review.
- Rating: 1=Again, 2=Hard, 3=Good, 4=Easy
- State: New -> Learning/Review, Learning/Relearning -> Review, Review -> Relearning

The scheduler is pure: it never mutates its input and performs no I/O, so
one instance can be shared freely between concurrent callers.
"""

import math
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum, IntEnum

from backend.config import settings, utcnow
from backend.errors import NumericInvariantError
from backend.srs.intervals import IntervalPreview, bucket_interval, round_half_up

# Bounds
MIN_DIFFICULTY = 1.0
MAX_DIFFICULTY = 10.0
MIN_STABILITY = 0.1  # Minimum 0.1 days (~2.4 hours)

# Stability multipliers applied on an Again rating
LEARNING_AGAIN_FACTOR = 0.5
LAPSE_FACTOR = 0.2

# Short-term re-exposure for Learning/Relearning cards
AGAIN_STEP = timedelta(minutes=1)
LEARNING_STEP = timedelta(minutes=10)


class Rating(IntEnum):
    """User-reported recall quality."""

    AGAIN = 1
    HARD = 2
    GOOD = 3
    EASY = 4


class State(Enum):
    """Lifecycle state of a card."""

    NEW = "New"
    LEARNING = "Learning"
    REVIEW = "Review"
    RELEARNING = "Relearning"


SHORT_TERM_STATES = frozenset({State.LEARNING, State.RELEARNING})

# Every legal (from, to) pair. Anything else is a scheduler bug.
ALLOWED_TRANSITIONS: dict[State, frozenset[State]] = {
    State.NEW: frozenset({State.LEARNING, State.REVIEW}),
    State.LEARNING: frozenset({State.LEARNING, State.REVIEW}),
    State.RELEARNING: frozenset({State.RELEARNING, State.REVIEW}),
    State.REVIEW: frozenset({State.REVIEW, State.RELEARNING}),
}


@dataclass(frozen=True)
class FSRSWeights:
    """The 13-element FSRS v4 parameter vector (w0..w12).

    w[0..3]: initial stability for ratings Again/Hard/Good/Easy
    w[4]: initial difficulty for Good
    w[5]: initial difficulty step per rating
    w[6]: difficulty step per rating on later reviews
    w[7]: difficulty mean reversion weight
    w[8]: recall stability growth (exponent)
    w[9]: stability saturation exponent
    w[10]: retrievability sensitivity
    w[11]: Hard multiplier
    w[12]: Easy multiplier
    """

    values: tuple[float, ...]

    def __post_init__(self) -> None:
        if len(self.values) != 13:
            raise ValueError(f"FSRS weights need exactly 13 values, got {len(self.values)}")
        if not all(math.isfinite(v) for v in self.values):
            raise ValueError("FSRS weights must be finite numbers")
        object.__setattr__(self, "values", tuple(float(v) for v in self.values))

    def __getitem__(self, index: int) -> float:
        return self.values[index]

    @classmethod
    def from_settings(cls) -> "FSRSWeights":
        """Build the weight vector from configuration, falling back to the defaults."""
        if settings.fsrs_weights is None:
            return DEFAULT_WEIGHTS
        return cls(tuple(settings.fsrs_weights))


# FSRS v4 default parameters
DEFAULT_WEIGHTS = FSRSWeights(
    (0.4, 0.6, 2.4, 5.8, 4.93, 0.94, 0.86, 0.01, 1.49, 0.14, 0.94, 2.18, 0.05)
)


@dataclass(frozen=True)
class Card:
    """The memory state of one learnable item for one learner.

    ``stability`` and ``difficulty`` are unused while the card is New.
    """

    stability: float = 0.0
    difficulty: float = 0.0
    elapsed_days: float = 0.0
    scheduled_days: int = 0
    reps: int = 0
    lapses: int = 0
    state: State = State.NEW
    last_review: datetime | None = None


@dataclass(frozen=True)
class ScheduleResult:
    """The result of applying a rating to a card."""

    card: Card
    next_review: datetime


def _clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


class FSRS:
    """Free Spaced Repetition Scheduler."""

    def __init__(self, weights: FSRSWeights | None = None) -> None:
        """Initialize FSRS with an optional custom weight vector."""
        self.w = weights or DEFAULT_WEIGHTS
        self._transitions = {
            State.NEW: self._review_new,
            State.LEARNING: self._review_learning,
            State.RELEARNING: self._review_learning,
            State.REVIEW: self._review_review,
        }

    def schedule(
        self,
        card: Card,
        rating: int,
        now: datetime | None = None,
    ) -> ScheduleResult:
        """Apply a rating to a card.

        Args:
            card: Current card state (not modified).
            rating: Review rating (1=Again, 2=Hard, 3=Good, 4=Easy). Anything
                else is a caller bug and raises ValueError.
            now: When the review happened (defaults to now).

        Returns:
            ScheduleResult with the new card and the next review time.
        """
        rating = Rating(rating)
        now = now or utcnow()
        elapsed = self._elapsed_days(card, now)

        new_card = self._transitions[card.state](card, rating, elapsed, now)
        self._check_invariants(card.state, new_card)

        if new_card.state in SHORT_TERM_STATES:
            step = AGAIN_STEP if rating == Rating.AGAIN else LEARNING_STEP
            next_review = now + step
        else:
            next_review = now + timedelta(days=new_card.scheduled_days)

        return ScheduleResult(card=new_card, next_review=next_review)

    def preview(
        self,
        card: Card,
        now: datetime | None = None,
    ) -> dict[Rating, IntervalPreview]:
        """Return the bucketed interval each rating would produce, without advancing the card."""
        now = now or utcnow()
        return {
            rating: bucket_interval(self.schedule(card, rating, now).next_review - now)
            for rating in Rating
        }

    def retrievability(self, card: Card, now: datetime | None = None) -> float:
        """Return the modeled recall probability of a card at ``now``."""
        now = now or utcnow()
        return self._retrievability(self._elapsed_days(card, now), card.stability)

    # --- state transitions ---

    def _review_new(self, card: Card, rating: Rating, elapsed: float, now: datetime) -> Card:
        stability = self._initial_stability(rating)
        difficulty = self._initial_difficulty(rating)
        if rating == Rating.AGAIN:
            state, interval = State.LEARNING, 0
        else:
            state, interval = State.REVIEW, self._stability_to_interval(stability)
        return replace(
            card,
            stability=stability,
            difficulty=difficulty,
            elapsed_days=0.0,
            scheduled_days=interval,
            reps=card.reps + 1,
            state=state,
            last_review=now,
        )

    def _review_learning(self, card: Card, rating: Rating, elapsed: float, now: datetime) -> Card:
        if rating == Rating.AGAIN:
            return replace(
                card,
                stability=max(card.stability * LEARNING_AGAIN_FACTOR, MIN_STABILITY),
                elapsed_days=elapsed,
                scheduled_days=0,
                reps=card.reps + 1,
                last_review=now,
            )

        difficulty = self._next_difficulty(card.difficulty, rating)
        retrievability = self._retrievability(elapsed, card.stability)
        stability = self._next_recall_stability(difficulty, card.stability, retrievability, rating)
        return replace(
            card,
            stability=stability,
            difficulty=difficulty,
            elapsed_days=elapsed,
            scheduled_days=self._stability_to_interval(stability),
            reps=card.reps + 1,
            state=State.REVIEW,
            last_review=now,
        )

    def _review_review(self, card: Card, rating: Rating, elapsed: float, now: datetime) -> Card:
        retrievability = self._retrievability(elapsed, card.stability)
        difficulty = self._next_difficulty(card.difficulty, rating)

        if rating == Rating.AGAIN:
            # Lapse
            return replace(
                card,
                stability=max(card.stability * LAPSE_FACTOR, MIN_STABILITY),
                difficulty=difficulty,
                elapsed_days=elapsed,
                scheduled_days=0,
                reps=card.reps + 1,
                lapses=card.lapses + 1,
                state=State.RELEARNING,
                last_review=now,
            )

        stability = self._next_recall_stability(difficulty, card.stability, retrievability, rating)
        return replace(
            card,
            stability=stability,
            difficulty=difficulty,
            elapsed_days=elapsed,
            scheduled_days=self._stability_to_interval(stability),
            reps=card.reps + 1,
            last_review=now,
        )

    # --- model formulas ---

    def _initial_difficulty(self, rating: int) -> float:
        """D0 = w4 - (rating - 3) * w5, clamped to [1, 10]."""
        return _clamp(self.w[4] - (rating - 3) * self.w[5], MIN_DIFFICULTY, MAX_DIFFICULTY)

    def _initial_stability(self, rating: int) -> float:
        """S0 = w[rating - 1], floored at MIN_STABILITY."""
        return max(self.w[rating - 1], MIN_STABILITY)

    def _next_difficulty(self, difficulty: float, rating: int) -> float:
        """Step difficulty by rating, then mean-revert toward D0(Good)."""
        stepped = difficulty - self.w[6] * (rating - 3)
        reverted = self.w[7] * self._initial_difficulty(Rating.GOOD) + (1 - self.w[7]) * stepped
        return _clamp(reverted, MIN_DIFFICULTY, MAX_DIFFICULTY)

    def _next_recall_stability(
        self,
        difficulty: float,
        stability: float,
        retrievability: float,
        rating: int,
    ) -> float:
        """Calculate new stability after a successful recall (rating >= 2).

        S' = S * (1 + e^(w8) * (11 - D) * S^(-w9) * (e^((1-R)*w10) - 1) * hard * easy)
        """
        stability = max(stability, MIN_STABILITY)
        hard_penalty = self.w[11] if rating == Rating.HARD else 1.0
        easy_bonus = self.w[12] if rating == Rating.EASY else 1.0
        growth = (
            math.exp(self.w[8])
            * (11 - difficulty)
            * stability ** (-self.w[9])
            * (math.exp((1 - retrievability) * self.w[10]) - 1)
            * hard_penalty
            * easy_bonus
        )
        return max(stability * (1 + growth), MIN_STABILITY)

    def _retrievability(self, elapsed_days: float, stability: float) -> float:
        """Calculate the probability of recall given elapsed time and stability.

        Uses the power forgetting curve: R = (1 + t / (9 * S))^(-1)
        """
        if stability <= 0:
            return 0.0
        return (1 + elapsed_days / (9 * stability)) ** -1

    def _stability_to_interval(self, stability: float) -> int:
        """Round stability to whole days, at least one."""
        return max(1, round_half_up(stability))

    @staticmethod
    def _elapsed_days(card: Card, now: datetime) -> float:
        if card.last_review is None:
            return 0.0
        return max(0.0, (now - card.last_review).total_seconds() / 86400)

    @staticmethod
    def _check_invariants(previous: State, card: Card) -> None:
        if card.state not in ALLOWED_TRANSITIONS[previous]:
            raise NumericInvariantError("state", previous.value + "->" + card.state.value)
        if not (math.isfinite(card.stability) and card.stability >= MIN_STABILITY):
            raise NumericInvariantError("stability", card.stability)
        if not MIN_DIFFICULTY <= card.difficulty <= MAX_DIFFICULTY:
            raise NumericInvariantError("difficulty", card.difficulty)
