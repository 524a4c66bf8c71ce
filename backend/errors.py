"""
Typed errors for the review scheduling core.

Callers distinguish failures by class (or by ``kind``) and by the offending
field, instead of parsing messages.
"""


class ReviewError(Exception):
    """Base class for all review-scheduling errors."""

    kind = "review_error"


class ValidationFailure(ReviewError):
    """Caller input was rejected before touching storage."""

    kind = "validation_failure"

    def __init__(self, field: str, value: object, reason: str) -> None:
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field}={value!r}: {reason}")


class NotFound(ReviewError):
    """The referenced record does not exist for the caller."""

    kind = "not_found"

    def __init__(self, resource: str, field: str, value: object) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        super().__init__(f"{resource} not found: {field}={value!r}")


class ConcurrencyConflict(ReviewError):
    """Two writers raced on the same card outside the per-item lock."""

    kind = "concurrency_conflict"

    def __init__(self, item_id: int) -> None:
        self.item_id = item_id
        super().__init__(f"Concurrent update detected for review item {item_id}")


class NumericInvariantError(AssertionError):
    """The scheduler produced a card outside its numeric bounds.

    This is a programming error, never a recoverable runtime condition.
    """

    kind = "numeric_invariant"

    def __init__(self, field: str, value: object) -> None:
        self.field = field
        self.value = value
        super().__init__(f"Scheduler produced invalid {field}={value!r}")
