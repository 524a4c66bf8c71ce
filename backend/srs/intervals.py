"""Interval bucketing for schedule previews.

A preview interval is reported in the coarsest readable unit:
minutes below one hour, hours below one day, days otherwise,
each rounded to the nearest whole unit.
"""

import math
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum


class IntervalUnit(Enum):
    """Display unit of a bucketed interval."""

    MINUTES = "minutes"
    HOURS = "hours"
    DAYS = "days"


INTERVAL_LABELS: dict[str, dict[IntervalUnit, str]] = {
    "en": {
        IntervalUnit.MINUTES: "{}m",
        IntervalUnit.HOURS: "{}h",
        IntervalUnit.DAYS: "{}d",
    },
    "zh": {
        IntervalUnit.MINUTES: "{}分钟",
        IntervalUnit.HOURS: "{}小时",
        IntervalUnit.DAYS: "{}天",
    },
}


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded up (2.5 -> 3, not 2)."""
    return math.floor(value + 0.5)


@dataclass(frozen=True)
class IntervalPreview:
    """A bucketed, rounded interval until the next review."""

    amount: int
    unit: IntervalUnit

    def label(self, locale: str = "en") -> str:
        return format_interval(self.amount, self.unit, locale)

    def __str__(self) -> str:
        return self.label()


def bucket_interval(delta: timedelta) -> IntervalPreview:
    """Bucket a time delta into minutes (<60), hours (<24) or days.

    The unit is chosen from the rounded value, so 59.6 minutes becomes
    "1 hour" rather than "60 minutes".
    """
    seconds = delta.total_seconds()
    minutes = round_half_up(seconds / 60)
    if minutes < 60:
        return IntervalPreview(amount=minutes, unit=IntervalUnit.MINUTES)
    hours = round_half_up(seconds / 3600)
    if hours < 24:
        return IntervalPreview(amount=hours, unit=IntervalUnit.HOURS)
    return IntervalPreview(amount=round_half_up(seconds / 86400), unit=IntervalUnit.DAYS)


def format_interval(amount: int, unit: IntervalUnit, locale: str = "en") -> str:
    """Render a bucketed interval as a short label in the given locale."""
    try:
        templates = INTERVAL_LABELS[locale]
    except KeyError:
        raise ValueError(
            f"Unsupported preview locale {locale!r}; expected one of {sorted(INTERVAL_LABELS)}"
        ) from None
    return templates[unit].format(amount)
