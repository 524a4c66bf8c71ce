"""Tests for preview interval bucketing and labels."""

from datetime import timedelta

import pytest

from backend.srs.intervals import (
    IntervalPreview,
    IntervalUnit,
    bucket_interval,
    format_interval,
    round_half_up,
)


@pytest.mark.parametrize(
    ("delta", "amount", "unit"),
    [
        (timedelta(minutes=1), 1, IntervalUnit.MINUTES),
        (timedelta(minutes=10), 10, IntervalUnit.MINUTES),
        (timedelta(seconds=30), 1, IntervalUnit.MINUTES),
        (timedelta(seconds=29), 0, IntervalUnit.MINUTES),
        (timedelta(minutes=59), 59, IntervalUnit.MINUTES),
        (timedelta(minutes=59, seconds=30), 1, IntervalUnit.HOURS),
        (timedelta(minutes=90), 2, IntervalUnit.HOURS),
        (timedelta(hours=23), 23, IntervalUnit.HOURS),
        (timedelta(hours=23, minutes=30), 1, IntervalUnit.DAYS),
        (timedelta(days=1), 1, IntervalUnit.DAYS),
        (timedelta(hours=36), 2, IntervalUnit.DAYS),
        (timedelta(days=29), 29, IntervalUnit.DAYS),
    ],
)
def test_bucket_interval(delta: timedelta, amount: int, unit: IntervalUnit) -> None:
    assert bucket_interval(delta) == IntervalPreview(amount=amount, unit=unit)


def test_round_half_up() -> None:
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(2.49) == 2
    assert round_half_up(0.0) == 0


@pytest.mark.parametrize(
    ("locale", "expected"),
    [
        ("en", ["10m", "3h", "2d"]),
        ("zh", ["10分钟", "3小时", "2天"]),
    ],
)
def test_format_interval_locales(locale: str, expected: list[str]) -> None:
    labels = [
        format_interval(10, IntervalUnit.MINUTES, locale),
        format_interval(3, IntervalUnit.HOURS, locale),
        format_interval(2, IntervalUnit.DAYS, locale),
    ]
    assert labels == expected


def test_format_interval_unknown_locale() -> None:
    with pytest.raises(ValueError, match="Unsupported preview locale"):
        format_interval(1, IntervalUnit.DAYS, "fr")


def test_preview_str_uses_english_labels() -> None:
    assert str(IntervalPreview(amount=6, unit=IntervalUnit.DAYS)) == "6d"
