from __future__ import annotations

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from cafe_analytics.core.errors import ValidationError
from cafe_analytics.services.calendar_buckets import (
    WEEKDAY_LABELS,
    DateRange,
    hour_bucket,
    month_key,
    month_range,
    month_sequence,
    next_month,
    previous_month,
    weekday_bucket,
)


def test_month_range_rolls_over_december() -> None:
    assert month_range(2025, 12) == (date(2025, 12, 1), date(2026, 1, 1))
    assert month_range(2025, 2) == (date(2025, 2, 1), date(2025, 3, 1))


def test_month_range_rejects_invalid_month() -> None:
    with pytest.raises(ValidationError):
        month_range(2025, 13)
    with pytest.raises(ValidationError):
        month_range(2025, 0)


def test_previous_and_next_month_cross_year_boundary() -> None:
    assert previous_month(2025, 1) == (2024, 12)
    assert next_month(2024, 12) == (2025, 1)
    assert previous_month(2025, 7) == (2025, 6)


def test_month_key_is_zero_padded() -> None:
    assert month_key(date(2025, 3, 9)) == "2025-03"


def test_weekday_bucket_is_sunday_first() -> None:
    # 2025-06-01 is a Sunday.
    assert weekday_bucket(date(2025, 6, 1)) == 0
    assert weekday_bucket(date(2025, 6, 2)) == 1
    assert weekday_bucket(date(2025, 6, 7)) == 6
    assert WEEKDAY_LABELS[weekday_bucket(date(2025, 6, 7))] == "Sat"


def test_hour_bucket_converts_aware_timestamps() -> None:
    utc_evening = datetime(2025, 6, 1, 23, 30, tzinfo=timezone.utc)

    assert hour_bucket(utc_evening) == 23
    assert hour_bucket(utc_evening, ZoneInfo("Asia/Tokyo")) == 8


def test_hour_bucket_keeps_naive_timestamps() -> None:
    assert hour_bucket(datetime(2025, 6, 1, 7, 5), ZoneInfo("Asia/Tokyo")) == 7


def test_date_range_for_month_is_inclusive() -> None:
    june = DateRange.for_month(2025, 6)

    assert june.start == date(2025, 6, 1)
    assert june.end == date(2025, 6, 30)
    assert june.contains(date(2025, 6, 30))
    assert not june.contains(date(2025, 7, 1))
    assert not june.contains(date(2025, 5, 31))


def test_date_range_for_leap_february() -> None:
    assert DateRange.for_month(2024, 2).end == date(2024, 2, 29)


def test_date_range_rejects_inverted_bounds() -> None:
    with pytest.raises(ValidationError):
        DateRange(start=date(2025, 2, 1), end=date(2025, 1, 31))


def test_open_date_range_contains_everything_and_labels_open_sides() -> None:
    open_range = DateRange()

    assert open_range.contains(date(1999, 1, 1))
    assert open_range.label() == "all_all"
    assert DateRange(start=date(2025, 1, 1)).label() == "2025-01-01_all"


def test_month_sequence_spans_year_end() -> None:
    months = month_sequence(date(2024, 11, 15), date(2025, 2, 3))

    assert months == [date(2024, 11, 1), date(2024, 12, 1), date(2025, 1, 1), date(2025, 2, 1)]
