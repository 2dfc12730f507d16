"""Calendar bucketing shared by every report.

All time grouping goes through these helpers so two reports can never
disagree on which hour, weekday or month a sale belongs to.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo

from cafe_analytics.core.errors import ValidationError

HOURS_PER_DAY = 24
# Sunday-first, matching the order dashboards render weekday charts.
WEEKDAY_LABELS = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
MONTHS_PER_YEAR = 12


def hour_bucket(timestamp: datetime, tz: tzinfo | None = None) -> int:
    """Hour of day 0..23; aware timestamps are converted to ``tz`` first."""

    if tz is not None and timestamp.tzinfo is not None:
        timestamp = timestamp.astimezone(tz)
    return timestamp.hour


def weekday_bucket(value: date) -> int:
    """Weekday index with Sunday as 0 and Saturday as 6."""

    return (value.weekday() + 1) % 7


def month_key(value: date) -> str:
    return f"{value.year:04d}-{value.month:02d}"


def month_key_for(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def _validate_month(year: int, month: int) -> None:
    if not 1 <= month <= MONTHS_PER_YEAR:
        raise ValidationError("month must be between 1 and 12.", context={"month": month})
    if not 1 <= year <= 9998:
        raise ValidationError("year is out of range.", context={"year": year})


def next_month(year: int, month: int) -> tuple[int, int]:
    if month == 12:
        return year + 1, 1
    return year, month + 1


def previous_month(year: int, month: int) -> tuple[int, int]:
    if month == 1:
        return year - 1, 12
    return year, month - 1


def month_range(year: int, month: int) -> tuple[date, date]:
    """Half-open ``[start, end)`` range of a calendar month."""

    _validate_month(year, month)
    end_year, end_month = next_month(year, month)
    return date(year, month, 1), date(end_year, end_month, 1)


def year_range(year: int) -> tuple[date, date]:
    _validate_month(year, 1)
    return date(year, 1, 1), date(year + 1, 1, 1)


def month_sequence(start_month: date, end_month: date) -> list[date]:
    current = date(start_month.year, start_month.month, 1)
    end = date(end_month.year, end_month.month, 1)
    months: list[date] = []
    while current <= end:
        months.append(current)
        year, month = next_month(current.year, current.month)
        current = date(year, month, 1)
    return months


@dataclass(frozen=True, slots=True)
class DateRange:
    """Inclusive date range; ``None`` leaves that side unbounded."""

    start: date | None = None
    end: date | None = None

    def __post_init__(self) -> None:
        if self.start is not None and self.end is not None and self.end < self.start:
            raise ValidationError(
                "end_date must be greater than or equal to start_date.",
                context={"start_date": self.start.isoformat(), "end_date": self.end.isoformat()},
            )

    @classmethod
    def for_month(cls, year: int, month: int) -> DateRange:
        start, end = month_range(year, month)
        return cls(start=start, end=end - timedelta(days=1))

    @classmethod
    def for_year(cls, year: int) -> DateRange:
        start, end = year_range(year)
        return cls(start=start, end=end - timedelta(days=1))

    def contains(self, value: date) -> bool:
        if self.start is not None and value < self.start:
            return False
        if self.end is not None and value > self.end:
            return False
        return True

    def label(self) -> str:
        start = self.start.isoformat() if self.start else "all"
        end = self.end.isoformat() if self.end else "all"
        return f"{start}_{end}"
