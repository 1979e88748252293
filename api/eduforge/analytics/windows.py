"""Reporting windows and time buckets.

- ``week``: the last 7 calendar days, one bucket per day
- ``month``: the last 30 days, one bucket per week starting on Monday
- ``year``: the last 365 days, one bucket per calendar month

Buckets are ordered chronologically and the last one contains ``now``.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum


class Timeframe(str, Enum):
    """Reporting window size."""

    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


@dataclass(frozen=True)
class Bucket:
    """Half-open time range [start, end)."""

    label: str
    start: datetime
    end: datetime

    def contains(self, dt: datetime) -> bool:
        return self.start <= dt < self.end


@dataclass(frozen=True)
class ReportWindow:
    """Window start and end with its buckets."""

    timeframe: Timeframe
    start: datetime
    end: datetime
    buckets: list[Bucket]

    def contains(self, dt: datetime | None) -> bool:
        return dt is not None and self.start <= dt <= self.end

    def bucket_of(self, dt: datetime) -> Bucket | None:
        if not self.contains(dt):
            return None
        for bucket in self.buckets:
            if bucket.contains(dt):
                return bucket
        return None


def get_day_bucket(dt: datetime) -> str:
    """Day bucket key (e.g., '2025-01-20')."""
    return dt.strftime("%Y-%m-%d")


def get_week_bucket(dt: datetime) -> str:
    """Week bucket key, the date of its Monday (e.g., '2025-01-20')."""
    return get_day_bucket(start_of_week(dt))


def get_month_bucket(dt: datetime) -> str:
    """Month bucket key (e.g., '2025-01')."""
    return dt.strftime("%Y-%m")


def start_of_day(dt: datetime) -> datetime:
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_week(dt: datetime) -> datetime:
    return start_of_day(dt) - timedelta(days=dt.weekday())


def start_of_month(dt: datetime) -> datetime:
    return start_of_day(dt).replace(day=1)


def next_month(dt: datetime) -> datetime:
    if dt.month == 12:  # noqa: PLR2004
        return dt.replace(year=dt.year + 1, month=1)
    return dt.replace(month=dt.month + 1)


def build_window(timeframe: Timeframe, now: datetime | None = None) -> ReportWindow:
    """Build the window ending at ``now`` for a timeframe."""
    now = now or datetime.now(UTC)
    buckets: list[Bucket] = []

    if timeframe is Timeframe.WEEK:
        start = start_of_day(now) - timedelta(days=6)
        day = start
        while day <= now:
            buckets.append(Bucket(get_day_bucket(day), day, day + timedelta(days=1)))
            day += timedelta(days=1)

    elif timeframe is Timeframe.MONTH:
        start = now - timedelta(days=30)
        week = start_of_week(start)
        while week <= now:
            buckets.append(Bucket(get_week_bucket(week), week, week + timedelta(days=7)))
            week += timedelta(days=7)

    else:
        start = now - timedelta(days=365)
        month = start_of_month(start)
        while month <= now:
            following = next_month(month)
            buckets.append(Bucket(get_month_bucket(month), month, following))
            month = following

    return ReportWindow(timeframe=timeframe, start=start, end=now, buckets=buckets)
