"""
Week bucketing strategies for SDR meeting bonuses.

A strategy maps a meeting instant to a string key and a key to a display
label. Keys sort chronologically as plain strings, so callers can emit
buckets in a stable order with ``sorted()``.

- MondayWeekBucketing (default): key is the date of the Monday that starts
  the week, e.g. "2025-11-17"; label is "November Week 3".
- IsoWeekBucketing: key is the ISO-8601 week, e.g. "2025-W47". The ISO year
  is part of the key so late-December and early-January meetings of
  different years never share a bucket.
"""

import calendar
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Optional, Protocol


class WeekBucketing(Protocol):
    name: str

    def bucket_key(self, instant: datetime) -> str:
        ...

    def label(self, key: str) -> str:
        ...


def _local_date(instant: datetime, tz: tzinfo) -> date:
    # Naive timestamps are UTC (HubSpot returns epoch milliseconds)
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(tz).date()


class MondayWeekBucketing:
    name = "monday"

    def __init__(self, tz: Optional[tzinfo] = None):
        self.tz = tz or timezone.utc

    def bucket_key(self, instant: datetime) -> str:
        day = _local_date(instant, self.tz)
        monday = day - timedelta(days=day.weekday())
        return monday.isoformat()

    def label(self, key: str) -> str:
        monday = date.fromisoformat(key)
        ordinal = (monday.day - 1) // 7 + 1
        return f"{calendar.month_name[monday.month]} Week {ordinal}"


class IsoWeekBucketing:
    name = "iso"

    def __init__(self, tz: Optional[tzinfo] = None):
        self.tz = tz or timezone.utc

    def bucket_key(self, instant: datetime) -> str:
        iso_year, iso_week, _ = _local_date(instant, self.tz).isocalendar()
        return f"{iso_year}-W{iso_week:02d}"

    def label(self, key: str) -> str:
        year, week = key.split("-W")
        return f"Week {int(week)}, {year}"


BUCKETING_STRATEGIES = {
    MondayWeekBucketing.name: MondayWeekBucketing,
    IsoWeekBucketing.name: IsoWeekBucketing,
}


def get_bucketing(name: str = "monday", tz: Optional[tzinfo] = None) -> WeekBucketing:
    """Look up a strategy by its configured name."""
    try:
        strategy = BUCKETING_STRATEGIES[name.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown week bucketing '{name}', expected one of {sorted(BUCKETING_STRATEGIES)}"
        ) from None
    return strategy(tz)
