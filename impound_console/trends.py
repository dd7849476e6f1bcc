"""
Monthly trend counts for the admin dashboard.
"""
import calendar
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from pydantic import BaseModel

TREND_MONTHS = 6


class MonthBucket(BaseModel):
    label: str
    year: int
    month: int
    count: int = 0


def _parse_timestamp(value) -> Optional[datetime]:
    if isinstance(value, datetime):
        ts = value
    elif isinstance(value, str) and value.strip():
        try:
            ts = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
        except ValueError:
            return None
    else:
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def _month_keys(now: datetime, months: int) -> List[tuple]:
    year, month = now.year, now.month
    keys = []
    for _ in range(months):
        keys.append((year, month))
        month -= 1
        if month == 0:
            month = 12
            year -= 1
    return list(reversed(keys))


def monthly_counts(timestamps: Iterable, now: Optional[datetime] = None,
                   months: int = TREND_MONTHS) -> List[MonthBucket]:
    """Count timestamps per calendar month, current month last.

    Values that cannot be parsed and values outside the window are ignored.
    """
    now = now or datetime.now(timezone.utc)
    buckets = [
        MonthBucket(label=calendar.month_abbr[m], year=y, month=m)
        for y, m in _month_keys(now, months)
    ]
    index = {(b.year, b.month): b for b in buckets}
    for value in timestamps:
        ts = _parse_timestamp(value)
        if ts is None:
            continue
        bucket = index.get((ts.year, ts.month))
        if bucket is not None:
            bucket.count += 1
    return buckets


def growth(counts: List[int]) -> int:
    """Percent change of the last value over the one before it."""
    if len(counts) < 2:
        return 0
    prev, curr = counts[-2], counts[-1]
    if prev == 0:
        return 100 if curr > 0 else 0
    return round(((curr - prev) / prev) * 100)
