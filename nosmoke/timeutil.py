"""Calendar and epoch-timestamp helpers.

Day boundaries are always taken from the local calendar (a tzinfo), never from
rolling 24-hour windows.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta, tzinfo
from typing import Any


DAY = timedelta(hours=24)


def ensure_aware(dt: datetime, tz: tzinfo) -> datetime:
    """Return *dt* expressed in *tz*. Naive datetimes are read as local wall time in *tz*."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz)
    return dt.astimezone(tz)


def to_timestamp(dt: datetime) -> float:
    """Epoch seconds for an aware datetime."""
    return dt.timestamp()


def from_timestamp(ts: float, tz: tzinfo) -> datetime:
    return datetime.fromtimestamp(ts, tz)


def parse_timestamp(value: Any) -> float | None:
    """Coerce a stored value to positive finite epoch seconds, or None.

    Zero, negative, non-finite, boolean and unparseable values all mean "absent".
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        ts = float(value)
    elif isinstance(value, str):
        try:
            ts = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(ts) or ts <= 0:
        return None
    return ts


def elapsed_between(start: datetime, end: datetime) -> timedelta:
    """Absolute time from *start* to *end*.

    Subtracting two datetimes that share a tzinfo gives wall-clock distance,
    which is off by an hour across a DST change. Go through epoch seconds instead.
    """
    return timedelta(seconds=end.timestamp() - start.timestamp())


def shift(dt: datetime, delta: timedelta, tz: tzinfo) -> datetime:
    """The instant *delta* of real time after *dt*, expressed in *tz*."""
    return datetime.fromtimestamp(dt.timestamp() + delta.total_seconds(), tz)


def _wall(dt: datetime, tz: tzinfo) -> datetime:
    return dt.astimezone(tz).replace(tzinfo=None)


def calendar_days_between(start: datetime, end: datetime, tz: tzinfo) -> int:
    """Whole calendar days from *start* to *end* in *tz*.

    Counts the days d for which start's wall-clock time plus d days has been
    reached, so 23:00 -> 01:00 next day is 0 days and a 23-hour DST day still
    counts as one. Negative when *end* precedes *start*.
    """
    s, e = _wall(start, tz), _wall(end, tz)
    days = (e.date() - s.date()).days
    if days > 0 and s + timedelta(days=days) > e:
        days -= 1
    elif days < 0 and s + timedelta(days=days) < e:
        days += 1
    return days


def same_local_day(a: datetime, b: datetime, tz: tzinfo) -> bool:
    return a.astimezone(tz).date() == b.astimezone(tz).date()


def add_calendar_days(dt: datetime, days: int, tz: tzinfo) -> datetime:
    """Same wall-clock time *days* calendar days later, in *tz*.

    A wall time skipped by a DST jump resolves to the instant just past the
    gap; a repeated wall time resolves to its first occurrence.
    """
    wall = (_wall(dt, tz) + timedelta(days=days)).replace(tzinfo=tz, fold=0)
    return from_timestamp(wall.timestamp(), tz)


def split_seconds(total_seconds: float) -> tuple[int, int, int]:
    """Truncate to whole seconds and split into (hours, minutes, seconds); negatives clamp to zero."""
    whole = max(0, int(total_seconds))
    hours, rest = divmod(whole, 3600)
    minutes, seconds = divmod(rest, 60)
    return hours, minutes, seconds
