"""Clock collaborators: the wall clock and a settable clock for tests."""

from __future__ import annotations

from datetime import datetime, timedelta, tzinfo
from typing import Protocol
from zoneinfo import ZoneInfo

from nosmoke.timeutil import ensure_aware, shift


class Clock(Protocol):
    """Supplies the current instant and the local calendar's timezone."""

    tz: tzinfo

    def now(self) -> datetime: ...


class SystemClock:
    """Reads the real wall clock in a given timezone."""

    def __init__(self, tz: tzinfo | None = None) -> None:
        self.tz = tz or ZoneInfo("UTC")

    def now(self) -> datetime:
        return datetime.now(self.tz)


class FixedClock:
    """A clock that only moves when told to.

    Lets tests simulate "N hours/days ago" without sleeping.
    """

    def __init__(self, instant: datetime, tz: tzinfo | None = None) -> None:
        self.tz = tz or instant.tzinfo or ZoneInfo("UTC")
        self._now = ensure_aware(instant, self.tz)

    def now(self) -> datetime:
        return self._now

    def set(self, instant: datetime) -> None:
        self._now = ensure_aware(instant, self.tz)

    def advance(self, **kwargs: float) -> datetime:
        """Move forward by timedelta(**kwargs) and return the new instant."""
        self._now = shift(self._now, timedelta(**kwargs), self.tz)
        return self._now
