"""Typed dataclasses for the NoSmoke Days data model.

QuitSession maps to the key-value store through from_store/to_store.
Timestamps are stored as epoch seconds (floats) under camelCase keys.
Everything else here is a value object returned by tracker queries.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from typing import Any

from nosmoke.timeutil import from_timestamp, parse_timestamp, to_timestamp


QUIT_DATE_KEY = "quitDate"
CHECK_INS_KEY = "checkInDates"


# ── Session ───────────────────────────────────────────────────


@dataclass
class QuitSession:
    quit_instant: datetime
    check_ins: list[datetime] = field(default_factory=list)

    @classmethod
    def from_store(cls, d: dict[str, Any], tz: tzinfo) -> QuitSession | None:
        """Build a session from stored values; None when the quit date is absent or invalid.

        Invalid check-in entries are skipped and the rest sorted oldest first.
        """
        if not d or not isinstance(d, dict):
            return None
        ts = parse_timestamp(d.get(QUIT_DATE_KEY))
        if ts is None:
            return None
        raw = d.get(CHECK_INS_KEY)
        stamps = [parse_timestamp(v) for v in raw] if isinstance(raw, list) else []
        check_ins = sorted(from_timestamp(s, tz) for s in stamps if s is not None)
        return cls(quit_instant=from_timestamp(ts, tz), check_ins=check_ins)

    def to_store(self) -> dict[str, Any]:
        return {
            QUIT_DATE_KEY: to_timestamp(self.quit_instant),
            CHECK_INS_KEY: [to_timestamp(c) for c in self.check_ins],
        }

    @property
    def last_check_in(self) -> datetime | None:
        return self.check_ins[-1] if self.check_ins else None


# ── Derived values ────────────────────────────────────────────


@dataclass(frozen=True)
class ElapsedTime:
    hours: int = 0
    minutes: int = 0
    seconds: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"hours": self.hours, "minutes": self.minutes, "seconds": self.seconds}


@dataclass(frozen=True)
class MilestoneProgress:
    days: int
    target: int
    unit: str  # day, year
    progress: float

    @property
    def target_days(self) -> int:
        return self.target * 365 if self.unit == "year" else self.target

    def to_dict(self) -> dict[str, Any]:
        return {
            "days": self.days,
            "target": self.target,
            "unit": self.unit,
            "targetDays": self.target_days,
            "progress": self.progress,
        }


@dataclass(frozen=True)
class HealthBenefit:
    days: int
    id: str
    title: str
    icon: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"days": self.days, "id": self.id, "title": self.title, "icon": self.icon}


# ── Persistence feedback ──────────────────────────────────────


@dataclass
class PersistenceWarning:
    operation: str  # save, load
    key: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"operation": self.operation, "key": self.key, "message": self.message}


@dataclass
class MutationResult:
    action: str  # check_in, set_quit_date, reset
    applied: bool
    warnings: list[PersistenceWarning] = field(default_factory=list)

    @property
    def persisted(self) -> bool:
        return self.applied and not self.warnings

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action,
            "applied": self.applied,
            "persisted": self.persisted,
            "warnings": [w.to_dict() for w in self.warnings],
        }


# ── Snapshot ──────────────────────────────────────────────────


@dataclass
class TrackerStatus:
    now: datetime
    quit_instant: datetime
    elapsed_days: int
    elapsed: ElapsedTime
    has_checked_in_today: bool
    can_check_in: bool
    next_eligible: datetime | None
    streak_count: int
    milestone: MilestoneProgress
    benefits: list[HealthBenefit] = field(default_factory=list)
    check_ins: list[datetime] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "now": self.now.isoformat(timespec="seconds"),
            "quitDate": self.quit_instant.isoformat(timespec="seconds"),
            "elapsedDays": self.elapsed_days,
            "elapsed": self.elapsed.to_dict(),
            "hasCheckedInToday": self.has_checked_in_today,
            "canCheckIn": self.can_check_in,
            "nextEligible": self.next_eligible.isoformat(timespec="seconds") if self.next_eligible else None,
            "streakCount": self.streak_count,
            "milestone": self.milestone.to_dict(),
            "benefits": [b.to_dict() for b in self.benefits],
            "checkIns": [c.isoformat(timespec="seconds") for c in self.check_ins],
        }
