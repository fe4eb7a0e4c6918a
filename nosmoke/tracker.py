"""Quit tracking and the once-a-day check-in state machine.

QuitTracker owns the quit instant and the check-in history. Every query is a
pure function of that state and a `now` instant (defaulting to the injected
clock); the three mutations persist through the injected key-value store.

Store failures never escape: they are logged and handed back as
PersistenceWarning entries while the in-memory state stays authoritative.
"""

from __future__ import annotations

from datetime import datetime, tzinfo
from typing import Any, Callable

from nosmoke.clock import Clock, SystemClock
from nosmoke.logconfig import get_logger
from nosmoke.milestones import progress_to_milestone, unlocked_health_benefits
from nosmoke.models import (
    CHECK_INS_KEY,
    QUIT_DATE_KEY,
    ElapsedTime,
    HealthBenefit,
    MilestoneProgress,
    MutationResult,
    PersistenceWarning,
    QuitSession,
    TrackerStatus,
)
from nosmoke.store import KeyValueStore
from nosmoke.timeutil import (
    DAY,
    add_calendar_days,
    calendar_days_between,
    elapsed_between,
    ensure_aware,
    parse_timestamp,
    same_local_day,
    shift,
    split_seconds,
    to_timestamp,
)


logger = get_logger(__name__)

Listener = Callable[["QuitTracker"], None]


# ── Session persistence ───────────────────────────────────────


def _failure(operation: str, key: str, exc: Exception) -> PersistenceWarning:
    warning = PersistenceWarning(operation=operation, key=key, message=f"{type(exc).__name__}: {exc}")
    logger.warning("persistence.failed", operation=operation, key=key, error=warning.message)
    return warning


def load_session(store: KeyValueStore, tz: tzinfo) -> tuple[QuitSession | None, list[PersistenceWarning]]:
    """Read a session from *store*. Returns (None, warnings) when there is no usable session."""
    warnings: list[PersistenceWarning] = []
    try:
        raw_quit = store.get(QUIT_DATE_KEY)
    except Exception as e:
        warnings.append(_failure("load", QUIT_DATE_KEY, e))
        return None, warnings

    if parse_timestamp(raw_quit) is None:
        if raw_quit is not None:
            logger.debug("session.invalid_quit_date", value=repr(raw_quit))
        return None, warnings

    try:
        raw_check_ins = store.get(CHECK_INS_KEY)
    except Exception as e:
        warnings.append(_failure("load", CHECK_INS_KEY, e))
        raw_check_ins = None

    if raw_check_ins is not None and not isinstance(raw_check_ins, list):
        warnings.append(PersistenceWarning("load", CHECK_INS_KEY, "Stored check-ins are not a list; ignoring them"))
        logger.warning("persistence.malformed", key=CHECK_INS_KEY, value_type=type(raw_check_ins).__name__)
        raw_check_ins = None

    raw_check_ins = raw_check_ins or []
    session = QuitSession.from_store({QUIT_DATE_KEY: raw_quit, CHECK_INS_KEY: raw_check_ins}, tz)
    if session is None:
        return None, warnings

    dropped = len(raw_check_ins) - len(session.check_ins)
    if dropped:
        warnings.append(PersistenceWarning("load", CHECK_INS_KEY, f"Dropped {dropped} invalid check-in timestamp(s)"))
        logger.warning("persistence.malformed", key=CHECK_INS_KEY, dropped=dropped)
    return session, warnings


def save_session(store: KeyValueStore, session: QuitSession) -> list[PersistenceWarning]:
    """Write both keys of *session*; failures come back as warnings."""
    warnings: list[PersistenceWarning] = []
    for key, value in session.to_store().items():
        try:
            store.put(key, value)
        except Exception as e:
            warnings.append(_failure("save", key, e))
    return warnings


# ── Tracker ───────────────────────────────────────────────────


class QuitTracker:
    """State container for one quit session plus its derived facts."""

    def __init__(
        self,
        store: KeyValueStore,
        clock: Clock | None = None,
        quit_instant: datetime | None = None,
        load_saved: bool = True,
    ) -> None:
        self.store = store
        self.clock = clock or SystemClock()
        self.tz = self.clock.tz
        self.has_session = quit_instant is not None
        self.load_warnings: list[PersistenceWarning] = []
        self._listeners: list[Listener] = []

        start = ensure_aware(quit_instant, self.tz) if quit_instant is not None else self.clock.now()
        self.session = QuitSession(quit_instant=start)
        if load_saved:
            self.restore()

    # ── Persistence ───────────────────────────────────────────

    def restore(self) -> list[PersistenceWarning]:
        """Replace in-memory state with the stored session, if there is one."""
        session, warnings = load_session(self.store, self.tz)
        self.load_warnings = warnings
        if session is not None:
            self.session = session
            self.has_session = True
            logger.info(
                "session.loaded",
                quit_date=session.quit_instant.isoformat(timespec="seconds"),
                check_ins=len(session.check_ins),
            )
        return warnings

    def load_quit_instant(self) -> datetime | None:
        """The stored quit instant, or None when absent or invalid."""
        try:
            ts = parse_timestamp(self.store.get(QUIT_DATE_KEY))
        except Exception as e:
            _failure("load", QUIT_DATE_KEY, e)
            return None
        if ts is None:
            return None
        return datetime.fromtimestamp(ts, self.tz)

    def _put(self, key: str, value: Any) -> list[PersistenceWarning]:
        try:
            self.store.put(key, value)
        except Exception as e:
            return [_failure("save", key, e)]
        return []

    def _save_quit_instant(self) -> list[PersistenceWarning]:
        return self._put(QUIT_DATE_KEY, to_timestamp(self.session.quit_instant))

    def _save_check_ins(self) -> list[PersistenceWarning]:
        return self._put(CHECK_INS_KEY, [to_timestamp(c) for c in self.session.check_ins])

    # ── Observation ───────────────────────────────────────────

    def subscribe(self, listener: Listener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("listener.failed", listener=repr(listener))

    # ── State accessors ───────────────────────────────────────

    @property
    def quit_instant(self) -> datetime:
        return self.session.quit_instant

    @property
    def check_ins(self) -> list[datetime]:
        return list(self.session.check_ins)

    @property
    def last_check_in(self) -> datetime | None:
        return self.session.last_check_in

    def _now(self, now: datetime | None) -> datetime:
        return ensure_aware(now, self.tz) if now is not None else self.clock.now()

    # ── Derived queries ───────────────────────────────────────

    def elapsed_days(self, now: datetime | None = None) -> int:
        """Whole calendar days since the quit instant, never negative."""
        return max(0, calendar_days_between(self.quit_instant, self._now(now), self.tz))

    def elapsed_duration(self, now: datetime | None = None) -> ElapsedTime:
        seconds = elapsed_between(self.quit_instant, self._now(now)).total_seconds()
        return ElapsedTime(*split_seconds(seconds))

    def has_checked_in_today(self, now: datetime | None = None) -> bool:
        now = self._now(now)
        return any(same_local_day(c, now, self.tz) for c in self.session.check_ins)

    def can_check_in(self, now: datetime | None = None) -> bool:
        now = self._now(now)
        if self.has_checked_in_today(now):
            return False
        if elapsed_between(self.quit_instant, now) < DAY:
            return False
        last = self.last_check_in
        if last is not None:
            return elapsed_between(last, now) >= DAY
        return True

    def next_eligible_instant(self, now: datetime | None = None) -> datetime | None:
        """When the next check-in opens, or None if one is allowed right now."""
        now = self._now(now)
        if self.can_check_in(now):
            return None
        if elapsed_between(self.quit_instant, now) < DAY:
            return shift(self.quit_instant, DAY, self.tz)
        last = self.last_check_in
        if last is None:
            return None
        candidate = shift(last, DAY, self.tz)
        if self.has_checked_in_today(now) and same_local_day(candidate, now, self.tz):
            candidate = add_calendar_days(candidate, 1, self.tz)
        return candidate

    def streak_count(self) -> int:
        """Lifetime number of check-ins (not a consecutive-day streak)."""
        return len(self.session.check_ins)

    def progress_to_milestone(self, now: datetime | None = None) -> MilestoneProgress:
        return progress_to_milestone(self.elapsed_days(now))

    def unlocked_health_benefits(self, now: datetime | None = None) -> list[HealthBenefit]:
        return unlocked_health_benefits(self.elapsed_days(now))

    def status(self, now: datetime | None = None) -> TrackerStatus:
        """Every derived fact evaluated at a single instant."""
        now = self._now(now)
        days = self.elapsed_days(now)
        return TrackerStatus(
            now=now,
            quit_instant=self.quit_instant,
            elapsed_days=days,
            elapsed=self.elapsed_duration(now),
            has_checked_in_today=self.has_checked_in_today(now),
            can_check_in=self.can_check_in(now),
            next_eligible=self.next_eligible_instant(now),
            streak_count=self.streak_count(),
            milestone=progress_to_milestone(days),
            benefits=unlocked_health_benefits(days),
            check_ins=self.check_ins,
        )

    # ── Mutations ─────────────────────────────────────────────

    def check_in(self, now: datetime | None = None) -> MutationResult:
        """Record a check-in at *now* if eligible; otherwise a no-op."""
        now = self._now(now)
        if not self.can_check_in(now):
            logger.debug("check_in.rejected", now=now.isoformat(timespec="seconds"))
            return MutationResult(action="check_in", applied=False)

        self.session.check_ins.append(now)
        warnings = self._save_check_ins()
        logger.info("check_in.recorded", at=now.isoformat(timespec="seconds"), total=self.streak_count())
        self._notify()
        return MutationResult(action="check_in", applied=True, warnings=warnings)

    def set_initial_quit_date(self, date: datetime) -> MutationResult:
        """First-time setup. Leaves existing check-ins alone."""
        self.session.quit_instant = ensure_aware(date, self.tz)
        self.has_session = True
        warnings = self._save_quit_instant()
        logger.info("quit_date.set", quit_date=self.quit_instant.isoformat(timespec="seconds"))
        self._notify()
        return MutationResult(action="set_quit_date", applied=True, warnings=warnings)

    def reset(self, new_date: datetime) -> MutationResult:
        """Start over from *new_date* with no check-ins."""
        previous = self.streak_count()
        self.session = QuitSession(quit_instant=ensure_aware(new_date, self.tz))
        self.has_session = True
        warnings = save_session(self.store, self.session)
        logger.info(
            "session.reset",
            quit_date=self.quit_instant.isoformat(timespec="seconds"),
            cleared_check_ins=previous,
        )
        self._notify()
        return MutationResult(action="reset", applied=True, warnings=warnings)
