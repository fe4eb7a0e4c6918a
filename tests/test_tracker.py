"""Tests for nosmoke/tracker.py — elapsed time, check-in eligibility, mutations."""

from datetime import datetime, timedelta, timezone

import pytest
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from conftest import NOW, FailingStore
from nosmoke.clock import FixedClock
from nosmoke.models import CHECK_INS_KEY, QUIT_DATE_KEY, ElapsedTime
from nosmoke.store import MemoryStore
from nosmoke.tracker import QuitTracker


def make_tracker(quit_instant, check_ins=(), clock=None, store=None):
    store = store if store is not None else MemoryStore()
    tracker = QuitTracker(store, clock=clock or FixedClock(NOW), quit_instant=quit_instant, load_saved=False)
    tracker.session.check_ins.extend(check_ins)
    return tracker


def new_york():
    try:
        return ZoneInfo("America/New_York")
    except ZoneInfoNotFoundError:
        pytest.skip("tz database not available")


# ── Scenarios ─────────────────────────────────────────────────


def test_two_hours_after_quitting():
    tracker = make_tracker(NOW - timedelta(hours=2))
    assert tracker.elapsed_days(NOW) == 0
    assert tracker.can_check_in(NOW) is False
    assert tracker.elapsed_duration(NOW) == ElapsedTime(2, 0, 0)
    assert tracker.next_eligible_instant(NOW) == NOW + timedelta(hours=22)


def test_first_check_in_after_a_day():
    tracker = make_tracker(NOW - timedelta(hours=25))
    assert tracker.can_check_in(NOW) is True

    result = tracker.check_in(NOW)
    assert result.applied is True
    assert result.persisted is True
    assert len(tracker.check_ins) == 1
    assert tracker.has_checked_in_today(NOW) is True
    assert tracker.can_check_in(NOW) is False


def test_eight_days_progress():
    tracker = make_tracker(NOW - timedelta(days=8))
    assert tracker.elapsed_days(NOW) == 8
    progress = tracker.progress_to_milestone(NOW)
    assert progress.target == 30
    assert progress.unit == "day"
    assert progress.progress == pytest.approx(8 / 30)


def test_four_hundred_days_uses_years():
    tracker = make_tracker(NOW - timedelta(days=400))
    assert tracker.elapsed_days(NOW) == 400
    progress = tracker.progress_to_milestone(NOW)
    assert progress.unit == "year"
    assert progress.target == 2
    assert progress.progress == pytest.approx(400 / 365 - 1)


def test_check_in_allowed_thirty_hours_after_last():
    tracker = make_tracker(NOW - timedelta(hours=50), check_ins=[NOW - timedelta(hours=30)])
    assert tracker.has_checked_in_today(NOW) is False
    assert tracker.can_check_in(NOW) is True
    assert tracker.next_eligible_instant(NOW) is None


# ── Elapsed time ──────────────────────────────────────────────


def test_elapsed_days_zero_at_quit_instant():
    tracker = make_tracker(NOW)
    assert tracker.elapsed_days(NOW) == 0
    assert tracker.elapsed_duration(NOW) == ElapsedTime(0, 0, 0)


def test_elapsed_days_never_negative_for_future_quit():
    tracker = make_tracker(NOW + timedelta(days=3))
    assert tracker.elapsed_days(NOW) == 0
    assert tracker.elapsed_duration(NOW) == ElapsedTime(0, 0, 0)


def test_elapsed_days_respects_calendar_not_midnight():
    # 23:00 -> 01:00 next day is a new date but not a full day
    tracker = make_tracker(datetime(2026, 3, 9, 23, 0, tzinfo=timezone.utc))
    assert tracker.elapsed_days(datetime(2026, 3, 10, 1, 0, tzinfo=timezone.utc)) == 0
    assert tracker.elapsed_days(datetime(2026, 3, 10, 22, 59, tzinfo=timezone.utc)) == 0
    assert tracker.elapsed_days(datetime(2026, 3, 10, 23, 0, tzinfo=timezone.utc)) == 1


def test_elapsed_days_across_short_dst_day():
    ny = new_york()
    quit_at = datetime(2026, 3, 7, 12, 0, tzinfo=ny)
    now = datetime(2026, 3, 8, 12, 0, tzinfo=ny)  # only 23h later
    tracker = make_tracker(quit_at, clock=FixedClock(now, ny))
    assert now.timestamp() - quit_at.timestamp() == 23 * 3600
    assert tracker.elapsed_days(now) == 1


def test_elapsed_duration_hours_exceed_a_day():
    tracker = make_tracker(NOW - timedelta(hours=26, minutes=5, seconds=9, milliseconds=900))
    assert tracker.elapsed_duration(NOW) == ElapsedTime(26, 5, 9)


def test_queries_default_to_clock(clock):
    tracker = make_tracker(NOW - timedelta(hours=2), clock=clock)
    assert tracker.elapsed_duration() == ElapsedTime(2, 0, 0)
    clock.advance(hours=23)
    assert tracker.elapsed_days() == 1
    assert tracker.can_check_in() is True


# ── Eligibility ───────────────────────────────────────────────


def test_checked_in_today_blocks_check_in_all_day():
    tracker = make_tracker(NOW - timedelta(days=5))
    tracker.check_in(datetime(2026, 3, 10, 0, 5, tzinfo=timezone.utc))
    for hour in range(1, 24):
        now = datetime(2026, 3, 10, hour, 30, tzinfo=timezone.utc)
        assert tracker.has_checked_in_today(now) is True
        assert tracker.can_check_in(now) is False


def test_yesterday_late_check_in_waits_full_window():
    tracker = make_tracker(NOW - timedelta(days=5))
    last = datetime(2026, 3, 9, 23, 30, tzinfo=timezone.utc)
    tracker.session.check_ins.append(last)
    now = datetime(2026, 3, 10, 0, 30, tzinfo=timezone.utc)

    assert tracker.has_checked_in_today(now) is False
    assert tracker.can_check_in(now) is False
    assert tracker.next_eligible_instant(now) == last + timedelta(hours=24)
    assert tracker.can_check_in(last + timedelta(hours=24)) is True


def test_next_eligible_after_checking_in_today():
    tracker = make_tracker(NOW - timedelta(days=5))
    tracker.check_in(NOW)
    assert tracker.next_eligible_instant(NOW + timedelta(hours=3)) == NOW + timedelta(hours=24)


def test_next_eligible_moves_to_tomorrow_on_long_dst_day():
    ny = new_york()
    # 2026-11-01 has 25 hours in New York
    last = datetime(2026, 11, 1, 0, 10, tzinfo=ny)
    now = datetime(2026, 11, 1, 12, 0, tzinfo=ny)
    tracker = make_tracker(now - timedelta(days=7), check_ins=[last], clock=FixedClock(now, ny))

    assert datetime.fromtimestamp(last.timestamp() + 24 * 3600, ny).date() == now.date()
    assert tracker.can_check_in(now) is False
    assert tracker.next_eligible_instant(now) == datetime(2026, 11, 2, 23, 10, tzinfo=ny)


def test_no_check_in_within_first_day_even_across_midnight():
    quit_at = datetime(2026, 3, 9, 20, 0, tzinfo=timezone.utc)
    tracker = make_tracker(quit_at)
    now = datetime(2026, 3, 10, 19, 59, tzinfo=timezone.utc)
    assert tracker.can_check_in(now) is False
    assert tracker.next_eligible_instant(now) == quit_at + timedelta(hours=24)
    assert tracker.can_check_in(quit_at + timedelta(hours=24)) is True


# ── Mutations ─────────────────────────────────────────────────


def test_check_in_is_idempotent_within_a_day():
    tracker = make_tracker(NOW - timedelta(days=2))
    first = tracker.check_in(NOW)
    second = tracker.check_in(NOW)
    third = tracker.check_in(NOW + timedelta(hours=6))
    assert first.applied is True
    assert second.applied is False
    assert third.applied is False
    assert tracker.streak_count() == 1


def test_rejected_check_in_does_not_write(store):
    tracker = make_tracker(NOW - timedelta(hours=2), store=store)
    result = tracker.check_in(NOW)
    assert result.applied is False
    assert result.persisted is False
    assert store.data == {}


def test_check_ins_over_several_days():
    tracker = make_tracker(NOW - timedelta(days=10))
    for day in range(4):
        assert tracker.check_in(NOW + timedelta(days=day)).applied is True
    assert tracker.streak_count() == 4
    assert tracker.check_ins == sorted(tracker.check_ins)


def test_check_in_persists_timestamps(store):
    tracker = make_tracker(NOW - timedelta(days=2), store=store)
    tracker.check_in(NOW)
    assert store.data[CHECK_INS_KEY] == [NOW.timestamp()]


def test_set_initial_quit_date_keeps_check_ins(store):
    tracker = make_tracker(NOW - timedelta(days=3), store=store)
    tracker.check_in(NOW)
    new_quit = NOW - timedelta(days=10)

    result = tracker.set_initial_quit_date(new_quit)

    assert result.applied is True
    assert tracker.quit_instant == new_quit
    assert tracker.streak_count() == 1
    assert tracker.has_session is True
    assert store.data[QUIT_DATE_KEY] == new_quit.timestamp()


def test_reset_clears_everything(store):
    tracker = make_tracker(NOW - timedelta(days=30), store=store)
    tracker.check_in(NOW - timedelta(days=2))
    tracker.check_in(NOW)
    new_quit = NOW - timedelta(hours=1)

    result = tracker.reset(new_quit)

    assert result.persisted is True
    assert tracker.check_ins == []
    assert tracker.quit_instant == new_quit
    assert store.data[CHECK_INS_KEY] == []
    assert store.data[QUIT_DATE_KEY] == new_quit.timestamp()


def test_reset_accepts_future_date():
    tracker = make_tracker(NOW - timedelta(days=3))
    future = NOW + timedelta(days=1)
    tracker.reset(future)
    assert tracker.quit_instant == future
    assert tracker.elapsed_days(NOW) == 0
    assert tracker.can_check_in(NOW) is False


def test_naive_input_read_as_local_time():
    ny = new_york()
    now = datetime(2026, 6, 1, 12, 0, tzinfo=ny)
    tracker = make_tracker(now - timedelta(days=1), clock=FixedClock(now, ny))
    tracker.reset(datetime(2026, 5, 30, 8, 0))
    assert tracker.quit_instant == datetime(2026, 5, 30, 8, 0, tzinfo=ny)


# ── Persistence failures ──────────────────────────────────────


def test_failed_save_keeps_memory_state():
    store = FailingStore()
    tracker = make_tracker(NOW - timedelta(days=2), store=store)

    result = tracker.check_in(NOW)

    assert result.applied is True
    assert result.persisted is False
    assert len(result.warnings) == 1
    assert result.warnings[0].operation == "save"
    assert result.warnings[0].key == CHECK_INS_KEY
    assert tracker.streak_count() == 1
    assert tracker.has_checked_in_today(NOW) is True


def test_failed_reset_reports_both_keys():
    tracker = make_tracker(NOW - timedelta(days=2), store=FailingStore())
    result = tracker.reset(NOW)
    assert result.applied is True
    assert {w.key for w in result.warnings} == {QUIT_DATE_KEY, CHECK_INS_KEY}
    assert tracker.quit_instant == NOW


def test_failed_load_means_no_session():
    store = FailingStore({QUIT_DATE_KEY: NOW.timestamp()}, fail_get=True)
    tracker = QuitTracker(store, clock=FixedClock(NOW))
    assert tracker.has_session is False
    assert len(tracker.load_warnings) == 1
    assert tracker.load_warnings[0].operation == "load"
    assert tracker.load_quit_instant() is None


# ── Loading ───────────────────────────────────────────────────


def test_loads_saved_session(store):
    quit_at = NOW - timedelta(days=4, hours=3)
    first = make_tracker(quit_at, store=store)
    first.set_initial_quit_date(quit_at)
    first.check_in(NOW - timedelta(days=2))
    first.check_in(NOW)

    second = QuitTracker(store, clock=FixedClock(NOW))

    assert second.has_session is True
    assert abs((second.quit_instant - quit_at).total_seconds()) < 0.001
    assert second.check_ins == first.check_ins
    assert second.load_warnings == []


def test_no_saved_session_starts_at_now(store):
    tracker = QuitTracker(store, clock=FixedClock(NOW))
    assert tracker.has_session is False
    assert tracker.quit_instant == NOW
    assert tracker.check_ins == []


@pytest.mark.parametrize("value", [0, -5, 0.0, "abc", True, float("nan"), float("inf"), {"x": 1}])
def test_invalid_quit_timestamp_treated_as_absent(value):
    store = MemoryStore({QUIT_DATE_KEY: value, CHECK_INS_KEY: [NOW.timestamp()]})
    tracker = QuitTracker(store, clock=FixedClock(NOW))
    assert tracker.has_session is False
    assert tracker.check_ins == []
    assert tracker.load_warnings == []
    assert tracker.load_quit_instant() is None


def test_numeric_string_timestamp_is_accepted():
    ts = (NOW - timedelta(days=1)).timestamp()
    tracker = QuitTracker(MemoryStore({QUIT_DATE_KEY: str(ts)}), clock=FixedClock(NOW))
    assert tracker.has_session is True
    assert tracker.load_quit_instant() == NOW - timedelta(days=1)


def test_malformed_check_in_list_is_ignored():
    store = MemoryStore({QUIT_DATE_KEY: (NOW - timedelta(days=3)).timestamp(), CHECK_INS_KEY: "oops"})
    tracker = QuitTracker(store, clock=FixedClock(NOW))
    assert tracker.has_session is True
    assert tracker.check_ins == []
    assert len(tracker.load_warnings) == 1


def test_invalid_check_in_entries_dropped_and_sorted():
    a = (NOW - timedelta(days=2)).timestamp()
    b = (NOW - timedelta(days=1)).timestamp()
    store = MemoryStore({QUIT_DATE_KEY: (NOW - timedelta(days=3)).timestamp(), CHECK_INS_KEY: [b, "x", 0, a]})
    tracker = QuitTracker(store, clock=FixedClock(NOW))
    assert [c.timestamp() for c in tracker.check_ins] == [a, b]
    assert len(tracker.load_warnings) == 1
    assert "2" in tracker.load_warnings[0].message


# ── Observation & status ──────────────────────────────────────


def test_listeners_notified_on_applied_mutations():
    tracker = make_tracker(NOW - timedelta(hours=2))
    calls = []
    tracker.subscribe(lambda t: calls.append(t.streak_count()))

    tracker.check_in(NOW)  # too early, no notification
    tracker.reset(NOW - timedelta(days=2))
    tracker.check_in(NOW)

    assert calls == [0, 1]


def test_failing_listener_does_not_break_mutation():
    tracker = make_tracker(NOW - timedelta(days=2))

    def boom(_tracker):
        raise RuntimeError("listener bug")

    tracker.subscribe(boom)
    assert tracker.check_in(NOW).applied is True
    tracker.unsubscribe(boom)
    assert tracker._listeners == []


def test_status_snapshot():
    tracker = make_tracker(NOW - timedelta(days=15))
    tracker.check_in(NOW)
    st = tracker.status(NOW)

    assert st.elapsed_days == 15
    assert st.has_checked_in_today is True
    assert st.can_check_in is False
    assert st.next_eligible == NOW + timedelta(hours=24)
    assert st.streak_count == 1
    assert st.milestone.target == 30
    assert [b.id for b in st.benefits] == ["circulation", "smell-taste", "lung-function"]

    d = st.to_dict()
    assert d["elapsedDays"] == 15
    assert d["canCheckIn"] is False
    assert d["milestone"]["target"] == 30
    assert len(d["checkIns"]) == 1
