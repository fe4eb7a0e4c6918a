"""Parsing and policy checks for user-entered quit dates.

The tracker accepts any instant; the setup and reset screens run these checks
first so users cannot pick a future date or one before the picker's range.
"""

from __future__ import annotations

from datetime import datetime, tzinfo

from nosmoke.timeutil import ensure_aware


MIN_YEAR = 2000

INPUT_FORMATS = (
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d",
)


def parse_quit_date(text: str, tz: tzinfo) -> tuple[datetime | None, list[str]]:
    """Parse local wall-clock input. Returns (value, errors)."""
    s = (text or "").strip()
    if not s:
        return None, ["Quit date is required"]
    for fmt in INPUT_FORMATS:
        try:
            parsed = datetime.strptime(s, fmt)
        except ValueError:
            continue
        return ensure_aware(parsed, tz), []
    try:
        # ISO strings with an explicit offset, e.g. from the JSON API
        parsed = datetime.fromisoformat(s)
    except ValueError:
        return None, [f"Invalid quit date: {s!r} (expected YYYY-MM-DD HH:MM)"]
    return ensure_aware(parsed, tz), []


def validate_quit_date(value: datetime, now: datetime) -> list[str]:
    """Validate a quit date against *now* and return list of errors (empty if valid)."""
    errors = []
    if value > now:
        errors.append("Quit date cannot be in the future")
    if value.astimezone(now.tzinfo).year < MIN_YEAR:
        errors.append(f"Quit date must be in {MIN_YEAR} or later")
    return errors


def read_quit_date(text: str, now: datetime) -> tuple[datetime | None, list[str]]:
    """Parse then validate; the value is None whenever there are errors."""
    value, errors = parse_quit_date(text, now.tzinfo)
    if value is None:
        return None, errors
    errors = validate_quit_date(value, now)
    if errors:
        return None, errors
    return value, []
