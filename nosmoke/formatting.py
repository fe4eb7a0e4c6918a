"""Display text for the terminal and web front ends."""

from __future__ import annotations

from datetime import datetime

from nosmoke.config import DEFAULT_DATE_FORMAT
from nosmoke.models import ElapsedTime, HealthBenefit, MilestoneProgress
from nosmoke.timeutil import elapsed_between


ENCOURAGEMENT = "Keep going, the first health improvements are almost here!"

BENEFIT_ICONS = {
    "heart": "❤",
    "nose": "❀",
    "lungs": "☁",
    "walk": "★",
}


def format_date(dt: datetime, fmt: str = DEFAULT_DATE_FORMAT) -> str:
    return dt.strftime(fmt)


def format_elapsed(elapsed: ElapsedTime) -> str:
    """'26h 5m 9s' style clock; hours are not folded into days."""
    return f"{elapsed.hours}h {elapsed.minutes}m {elapsed.seconds}s"


def format_days(days: int) -> str:
    return f"{days} day" if days == 1 else f"{days} days"


def format_progress(progress: MilestoneProgress) -> str:
    if progress.unit == "year":
        unit = "year" if progress.target == 1 else "years"
        return f"Next milestone: {progress.target} {unit}"
    return f"Next milestone: {format_days(progress.target)}"


def benefit_lines(benefits: list[HealthBenefit]) -> list[str]:
    """One line per unlocked benefit, or the encouragement line if none yet."""
    if not benefits:
        return [ENCOURAGEMENT]
    return [f"{BENEFIT_ICONS.get(b.icon, '*')} {b.title}" for b in benefits]


def next_check_in_text(next_eligible: datetime | None, now: datetime, fmt: str = DEFAULT_DATE_FORMAT) -> str:
    if next_eligible is None:
        return "Check-in available now"
    seconds = int(elapsed_between(now, next_eligible).total_seconds())
    if seconds <= 0:
        return "Check-in available now"
    minutes, _ = divmod(seconds, 60)
    hours, minutes = divmod(minutes, 60)
    wait = f"{hours}h {minutes}m" if hours else f"{minutes}m"
    return f"Next check-in: {format_date(next_eligible, fmt)} (in {wait})"
