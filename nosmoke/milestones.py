"""Milestone progress and the health-benefit timeline.

Both are pure functions of the elapsed calendar-day count.
"""

from __future__ import annotations

import math

from nosmoke.models import HealthBenefit, MilestoneProgress


MILESTONE_DAYS: tuple[int, ...] = (1, 7, 30, 90, 180, 365)

DAYS_PER_YEAR = 365

HEALTH_BENEFITS: tuple[HealthBenefit, ...] = (
    HealthBenefit(1, "circulation", "Blood pressure and heart rate return to normal", "heart"),
    HealthBenefit(2, "smell-taste", "Sense of smell and taste begin to recover", "nose"),
    HealthBenefit(14, "lung-function", "Lung function starts to improve", "lungs"),
    HealthBenefit(30, "stamina", "Less shortness of breath, more energy", "walk"),
)


def next_milestone(days: int) -> int:
    """Smallest milestone strictly above *days*, or the last one once all are passed."""
    for m in MILESTONE_DAYS:
        if m > days:
            return m
    return MILESTONE_DAYS[-1]


def progress_to_milestone(days: int) -> MilestoneProgress:
    """Progress toward the next milestone.

    Below a year the target is the next day milestone. From 365 days on the
    scale switches to whole years; the fraction restarts at 0.0 on every
    exact year boundary (365, 730, ...), where the target is that same year.
    """
    days = max(0, days)
    if days < DAYS_PER_YEAR:
        target = next_milestone(days)
        return MilestoneProgress(days=days, target=target, unit="day", progress=min(1.0, days / target))

    years = days / float(DAYS_PER_YEAR)
    lower, upper = math.floor(years), math.ceil(years)
    progress = 0.0 if upper == lower else (years - lower) / (upper - lower)
    return MilestoneProgress(days=days, target=upper, unit="year", progress=progress)


def unlocked_health_benefits(days: int) -> list[HealthBenefit]:
    """Benefits whose day threshold has been reached, in threshold order."""
    return [b for b in HEALTH_BENEFITS if b.days <= days]
