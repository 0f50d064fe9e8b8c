# recalltrial/services/reminder_planner.py
"""
Reminder planning: turn a trial's civil end date into UTC fire times.

The end date is a bare calendar date in the user's zone. It resolves to the
last second of that day as the user experiences it (23:59:59 local), so the
UTC offset depends on the zone rules for that date, DST included. A zone
name that cannot be resolved degrades to UTC instead of failing trial
creation.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Sequence

from recalltrial.config import settings
from recalltrial.models.enums import ReminderType
from recalltrial.utils.dates import UTC, load_zone, parse_civil_date, to_utc_aware

logger = logging.getLogger(__name__)

END_OF_DAY = time(23, 59, 59)


@dataclass(frozen=True)
class PlannedReminder:
    fire_at: datetime
    label: ReminderType


@dataclass(frozen=True)
class PolicyTier:
    """Labels to schedule when at least ``min_time_left`` remains."""

    min_time_left: timedelta
    labels: tuple[ReminderType, ...]


@dataclass(frozen=True)
class ReminderPolicy:
    name: str
    tiers: tuple[PolicyTier, ...]

    def __post_init__(self) -> None:
        if not self.tiers:
            raise ValueError(f"policy {self.name!r} has no tiers")
        bounds = [t.min_time_left for t in self.tiers]
        if bounds != sorted(bounds, reverse=True):
            raise ValueError(f"policy {self.name!r}: tiers must be ordered by min_time_left, largest first")
        if bounds[-1] > timedelta(0):
            raise ValueError(f"policy {self.name!r}: last tier must accept any positive time left")

    def tier_for(self, time_left: timedelta) -> PolicyTier:
        for tier in self.tiers:
            if time_left >= tier.min_time_left:
                return tier
        return self.tiers[-1]


# Tighter windows get closer-to-expiry offsets. Tier bounds are picked so the
# number of surviving reminders never grows while the time left shrinks.
ADAPTIVE_POLICY = ReminderPolicy(
    name="adaptive",
    tiers=(
        PolicyTier(timedelta(hours=96), (ReminderType.THREE_DAYS, ReminderType.ONE_DAY)),
        PolicyTier(timedelta(hours=6), (ReminderType.TWENTY_FOUR_HOURS, ReminderType.THREE_HOURS)),
        PolicyTier(timedelta(0), (ReminderType.ONE_HOUR,)),
    ),
)

FIXED_POLICY = ReminderPolicy(
    name="fixed",
    tiers=(PolicyTier(timedelta(0), (ReminderType.THREE_DAYS, ReminderType.ONE_DAY)),),
)

THREE_TWO_ONE_POLICY = ReminderPolicy(
    name="three_two_one",
    tiers=(
        PolicyTier(
            timedelta(0),
            (ReminderType.THREE_DAYS, ReminderType.TWO_DAYS, ReminderType.ONE_DAY),
        ),
    ),
)

POLICIES: dict[str, ReminderPolicy] = {
    p.name: p for p in (ADAPTIVE_POLICY, FIXED_POLICY, THREE_TWO_ONE_POLICY)
}


def get_policy(name: str | None = None) -> ReminderPolicy:
    key = (name or settings.REMINDER_POLICY).strip().lower()
    try:
        return POLICIES[key]
    except KeyError:
        raise ValueError(f"unknown reminder policy {name!r}") from None


def default_safety_margin() -> timedelta:
    return timedelta(minutes=settings.REMINDER_SAFETY_MARGIN_MINUTES)


def resolve_end_instant(end_date: date | str, timezone: str | None) -> datetime:
    """Last second of ``end_date`` in ``timezone``, as a UTC instant."""
    day = parse_civil_date(end_date)
    zone = load_zone(timezone)
    if zone is None:
        logger.warning("planning_degraded: unknown timezone %r, falling back to UTC", timezone)
        zone = UTC
    # fold=1: when 23:59:59 repeats (fall-back at midnight) take the later one
    local_end = datetime.combine(day, END_OF_DAY, tzinfo=zone).replace(fold=1)
    return local_end.astimezone(UTC)


def compute_reminder_plan(
    end_date: date | str,
    now: datetime,
    timezone: str | None,
    policy: ReminderPolicy | None = None,
    safety_margin: timedelta | None = None,
) -> list[PlannedReminder]:
    """
    Plan reminder fire times for a trial ending on ``end_date``.

    Returns entries ordered by ``fire_at``. An empty list is a valid plan:
    the trial is already over, or every offset falls inside the safety margin.
    """
    policy = policy or get_policy()
    margin = default_safety_margin() if safety_margin is None else safety_margin
    now = to_utc_aware(now)

    end_instant = resolve_end_instant(end_date, timezone)
    time_left = end_instant - now
    if time_left <= timedelta(0):
        return []

    tier = policy.tier_for(time_left)
    earliest = now + margin
    plan = [
        PlannedReminder(fire_at=end_instant - label.offset, label=label)
        for label in tier.labels
    ]
    plan = [p for p in plan if p.fire_at > earliest]
    plan.sort(key=lambda p: p.fire_at)
    return plan


def labels_of(plan: Sequence[PlannedReminder]) -> list[ReminderType]:
    return [p.label for p in plan]
