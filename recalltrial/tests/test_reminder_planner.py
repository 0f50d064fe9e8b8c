from __future__ import annotations

from datetime import date, timedelta

import pytest

from recalltrial.models.enums import ReminderType
from recalltrial.services.reminder_planner import (
    ADAPTIVE_POLICY,
    FIXED_POLICY,
    THREE_TWO_ONE_POLICY,
    PolicyTier,
    ReminderPolicy,
    compute_reminder_plan,
    get_policy,
    labels_of,
    resolve_end_instant,
)

from conftest import utc

MARGIN = timedelta(minutes=5)


def plan(end, now, tz="UTC", policy=ADAPTIVE_POLICY, margin=MARGIN):
    return compute_reminder_plan(end, now, tz, policy=policy, safety_margin=margin)


def test_long_window_gets_three_day_and_one_day_reminders():
    result = plan("2025-06-10", utc(2025, 6, 1))

    end = utc(2025, 6, 10, 23, 59, 59)
    assert [p.fire_at for p in result] == [end - timedelta(hours=72), end - timedelta(hours=24)]
    assert labels_of(result) == [ReminderType.THREE_DAYS, ReminderType.ONE_DAY]


def test_short_window_drops_entries_inside_safety_margin():
    now = utc(2025, 6, 1, 23, 58)
    result = plan("2025-06-02", now)

    # the 24h entry would fire 1m59s from now, inside the 5 minute margin
    assert labels_of(result) == [ReminderType.THREE_HOURS]
    assert result[0].fire_at == utc(2025, 6, 2, 20, 59, 59)
    assert all(p.fire_at > now + MARGIN for p in result)


def test_past_end_date_gives_empty_plan():
    assert plan("2025-05-01", utc(2025, 6, 1)) == []


def test_end_instant_already_reached_gives_empty_plan():
    assert plan(date(2025, 6, 10), utc(2025, 6, 10, 23, 59, 59)) == []


def test_last_hour_tier():
    result = plan("2025-06-10", utc(2025, 6, 10, 21, 0))
    assert labels_of(result) == [ReminderType.ONE_HOUR]
    assert result[0].fire_at == utc(2025, 6, 10, 22, 59, 59)


def test_end_of_day_follows_local_zone_across_dst():
    # New York: EST (UTC-5) in January, EDT (UTC-4) in July
    assert resolve_end_instant("2025-01-15", "America/New_York") == utc(2025, 1, 16, 4, 59, 59)
    assert resolve_end_instant("2025-07-15", "America/New_York") == utc(2025, 7, 16, 3, 59, 59)


def test_offsets_are_absolute_durations_across_dst_change():
    # DST starts 2025-03-09 in New York; the 72h reminder is still 72 real hours earlier
    result = plan("2025-03-10", utc(2025, 3, 1), tz="America/New_York")
    end = resolve_end_instant("2025-03-10", "America/New_York")
    assert [end - p.fire_at for p in result] == [timedelta(hours=72), timedelta(hours=24)]


def test_end_of_day_repeated_by_midnight_fall_back():
    # Santiago leaves DST at 2025-04-06 00:00 -03, so 23:59:59 on Apr 5 happens twice;
    # the day ends at the second one, in -04
    assert resolve_end_instant("2025-04-05", "America/Santiago") == utc(2025, 4, 6, 3, 59, 59)


def test_fractional_offset_zone():
    assert resolve_end_instant("2025-06-10", "Asia/Kolkata") == utc(2025, 6, 10, 18, 29, 59)


@pytest.mark.parametrize("tz", ["Not/AZone", "", None, "../etc/passwd"])
def test_unknown_zone_falls_back_to_utc(tz, caplog):
    result = plan("2025-06-10", utc(2025, 6, 1), tz=tz)
    assert result == plan("2025-06-10", utc(2025, 6, 1), tz="UTC")
    assert "planning_degraded" in caplog.text


def test_every_entry_is_after_margin_and_before_end():
    end = resolve_end_instant("2025-06-10", "Europe/Berlin")
    now = utc(2025, 6, 1)
    while now < end + timedelta(hours=1):
        result = plan("2025-06-10", now, tz="Europe/Berlin")
        for p in result:
            assert now + MARGIN < p.fire_at <= end
        assert [p.fire_at for p in result] == sorted(p.fire_at for p in result)
        now += timedelta(minutes=17)


def test_plan_size_never_grows_as_time_runs_out():
    end = resolve_end_instant("2025-06-10", "UTC")
    now = utc(2025, 6, 1)
    sizes = []
    while now < end:
        sizes.append(len(plan("2025-06-10", now)))
        now += timedelta(minutes=10)
    assert sizes == sorted(sizes, reverse=True)


def test_label_maps_back_to_offset():
    end = resolve_end_instant("2025-06-10", "Asia/Qatar")
    for policy in (ADAPTIVE_POLICY, FIXED_POLICY, THREE_TWO_ONE_POLICY):
        for p in plan("2025-06-10", utc(2025, 6, 1), tz="Asia/Qatar", policy=policy):
            assert end - p.fire_at == p.label.offset


def test_fixed_and_three_two_one_policies():
    now = utc(2025, 6, 1)
    assert labels_of(plan("2025-06-10", now, policy=FIXED_POLICY)) == [
        ReminderType.THREE_DAYS,
        ReminderType.ONE_DAY,
    ]
    assert labels_of(plan("2025-06-10", now, policy=THREE_TWO_ONE_POLICY)) == [
        ReminderType.THREE_DAYS,
        ReminderType.TWO_DAYS,
        ReminderType.ONE_DAY,
    ]
    # fixed policy has no short-window fallback
    assert plan("2025-06-10", utc(2025, 6, 10, 12), policy=FIXED_POLICY) == []


def test_naive_now_is_taken_as_utc():
    aware = plan("2025-06-10", utc(2025, 6, 1))
    naive = plan("2025-06-10", utc(2025, 6, 1).replace(tzinfo=None))
    assert aware == naive


def test_get_policy():
    assert get_policy("adaptive") is ADAPTIVE_POLICY
    assert get_policy(" Three_Two_One ") is THREE_TWO_ONE_POLICY
    with pytest.raises(ValueError):
        get_policy("weekly")


def test_policy_tiers_must_be_ordered():
    with pytest.raises(ValueError):
        ReminderPolicy(
            name="broken",
            tiers=(
                PolicyTier(timedelta(0), (ReminderType.ONE_HOUR,)),
                PolicyTier(timedelta(hours=6), (ReminderType.THREE_HOURS,)),
            ),
        )
    with pytest.raises(ValueError):
        ReminderPolicy(name="empty", tiers=())
