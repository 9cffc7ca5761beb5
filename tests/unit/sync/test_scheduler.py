"""Tests for the refresh scheduler."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import pytest

from brain.config import SchedulerCfg
from brain.sync.metadata import GitLocator, SourceMetadata
from brain.sync.scheduler import Scheduler, SchedulerPolicy

UTC = timezone.utc


def _at_local(hour: int, tz: str = "UTC") -> datetime:
    return datetime(2026, 3, 10, hour, 30, tzinfo=ZoneInfo(tz))


def _scheduler(start: int, end: int, tz: str = "UTC", interval: int = 24) -> Scheduler:
    return Scheduler(SchedulerPolicy(interval, start, end, tz))


def _meta(checked: datetime | None = None, fingerprint: str | None = None) -> SourceMetadata:
    return SourceMetadata(
        source_id="github:o/r",
        locator=GitLocator("o", "r", "main", "/tmp/o-r"),
        fingerprint=fingerprint,
        last_checked_at=checked,
    )


# ------------------------------------------------------------------
# Policy
# ------------------------------------------------------------------


def test_policy_defaults():
    policy = SchedulerPolicy()
    assert (policy.check_interval_hours, policy.window_start, policy.window_end) == (24, 22, 8)
    assert policy.timezone == "Europe/Moscow"


@pytest.mark.parametrize("kwargs", [
    {"check_interval_hours": -1},
    {"window_start": 24},
    {"window_end": -1},
])
def test_policy_rejects_out_of_range(kwargs):
    with pytest.raises(ValueError):
        SchedulerPolicy(**kwargs)


def test_policy_rejects_unknown_zone():
    with pytest.raises(ZoneInfoNotFoundError):
        SchedulerPolicy(timezone="Mars/Olympus_Mons")


def test_policy_from_config():
    cfg = SchedulerCfg(check_interval_hours=6, window_start=1, window_end=5, timezone="UTC")
    assert SchedulerPolicy.from_config(cfg) == SchedulerPolicy(6, 1, 5, "UTC")


# ------------------------------------------------------------------
# Window
# ------------------------------------------------------------------


@pytest.mark.parametrize("hour,inside", [
    (9, True),    # start
    (16, True),   # end - 1
    (17, False),  # end
    (8, False),   # start - 1
    (0, False),
])
def test_daytime_window(hour, inside):
    assert _scheduler(9, 17).is_in_window(_at_local(hour)) is inside


@pytest.mark.parametrize("hour,inside", [
    (22, True),   # start
    (23, True),
    (0, True),
    (7, True),    # end - 1
    (8, False),   # end
    (21, False),  # start - 1
    (12, False),
])
def test_overnight_window(hour, inside):
    assert _scheduler(22, 8).is_in_window(_at_local(hour)) is inside


def test_window_uses_configured_timezone():
    sched = _scheduler(22, 8, tz="Europe/Moscow")
    # 20:30 UTC is 23:30 in Moscow.
    assert sched.is_in_window(datetime(2026, 3, 10, 20, 30, tzinfo=UTC))
    # 06:30 UTC is 09:30 in Moscow.
    assert not sched.is_in_window(datetime(2026, 3, 10, 6, 30, tzinfo=UTC))


def test_window_uses_injected_clock(make_clock):
    clock = make_clock(datetime(2026, 3, 10, 23, 0, tzinfo=UTC))
    sched = Scheduler(SchedulerPolicy(24, 22, 8, "UTC"), clock=clock)
    assert sched.is_in_window()
    clock.current = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)
    assert not sched.is_in_window()


def test_time_until_window_inside_is_zero():
    assert _scheduler(22, 8).time_until_window(_at_local(23)) == timedelta(0)


@pytest.mark.parametrize("hour,hours", [(12, 10), (21, 1), (8, 14)])
def test_time_until_window_same_day(hour, hours):
    assert _scheduler(22, 8).time_until_window(_at_local(hour)) == timedelta(hours=hours)


def test_time_until_window_wraps_day():
    # 9-17 window, at 20:00 the next start is 13 hours away.
    assert _scheduler(9, 17).time_until_window(_at_local(20)) == timedelta(hours=13)


# ------------------------------------------------------------------
# Cadence
# ------------------------------------------------------------------


def test_needs_check_never_checked():
    assert _scheduler(22, 8).needs_check(_meta())


def test_needs_check_boundary():
    checked = datetime(2026, 3, 10, 0, 0, tzinfo=UTC)
    sched = _scheduler(22, 8, interval=24)
    assert not sched.needs_check(_meta(checked), checked + timedelta(hours=23, minutes=59))
    assert sched.needs_check(_meta(checked), checked + timedelta(hours=24))


def test_needs_check_zero_interval_always_due():
    checked = datetime(2026, 3, 10, 0, 0, tzinfo=UTC)
    assert _scheduler(22, 8, interval=0).needs_check(_meta(checked), checked)


def test_needs_check_compares_across_zones():
    checked = datetime(2026, 3, 10, 0, 0, tzinfo=UTC)
    now = datetime(2026, 3, 11, 3, 0, tzinfo=ZoneInfo("Europe/Moscow"))  # exactly 24h later
    assert _scheduler(22, 8).needs_check(_meta(checked), now)


# ------------------------------------------------------------------
# Change detection and stamping
# ------------------------------------------------------------------


def test_has_changed():
    assert Scheduler.has_changed(_meta(fingerprint=None), "abc123")
    assert Scheduler.has_changed(_meta(fingerprint="abc123"), "def456")
    assert not Scheduler.has_changed(_meta(fingerprint="abc123"), "abc123")


def test_record_check_keeps_fingerprint(make_clock):
    now = datetime(2026, 3, 10, 5, 0, tzinfo=UTC)
    sched = Scheduler(SchedulerPolicy(), clock=make_clock(now))
    meta = _meta(fingerprint="abc123")
    sched.record_check(meta)
    assert meta.last_checked_at == now
    assert meta.fingerprint == "abc123"
    assert meta.last_synced_at is None


def test_record_refresh_updates_all(make_clock):
    now = datetime(2026, 3, 10, 5, 0, tzinfo=ZoneInfo("Europe/Moscow"))
    sched = Scheduler(SchedulerPolicy(), clock=make_clock(now))
    meta = _meta(fingerprint="abc123")
    sched.record_refresh(meta, "def456")
    assert meta.fingerprint == "def456"
    assert meta.last_checked_at == meta.last_synced_at == now
    assert meta.last_synced_at.tzinfo == UTC


def test_naive_now_is_rejected():
    sched = _scheduler(22, 8)
    naive = datetime(2026, 3, 10, 23, 0)
    with pytest.raises(ValueError, match="timezone-aware"):
        sched.is_in_window(naive)
    with pytest.raises(ValueError, match="timezone-aware"):
        sched.needs_check(_meta(checked=datetime(2026, 3, 9, tzinfo=UTC)), naive)
    with pytest.raises(ValueError, match="timezone-aware"):
        sched.record_check(_meta(), naive)


def test_naive_clock_is_rejected(make_clock):
    sched = Scheduler(SchedulerPolicy(), clock=make_clock(datetime(2026, 3, 10, 5, 0)))
    with pytest.raises(ValueError, match="timezone-aware"):
        sched.time_until_window()
