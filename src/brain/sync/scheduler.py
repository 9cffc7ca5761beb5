"""Refresh scheduling: the quiet-hours window and the check cadence.

The scheduler keeps no state of its own; it reads and stamps SourceMetadata.
Window arithmetic has hour granularity: minutes and seconds are ignored.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from brain.config import SchedulerCfg
from brain.sync.metadata import SourceMetadata


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SchedulerPolicy:
    """Check cadence and the daily window ``[window_start, window_end)``.

    ``window_start > window_end`` means the window wraps midnight.
    """

    check_interval_hours: int = 24
    window_start: int = 22
    window_end: int = 8
    timezone: str = "Europe/Moscow"

    def __post_init__(self) -> None:
        if self.check_interval_hours < 0:
            raise ValueError("check_interval_hours must be >= 0")
        for hour in (self.window_start, self.window_end):
            if not 0 <= hour <= 23:
                raise ValueError(f"window hours must be in 0-23, got {hour}")
        ZoneInfo(self.timezone)

    @classmethod
    def from_config(cls, cfg: SchedulerCfg) -> SchedulerPolicy:
        return cls(
            check_interval_hours=cfg.check_interval_hours,
            window_start=cfg.window_start,
            window_end=cfg.window_end,
            timezone=cfg.timezone,
        )


class Scheduler:
    """Decide when refresh may run and whether a source needs it.

    Args:
        policy: Window and cadence.
        clock: Returns the current time as an aware datetime (UTC by default);
            every ``now`` argument falls back to it.

    Every ``now`` must be timezone-aware; a naive datetime raises ValueError
    instead of being read as host-local time.
    """

    def __init__(
        self,
        policy: SchedulerPolicy,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.policy = policy
        self._tz = ZoneInfo(policy.timezone)
        self._clock = clock

    def now(self) -> datetime:
        return _require_aware(self._clock())

    def _resolve(self, now: datetime | None) -> datetime:
        return self.now() if now is None else _require_aware(now)

    # ------------------------------------------------------------------
    # Window
    # ------------------------------------------------------------------

    def local_hour(self, now: datetime | None = None) -> int:
        return self._resolve(now).astimezone(self._tz).hour

    def is_in_window(self, now: datetime | None = None) -> bool:
        hour = self.local_hour(now)
        start, end = self.policy.window_start, self.policy.window_end
        if start > end:
            return hour >= start or hour < end
        return start <= hour < end

    def time_until_window(self, now: datetime | None = None) -> timedelta:
        """Whole hours until ``window_start`` is next reached; zero inside the window."""
        if self.is_in_window(now):
            return timedelta(0)
        hour = self.local_hour(now)
        start = self.policy.window_start
        hours = start - hour if hour < start else 24 - hour + start
        return timedelta(hours=hours)

    # ------------------------------------------------------------------
    # Cadence and change detection
    # ------------------------------------------------------------------

    def needs_check(self, metadata: SourceMetadata, now: datetime | None = None) -> bool:
        if metadata.last_checked_at is None:
            return True
        now = self._resolve(now)
        elapsed = now.astimezone(timezone.utc) - metadata.last_checked_at.astimezone(timezone.utc)
        return elapsed >= timedelta(hours=self.policy.check_interval_hours)

    @staticmethod
    def has_changed(metadata: SourceMetadata, current_fingerprint: str) -> bool:
        return metadata.fingerprint is None or metadata.fingerprint != current_fingerprint

    def record_check(self, metadata: SourceMetadata, now: datetime | None = None) -> None:
        """Stamp a check that found no change; the fingerprint is untouched."""
        metadata.last_checked_at = self._resolve(now).astimezone(timezone.utc)

    def record_refresh(
        self,
        metadata: SourceMetadata,
        fingerprint: str,
        now: datetime | None = None,
    ) -> None:
        """Stamp a successful re-index with its new fingerprint."""
        stamp = self._resolve(now).astimezone(timezone.utc)
        metadata.fingerprint = fingerprint
        metadata.last_checked_at = stamp
        metadata.last_synced_at = stamp


def _require_aware(now: datetime) -> datetime:
    if now.tzinfo is None or now.utcoffset() is None:
        raise ValueError(f"now must be timezone-aware, got naive {now.isoformat()}")
    return now
