"""Due-time calculation for schedules.

Pure functions of (mode, interval, last run, now). The current time is always
passed in; callers get it from an injected clock.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, NamedTuple, Optional

from ..config import settings

Clock = Callable[[], datetime]

DUE_NEVER_RUN = "due now (never run)"
DUE_NOW = "due now"
SCHEDULED = "scheduled"
NOT_DUE = "not due"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive timestamps (e.g. read back from SQLite) as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class DueState(NamedTuple):
    due: bool
    next_run_at: Optional[datetime]
    label: str


def effective_interval_hours(interval_hours: Any, default: Optional[float] = None) -> float:
    """Interval in hours, falling back to the default when absent or unusable."""
    fallback = settings.DEFAULT_INTERVAL_HOURS if default is None else default
    if interval_hours is None or isinstance(interval_hours, bool):
        return fallback
    try:
        hours = float(interval_hours)
    except (TypeError, ValueError):
        return fallback
    if math.isnan(hours) or math.isinf(hours) or hours <= 0:
        return fallback
    return hours


def interval_delta(interval_hours: Any, default: Optional[float] = None) -> timedelta:
    # Multiply, never round, so fractional intervals don't drift
    return timedelta(seconds=effective_interval_hours(interval_hours, default) * 3600)


def next_run_after(now: datetime, interval_hours: Any, default: Optional[float] = None) -> datetime:
    return now + interval_delta(interval_hours, default)


def is_due(
    mode: str,
    interval_hours: Any,
    last_run_at: Optional[datetime],
    now: datetime,
    default: Optional[float] = None,
) -> DueState:
    """Decide whether a schedule is due at ``now``.

    A schedule that never ran is always due. ``once`` schedules are due only
    until their first run; ``recurring`` ones once ``now - last_run_at``
    reaches the interval. ``next_run_at`` is ``last_run_at + interval`` when a
    previous run exists.
    """
    last_run_at = ensure_utc(last_run_at)
    now = ensure_utc(now)

    if last_run_at is None:
        return DueState(True, None, DUE_NEVER_RUN)

    if mode == "once":
        return DueState(False, None, NOT_DUE)

    next_run_at = last_run_at + interval_delta(interval_hours, default)
    if now >= next_run_at:
        return DueState(True, next_run_at, DUE_NOW)
    return DueState(False, next_run_at, SCHEDULED)
