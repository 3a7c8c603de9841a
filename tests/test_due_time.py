"""Tests for due-time calculation."""

from datetime import datetime, timedelta, timezone

import pytest

from agent_scheduler.services.due_time import (
    DUE_NEVER_RUN,
    DUE_NOW,
    NOT_DUE,
    SCHEDULED,
    effective_interval_hours,
    ensure_utc,
    is_due,
    next_run_after,
)

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


class TestNeverRun:
    """A schedule with no previous run is always due."""

    @pytest.mark.parametrize("interval", [None, 0.5, 24, 1000, "abc"])
    def test_recurring_never_run_is_due(self, interval):
        state = is_due("recurring", interval, None, NOW)
        assert state.due is True
        assert state.next_run_at is None
        assert state.label == DUE_NEVER_RUN

    def test_once_never_run_is_due(self):
        assert is_due("once", None, None, NOW).due is True


class TestRecurring:
    """Recurring schedules are due once the interval has elapsed."""

    def test_ran_25_hours_ago_with_24h_interval(self):
        last = NOW - timedelta(hours=25)
        state = is_due("recurring", 24, last, NOW)
        assert state.due is True
        assert state.label == DUE_NOW
        assert state.next_run_at == last + timedelta(hours=24)

    def test_ran_23_hours_ago_is_scheduled(self):
        last = NOW - timedelta(hours=23)
        state = is_due("recurring", 24, last, NOW)
        assert state.due is False
        assert state.label == SCHEDULED
        assert state.next_run_at == NOW + timedelta(hours=1)

    def test_exact_boundary_is_due(self):
        assert is_due("recurring", 24, NOW - timedelta(hours=24), NOW).due is True

    def test_fractional_interval_is_exact(self):
        last = NOW - timedelta(minutes=30)
        state = is_due("recurring", 0.5, last, NOW)
        assert state.due is True
        assert state.next_run_at == NOW

        state = is_due("recurring", 0.5, last + timedelta(seconds=1), NOW)
        assert state.due is False

    def test_monotonic_in_now(self):
        """Once due, a schedule stays due as time moves forward."""
        last = NOW
        seen_due = False
        for minutes in range(0, 48 * 60, 17):
            due = is_due("recurring", 24, last, NOW + timedelta(minutes=minutes)).due
            assert not (seen_due and not due)
            seen_due = seen_due or due
        assert seen_due

    def test_naive_last_run_is_treated_as_utc(self):
        naive = (NOW - timedelta(hours=25)).replace(tzinfo=None)
        state = is_due("recurring", 24, naive, NOW)
        assert state.due is True
        assert state.next_run_at.tzinfo is not None


class TestOnce:
    def test_once_after_first_run_is_not_due(self):
        state = is_due("once", 24, NOW - timedelta(days=400), NOW)
        assert state.due is False
        assert state.label == NOT_DUE
        assert state.next_run_at is None


class TestDefaultInterval:
    """Absent or unusable intervals fall back to 24 hours."""

    @pytest.mark.parametrize("value", [None, "", "abc", 0, -3, float("nan"), float("inf"), True])
    def test_fallback(self, value):
        assert effective_interval_hours(value) == 24

    @pytest.mark.parametrize("value,expected", [(0.5, 0.5), ("12", 12.0), (" 6 ", 6.0), (48, 48.0)])
    def test_usable_values(self, value, expected):
        assert effective_interval_hours(value) == expected

    def test_explicit_default_wins(self):
        assert effective_interval_hours(None, default=6) == 6

    def test_missing_interval_behaves_like_24h(self):
        last = NOW - timedelta(hours=23)
        assert is_due("recurring", None, last, NOW).due is False
        assert is_due("recurring", None, last - timedelta(hours=1), NOW).due is True

    def test_next_run_after(self):
        assert next_run_after(NOW, 24) == NOW + timedelta(hours=24)
        assert next_run_after(NOW, None) == NOW + timedelta(hours=24)
        assert next_run_after(NOW, 1.5) == NOW + timedelta(minutes=90)


def test_ensure_utc():
    assert ensure_utc(None) is None
    assert ensure_utc(NOW) is NOW
    assert ensure_utc(datetime(2026, 1, 1)).tzinfo == timezone.utc
