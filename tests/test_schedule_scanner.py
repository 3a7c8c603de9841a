"""Tests for the schedule scanner."""

from datetime import timedelta

import pytest

from agent_scheduler.services.due_time import DUE_NEVER_RUN, DUE_NOW, SCHEDULED
from agent_scheduler.services.schedule_scanner import ScheduleScanner

from conftest import NOW


class TestScheduleScanner:
    @pytest.mark.asyncio
    async def test_scan_pairs_every_candidate_with_its_state(self, store, seed):
        agent = seed.agent()
        never = seed.schedule(agent, created_at=NOW - timedelta(days=2))
        due = seed.schedule(agent, last_run_at=NOW - timedelta(hours=25))
        later = seed.schedule(agent, last_run_at=NOW - timedelta(hours=3))

        scanned = await ScheduleScanner(store).scan(100, None, NOW)

        assert [(s.schedule.id, s.state.label) for s in scanned] == [
            (never, DUE_NEVER_RUN),
            (due, DUE_NOW),
            (later, SCHEDULED),
        ]

    @pytest.mark.asyncio
    async def test_scan_due(self, store, seed):
        agent = seed.agent()
        due = seed.schedule(agent, interval_hours="2", last_run_at=NOW - timedelta(hours=3))
        seed.schedule(agent, interval_hours="6", last_run_at=NOW - timedelta(hours=3))

        scanned = await ScheduleScanner(store).scan_due(100, None, NOW)

        assert [s.schedule.id for s in scanned] == [due]

    @pytest.mark.asyncio
    async def test_ceiling_applies_before_due_check(self, store, seed):
        agent = seed.agent()
        for i in range(5):
            seed.schedule(agent, last_run_at=NOW - timedelta(hours=30 + i))

        assert len(await ScheduleScanner(store).scan_due(3, None, NOW)) == 3

    @pytest.mark.asyncio
    async def test_default_interval_override(self, store, seed):
        seed.schedule(seed.agent(), interval_hours=None, last_run_at=NOW - timedelta(hours=7))

        assert await ScheduleScanner(store).scan_due(100, None, NOW) == []
        assert len(await ScheduleScanner(store, default_interval=6).scan_due(100, None, NOW)) == 1

    @pytest.mark.asyncio
    async def test_scan_writes_nothing(self, store, seed):
        schedule_id = seed.schedule(seed.agent())
        await ScheduleScanner(store).scan_due(100, None, NOW)
        schedule = await store.get_schedule(schedule_id)
        assert schedule.last_run_at is None
        assert schedule.next_run_at is None
