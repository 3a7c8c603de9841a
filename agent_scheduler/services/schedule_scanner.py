"""Schedule scanner — picks the active schedules that are due now."""

import logging
from datetime import datetime
from typing import List, NamedTuple, Optional

from ..repositories.agent_store import AgentStore
from ..schemas.schedule import Schedule
from .due_time import DueState, is_due

logger = logging.getLogger("agent_scheduler.services.schedule_scanner")


class ScannedSchedule(NamedTuple):
    schedule: Schedule
    state: DueState


class ScheduleScanner:
    """Reads candidate schedules and partitions them into due / not due.

    Pure read: nothing is written here, bookkeeping happens after execution.
    """

    def __init__(self, store: AgentStore, include_once: bool = False, default_interval: Optional[float] = None):
        self.store = store
        self.include_once = include_once
        self.default_interval = default_interval

    async def scan(self, max_schedules: int, agent_id: Optional[str], now: datetime) -> List[ScannedSchedule]:
        """Every admitted candidate with its due state, in admission order."""
        schedules = await self.store.list_active_schedules(
            max_schedules, agent_id=agent_id, include_once=self.include_once,
        )
        scanned = []
        for schedule in schedules:
            state = is_due(schedule.mode, schedule.interval_hours, schedule.last_run_at, now, self.default_interval)
            if state.due:
                logger.info("Schedule '%s' is %s", schedule.display_name, state.label)
            else:
                logger.debug("Schedule '%s' not due until %s", schedule.display_name, state.next_run_at)
            scanned.append(ScannedSchedule(schedule, state))
        return scanned

    async def scan_due(self, max_schedules: int, agent_id: Optional[str], now: datetime) -> List[ScannedSchedule]:
        return [s for s in await self.scan(max_schedules, agent_id, now) if s.state.due]
