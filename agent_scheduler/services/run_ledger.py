"""Run ledger — schedule bookkeeping after execution, plus the run report."""

import logging
from datetime import datetime
from typing import List, Optional

from ..repositories.agent_store import AgentStore
from ..schemas.report import ExecutionReport, ScheduleExecutionResult
from ..schemas.schedule import Schedule
from .due_time import next_run_after

logger = logging.getLogger("agent_scheduler.services.run_ledger")


class RunLedger:
    def __init__(self, store: AgentStore, default_interval: Optional[float] = None):
        self.store = store
        self.default_interval = default_interval

    def updates_for(self, schedule: Schedule, now: datetime) -> dict:
        """Fields written after a run: last/next run, and pausing for ``once``."""
        if schedule.mode == "once":
            return {"last_run_at": now, "status": "paused"}
        return {
            "last_run_at": now,
            "next_run_at": next_run_after(now, schedule.interval_hours, self.default_interval),
        }

    async def record_run(self, schedule: Schedule, now: datetime, result: ScheduleExecutionResult) -> ScheduleExecutionResult:
        """Record one attempted execution; called exactly once per run.

        Runs that never started (agent context missing) or were cancelled are
        left unrecorded so the next tick retries them. A failing update is
        reported on the result rather than raised: the actions already ran.
        """
        if result.cancelled or not result.success:
            logger.info("Schedule '%s' not recorded as run (%s)", schedule.display_name, result.status)
            return result

        updates = self.updates_for(schedule, now)
        try:
            updated = await self.store.update_schedule(schedule.id, **updates)
        except Exception as exc:
            logger.exception("Failed to update run bookkeeping for schedule '%s'", schedule.display_name)
            result.ledger_error = f"Failed to update schedule timestamps: {exc}"
            return result

        if updated is None:
            result.ledger_error = f"Schedule {schedule.id} disappeared before bookkeeping"
            logger.warning(result.ledger_error)
            return result

        result.recorded = True
        logger.info(
            "Schedule '%s' recorded: last_run_at=%s next_run_at=%s status=%s",
            schedule.display_name, updated.last_run_at, updated.next_run_at, updated.status,
        )
        return result


def build_report(now: datetime, total_schedules: int, results: List[ScheduleExecutionResult]) -> ExecutionReport:
    executed = len(results)
    cancelled = sum(1 for r in results if r.cancelled)
    succeeded = sum(1 for r in results if r.success)
    return ExecutionReport(
        success=True,
        message=f"Processed {total_schedules} schedules, executed {executed}",
        current_time=now,
        total_schedules=total_schedules,
        executed_schedules=executed,
        succeeded=succeeded,
        failed=executed - succeeded - cancelled,
        cancelled=cancelled,
        results=results,
    )
