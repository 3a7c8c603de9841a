"""Schedule engine — scan, orchestrate and record, once per trigger."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import HTTPException

from ..clients.action_executor import ActionExecutor
from ..config import settings
from ..repositories.agent_store import AgentStore
from ..schemas.report import (
    ExecutionReport,
    ScheduleDetail,
    ScheduleExecutionResult,
    ScheduleStatus,
    ScheduleStatusResponse,
    StepDetail,
)
from ..schemas.schedule import Schedule, query_to_stored
from ..ws_manager import RUN_COMPLETED, RUN_STARTED, TOGGLED, schedule_events
from .due_time import Clock, DueState, is_due, utc_now
from .filter_evaluation import describe_query
from .run_ledger import RunLedger, build_report
from .schedule_scanner import ScannedSchedule, ScheduleScanner
from .step_orchestrator import StepOrchestrator

logger = logging.getLogger("agent_scheduler.services.schedule_engine")


def _status_row(schedule: Schedule, state: DueState) -> ScheduleStatus:
    return ScheduleStatus(
        id=schedule.id,
        name=schedule.name,
        agent_id=schedule.agent_id,
        mode=schedule.mode,
        interval_hours=schedule.interval_hours,
        status=schedule.status,
        last_run_at=schedule.last_run_at,
        # Due rows have no upcoming run to report
        next_run_at=None if state.due else state.next_run_at,
        execution_status=state.label,
        step_count=len(schedule.steps),
    )


def _cancelled_result(schedule: Schedule, started_at: Optional[datetime] = None) -> ScheduleExecutionResult:
    return ScheduleExecutionResult(
        schedule_id=schedule.id,
        schedule_name=schedule.name,
        success=False,
        status="cancelled",
        cancelled=True,
        error="Run interrupted before the schedule finished; it will be retried on the next tick",
        started_at=started_at,
    )


class ScheduleEngine:
    def __init__(
        self,
        store: AgentStore,
        executor: ActionExecutor,
        clock: Clock = utc_now,
        *,
        max_schedules: Optional[int] = None,
        include_once: Optional[bool] = None,
        schedule_concurrency: Optional[int] = None,
        record_concurrency: Optional[int] = None,
        budget_seconds: Optional[float] = None,
        default_interval: Optional[float] = None,
    ):
        self.store = store
        self.clock = clock
        self.max_schedules = settings.CRON_MAX_SCHEDULES_PER_RUN if max_schedules is None else max_schedules
        self.include_once = settings.CRON_INCLUDE_ONCE_SCHEDULES if include_once is None else include_once
        self.schedule_concurrency = max(1, settings.CRON_SCHEDULE_CONCURRENCY if schedule_concurrency is None else schedule_concurrency)
        self.budget_seconds = settings.CRON_RUN_BUDGET_SECONDS if budget_seconds is None else budget_seconds
        self.default_interval = default_interval

        self.scanner = ScheduleScanner(store, include_once=self.include_once, default_interval=default_interval)
        self.orchestrator = StepOrchestrator(
            store,
            executor,
            record_concurrency=settings.CRON_RECORD_CONCURRENCY if record_concurrency is None else record_concurrency,
            clock=clock,
        )
        self.ledger = RunLedger(store, default_interval=default_interval)

    # ── Status ──────────────────────────────────────────────────────────────────

    async def status(self, agent_id: Optional[str] = None) -> ScheduleStatusResponse:
        """Due state of every admitted schedule. Writes nothing."""
        now = self.clock()
        scanned = await self.scanner.scan(self.max_schedules, agent_id, now)
        rows = [_status_row(s.schedule, s.state) for s in scanned]
        if self.include_once:
            note = "Showing active recurring schedules and never-run once schedules"
        else:
            note = "Only showing active recurring schedules (run-once schedules are manual only)"
        return ScheduleStatusResponse(
            current_time=now,
            total_schedules=len(rows),
            max_schedules_per_run=self.max_schedules,
            schedules_due=sum(1 for s in scanned if s.state.due),
            schedules=rows,
            note=note,
        )

    # ── Periodic run ────────────────────────────────────────────────────────────

    async def run_due(self, agent_id: Optional[str] = None) -> ExecutionReport:
        """Scan, run every due schedule and record the runs."""
        now = self.clock()
        scanned = await self.scanner.scan(self.max_schedules, agent_id, now)
        due = [s for s in scanned if s.state.due]
        logger.info(
            "Found %d active schedules (max %d), executing %d",
            len(scanned), self.max_schedules, len(due),
        )

        semaphore = asyncio.Semaphore(self.schedule_concurrency)
        tasks = [asyncio.create_task(self._execute(s, now, semaphore)) for s in due]
        try:
            if tasks and self.budget_seconds and self.budget_seconds > 0:
                _, pending = await asyncio.wait(tasks, timeout=self.budget_seconds)
                if pending:
                    logger.warning("Run budget of %ss exhausted, cancelling %d schedules", self.budget_seconds, len(pending))
                    for task in pending:
                        task.cancel()
                    await asyncio.gather(*pending, return_exceptions=True)
            elif tasks:
                await asyncio.wait(tasks)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            raise

        results: List[ScheduleExecutionResult] = []
        for task, item in zip(tasks, due):
            if task.cancelled():
                results.append(_cancelled_result(item.schedule))
            else:
                results.append(task.result())

        for result in results:
            await self._announce(result)

        report = build_report(now, len(scanned), results)
        logger.info(
            "Run finished: %d succeeded, %d failed, %d cancelled",
            report.succeeded, report.failed, report.cancelled,
        )
        return report

    async def _execute(self, item: ScannedSchedule, now: datetime, semaphore: asyncio.Semaphore) -> ScheduleExecutionResult:
        async with semaphore:
            return await self._run_and_record(item.schedule, now)

    async def _run_and_record(self, schedule: Schedule, now: datetime) -> ScheduleExecutionResult:
        await schedule_events.publish(RUN_STARTED, {
            "schedule_id": schedule.id,
            "name": schedule.name,
            "agent_id": schedule.agent_id,
            "total_steps": len(schedule.steps),
        })
        try:
            result = await self.orchestrator.run_schedule(schedule)
        except Exception as exc:
            # The orchestrator reports failures as data, so this is unexpected
            logger.exception("Unexpected error executing schedule '%s'", schedule.display_name)
            result = ScheduleExecutionResult(
                schedule_id=schedule.id,
                schedule_name=schedule.name,
                success=False,
                status="error",
                error=str(exc) or type(exc).__name__,
            )
        else:
            result = await self.ledger.record_run(schedule, now, result)
        return result

    async def _announce(self, result: ScheduleExecutionResult) -> None:
        await schedule_events.publish(RUN_COMPLETED, {
            "schedule_id": result.schedule_id,
            "status": result.status,
            "success": result.success,
            "error": result.error,
            "steps_executed": result.steps_executed,
            "recorded": result.recorded,
        })

    # ── Single schedule ─────────────────────────────────────────────────────────

    async def _get_or_404(self, schedule_id: str) -> Schedule:
        schedule = await self.store.get_schedule(schedule_id)
        if not schedule:
            raise HTTPException(status_code=404, detail=f"Schedule {schedule_id} not found")
        return schedule

    async def run_schedule(self, schedule_id: str) -> ScheduleExecutionResult:
        """Manual run: executes regardless of due state or pause, then records it."""
        schedule = await self._get_or_404(schedule_id)
        logger.info("Manual run of schedule '%s'", schedule.display_name)
        result = await self._run_and_record(schedule, self.clock())
        await self._announce(result)
        return result

    async def toggle(self, schedule_id: str) -> ScheduleStatus:
        schedule = await self.store.toggle_schedule(schedule_id)
        if not schedule:
            raise HTTPException(status_code=404, detail=f"Schedule {schedule_id} not found")
        logger.info("Schedule '%s' is now %s", schedule.display_name, schedule.status)
        await schedule_events.publish(TOGGLED, {
            "schedule_id": schedule.id,
            "status": schedule.status,
        })
        return _status_row(schedule, self._due_state(schedule))

    async def detail(self, schedule_id: str) -> ScheduleDetail:
        schedule = await self._get_or_404(schedule_id)
        return ScheduleDetail(
            schedule=_status_row(schedule, self._due_state(schedule)),
            steps=[
                StepDetail(
                    order=step.order,
                    model_id=step.model_id,
                    model_name=step.model_name,
                    action_id=step.action_id,
                    action_name=step.action_name,
                    query=query_to_stored(step.query),
                    description=describe_query(step.query),
                )
                for step in schedule.ordered_steps()
            ],
        )

    def _due_state(self, schedule: Schedule) -> DueState:
        return is_due(schedule.mode, schedule.interval_hours, schedule.last_run_at, self.clock(), self.default_interval)
