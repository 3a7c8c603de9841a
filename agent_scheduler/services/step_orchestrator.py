"""Step orchestrator — runs one schedule's steps against matching records.

Failures are data here: resolution errors fail a step, executor errors fail
a record, and only a missing agent context fails the whole schedule. The
caller always gets a ``ScheduleExecutionResult`` back.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Generic, List, Optional, Sequence, TypeVar

from ..clients.action_executor import ActionExecutor
from ..repositories.agent_store import AgentStore
from ..schemas.agent import ActionDefinition, AgentContext, ModelDefinition, Record
from ..schemas.report import RecordOutcome, ScheduleExecutionResult, StepResult
from ..schemas.schedule import InvalidQuery, Schedule, ScheduleStep, query_to_stored
from ..ws_manager import STEP_COMPLETED, schedule_events
from .due_time import Clock, utc_now
from .filter_evaluation import filter_records

logger = logging.getLogger("agent_scheduler.services.step_orchestrator")

T = TypeVar("T", ModelDefinition, ActionDefinition)


class Resolution(Generic[T]):
    """Result of looking up a step's model or action: the item, or why not."""

    def __init__(self, item: Optional[T] = None, error: Optional[str] = None):
        self.item = item
        self.error = error

    @property
    def found(self) -> bool:
        return self.item is not None


def resolve(kind: str, items: Sequence[T], ref_id: Optional[str], ref_name: Optional[str]) -> Resolution[T]:
    """Look up by id first, then by name (steps authored before ids existed)."""
    if ref_id:
        match = next((i for i in items if i.id == ref_id), None)
        if match:
            return Resolution(match)
    if ref_name:
        match = next((i for i in items if i.name == ref_name), None)
        if match:
            return Resolution(match)
    ref = ref_name or ref_id
    if not ref:
        return Resolution(error=f"Step has no {kind} reference")
    return Resolution(error=f"{kind.capitalize()} {ref} not found")


def summarize_status(fatal: bool, steps: List[StepResult]) -> str:
    if fatal:
        return "error"
    if all(s.clean for s in steps):
        return "success"
    if all(s.all_failed for s in steps):
        return "error"
    return "partial"


class StepOrchestrator:
    def __init__(
        self,
        store: AgentStore,
        executor: ActionExecutor,
        record_concurrency: int = 5,
        clock: Clock = utc_now,
    ):
        self.store = store
        self.executor = executor
        self.record_concurrency = max(1, record_concurrency)
        self.clock = clock

    async def run_schedule(self, schedule: Schedule) -> ScheduleExecutionResult:
        """Run every step of ``schedule`` in ascending order.

        Cancellation (``asyncio.CancelledError``) is not caught: an interrupted
        run has no result and must not be recorded.
        """
        started_at = self.clock()
        logger.info("Executing schedule '%s' (%d steps)", schedule.display_name, len(schedule.steps))

        try:
            context = await self.store.get_agent_context(schedule.agent_id)
        except Exception as exc:
            logger.exception("Failed to load agent %s for schedule '%s'", schedule.agent_id, schedule.display_name)
            context, load_error = None, f"Failed to load agent {schedule.agent_id}: {exc}"
        else:
            load_error = None if context else f"Agent not found for schedule {schedule.display_name}"

        if context is None:
            logger.error("Schedule '%s' aborted: %s", schedule.display_name, load_error)
            return ScheduleExecutionResult(
                schedule_id=schedule.id,
                schedule_name=schedule.name,
                success=False,
                status="error",
                error=load_error,
                started_at=started_at,
                finished_at=self.clock(),
            )

        step_results: List[StepResult] = []
        for step in schedule.ordered_steps():
            result = await self.run_step(schedule, step, context)
            step_results.append(result)
            await schedule_events.publish(STEP_COMPLETED, {
                "schedule_id": schedule.id,
                "step_order": step.order,
                "success": result.success,
                "processed_records": result.processed_records,
                "failed": result.failed,
                "error": result.error,
            })

        return ScheduleExecutionResult(
            schedule_id=schedule.id,
            schedule_name=schedule.name,
            success=True,
            status=summarize_status(False, step_results),
            steps_executed=len(step_results),
            step_results=step_results,
            started_at=started_at,
            finished_at=self.clock(),
        )

    async def run_step(self, schedule: Schedule, step: ScheduleStep, context: AgentContext) -> StepResult:
        base = StepResult(
            step_order=step.order,
            model_name=step.model_name,
            action_name=step.action_name,
            query=query_to_stored(step.query),
        )
        logger.info("Step %d: query %s -> run %s", step.order, step.model_ref, step.action_ref)

        model = resolve("model", context.models, step.model_id, step.model_name)
        action = resolve("action", context.actions, step.action_id, step.action_name)
        errors = [r.error for r in (model, action) if not r.found]
        if isinstance(step.query, InvalidQuery):
            errors.append(step.query.error)
        if errors:
            error = "; ".join(errors)
            logger.warning("Step %d of '%s' skipped: %s", step.order, schedule.display_name, error)
            return base.model_copy(update={"success": False, "error": error})

        base.model_name = model.item.name
        base.action_name = action.item.name

        try:
            records = await self.store.list_records(model.item.id)
        except Exception as exc:
            logger.exception("Failed to load records for model %s", model.item.name)
            return base.model_copy(update={"success": False, "error": f"Failed to load records: {exc}"})

        matching = filter_records(records, step.query)
        logger.info(
            "Step %d: %d/%d records in %s match",
            step.order, len(matching), len(records), model.item.name,
        )

        semaphore = asyncio.Semaphore(self.record_concurrency)
        outcomes = await asyncio.gather(*(
            self._run_record(semaphore, action.item, record, context, schedule.id)
            for record in matching
        ))

        succeeded = sum(1 for o in outcomes if o.success)
        logger.info(
            "Step %d completed: %d/%d records processed successfully",
            step.order, succeeded, len(outcomes),
        )
        return base.model_copy(update={
            "total_records": len(records),
            "processed_records": len(matching),
            "succeeded": succeeded,
            "failed": len(outcomes) - succeeded,
            "record_results": list(outcomes),
        })

    async def _run_record(
        self,
        semaphore: asyncio.Semaphore,
        action: ActionDefinition,
        record: Record,
        context: AgentContext,
        schedule_id: str,
    ) -> RecordOutcome:
        async with semaphore:
            try:
                result = await self.executor.execute(action, record, context, schedule_id)
            except Exception as exc:
                logger.error("Action %s failed on record %s: %s", action.name, record.id, exc)
                return RecordOutcome(record_id=record.id, success=False, error=str(exc) or type(exc).__name__)
        return RecordOutcome(record_id=record.id, success=True, result=result)
