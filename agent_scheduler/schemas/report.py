"""Execution report and status payloads returned by the schedule endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict

RunStatus = Literal["success", "partial", "error", "cancelled"]


# ── Execution report ────────────────────────────────────────────────────────────

class RecordOutcome(BaseModel):
    record_id: str
    success: bool
    result: Any = None
    error: Optional[str] = None


class StepResult(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    step_order: int
    model_name: Optional[str] = None
    action_name: Optional[str] = None
    query: Any = None
    success: bool = True
    error: Optional[str] = None
    total_records: int = 0
    processed_records: int = 0
    succeeded: int = 0
    failed: int = 0
    record_results: List[RecordOutcome] = []

    @property
    def clean(self) -> bool:
        return self.success and self.failed == 0

    @property
    def all_failed(self) -> bool:
        return not self.success or (self.processed_records > 0 and self.succeeded == 0)


class ScheduleExecutionResult(BaseModel):
    schedule_id: str
    schedule_name: Optional[str] = None
    success: bool
    status: RunStatus
    error: Optional[str] = None
    cancelled: bool = False
    steps_executed: int = 0
    step_results: List[StepResult] = []
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    recorded: bool = False  # run ledger updated
    ledger_error: Optional[str] = None


class ExecutionReport(BaseModel):
    success: bool = True
    message: str
    current_time: datetime
    total_schedules: int
    executed_schedules: int
    succeeded: int = 0
    failed: int = 0
    cancelled: int = 0
    results: List[ScheduleExecutionResult] = []


# ── Status / detail views ───────────────────────────────────────────────────────

class ScheduleStatus(BaseModel):
    id: str
    name: Optional[str] = None
    agent_id: str
    mode: str
    interval_hours: Optional[float] = None
    status: str
    last_run_at: Optional[datetime] = None
    next_run_at: Optional[datetime] = None
    execution_status: str
    step_count: int = 0


class ScheduleStatusResponse(BaseModel):
    current_time: datetime
    total_schedules: int
    max_schedules_per_run: int
    schedules_due: int
    schedules: List[ScheduleStatus] = []
    note: str


class StepDetail(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    order: int
    model_id: Optional[str] = None
    model_name: Optional[str] = None
    action_id: Optional[str] = None
    action_name: Optional[str] = None
    query: Any = None
    description: str


class ScheduleDetail(BaseModel):
    schedule: ScheduleStatus
    steps: List[StepDetail] = []


class HealthResponse(BaseModel):
    status: str
    database: str
    version: str
