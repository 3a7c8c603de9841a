"""Schedule trigger, status and management endpoints."""

from __future__ import annotations

import json
import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from ..dependencies import get_schedule_engine
from ..schemas.report import (
    ExecutionReport,
    ScheduleDetail,
    ScheduleExecutionResult,
    ScheduleStatus,
    ScheduleStatusResponse,
)
from ..security import verify_cron_token
from ..services.schedule_engine import ScheduleEngine

logger = logging.getLogger("agent_scheduler.routers.schedule_router")

router = APIRouter(prefix="/api/schedules", tags=["Schedules"])


async def parse_run_request(request: Request) -> Optional[str]:
    """Optional ``{"agentId": ...}`` body of the trigger call."""
    raw = await request.body()
    if not raw.strip():
        return None
    try:
        body = json.loads(raw)
    except ValueError:
        raise HTTPException(status_code=400, detail="Request body must be valid JSON")
    if body is None:
        return None
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="Request body must be a JSON object")
    agent_id = body.get("agentId") or body.get("agent_id")
    return str(agent_id) if agent_id else None


@router.get("/status", response_model=ScheduleStatusResponse)
async def schedule_status(
    engine: Annotated[ScheduleEngine, Depends(get_schedule_engine)],
    agent_id: Optional[str] = Query(default=None, alias="agentId"),
):
    """Due state of every active schedule the next run would admit. Side-effect free."""
    return await engine.status(agent_id)


@router.post("/run", response_model=ExecutionReport, dependencies=[Depends(verify_cron_token)])
async def run_schedules(
    request: Request,
    engine: Annotated[ScheduleEngine, Depends(get_schedule_engine)],
):
    """Run every due schedule once (called by the external cron service)."""
    agent_id = await parse_run_request(request)
    logger.info("Cron trigger received%s", f" for agent {agent_id}" if agent_id else "")
    return await engine.run_due(agent_id)


@router.get("/{schedule_id}", response_model=ScheduleDetail, dependencies=[Depends(verify_cron_token)])
async def get_schedule(
    schedule_id: str,
    engine: Annotated[ScheduleEngine, Depends(get_schedule_engine)],
):
    """Schedule with its due state and a readable description of each step's query."""
    return await engine.detail(schedule_id)


@router.post("/{schedule_id}/run", response_model=ScheduleExecutionResult, dependencies=[Depends(verify_cron_token)])
async def run_schedule(
    schedule_id: str,
    engine: Annotated[ScheduleEngine, Depends(get_schedule_engine)],
):
    """Run one schedule now, whether or not it is due."""
    return await engine.run_schedule(schedule_id)


@router.post("/{schedule_id}/toggle", response_model=ScheduleStatus, dependencies=[Depends(verify_cron_token)])
async def toggle_schedule(
    schedule_id: str,
    engine: Annotated[ScheduleEngine, Depends(get_schedule_engine)],
):
    """Flip a schedule between active and paused."""
    return await engine.toggle(schedule_id)
