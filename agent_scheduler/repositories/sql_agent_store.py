"""Agent store backed by SQLAlchemy — schedules, agent graph and records."""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import and_, case, or_, select, text
from sqlalchemy.orm import Session

from ..models.agent import Agent, AgentAction, AgentModel, AgentRecord
from ..models.schedule import AgentSchedule
from ..schemas.agent import ActionDefinition, AgentContext, ModelDefinition, Record
from ..schemas.schedule import Schedule, ScheduleStep
from ..services.due_time import ensure_utc
from .agent_store import AgentStore

logger = logging.getLogger("agent_scheduler.repositories.sql_agent_store")


def _parse_interval(value) -> Optional[float]:
    """``interval_hours`` is stored as text; unusable values read as absent."""
    if value is None:
        return None
    try:
        hours = float(str(value).strip())
    except ValueError:
        logger.warning("Ignoring unparsable interval_hours %r", value)
        return None
    return hours if hours > 0 else None


def _row_to_schedule(row: AgentSchedule) -> Schedule:
    return Schedule(
        id=row.id,
        agent_id=row.agent_id,
        name=row.name,
        mode=row.mode,
        interval_hours=_parse_interval(row.interval_hours),
        status=row.status,
        last_run_at=ensure_utc(row.last_run_at),
        next_run_at=ensure_utc(row.next_run_at),
        created_at=ensure_utc(row.created_at),
        steps=[
            ScheduleStep(
                id=s.id,
                order=s.order,
                model_id=s.model_id,
                model_name=s.model_name,
                action_id=s.action_id,
                action_name=s.action_name,
                query=s.query,
            )
            for s in sorted(row.steps, key=lambda s: s.order)
        ],
    )


def _row_to_record(row: AgentRecord) -> Record:
    return Record(
        id=row.id,
        model_id=row.model_id,
        data=row.data if isinstance(row.data, dict) else {},
        created_at=ensure_utc(row.created_at),
        updated_at=ensure_utc(row.updated_at),
    )


class SqlAgentStore(AgentStore):
    """Database-backed agent store.

    Session calls are synchronous and never yield to the event loop, so a
    single session can be shared by the concurrent schedule runs of one
    trigger invocation.
    """

    def __init__(self, db: Session):
        self.db = db

    async def ping(self) -> None:
        self.db.execute(text("SELECT 1"))

    async def list_active_schedules(
        self,
        limit: int,
        agent_id: Optional[str] = None,
        include_once: bool = False,
    ) -> List[Schedule]:
        stmt = select(AgentSchedule).where(AgentSchedule.status == "active")
        if include_once:
            stmt = stmt.where(
                or_(
                    AgentSchedule.mode == "recurring",
                    and_(AgentSchedule.mode == "once", AgentSchedule.last_run_at.is_(None)),
                )
            )
        else:
            stmt = stmt.where(AgentSchedule.mode == "recurring")
        if agent_id:
            stmt = stmt.where(AgentSchedule.agent_id == agent_id)

        # Never-run schedules first, then least recently run, then oldest
        stmt = stmt.order_by(
            case((AgentSchedule.last_run_at.is_(None), 0), else_=1),
            AgentSchedule.last_run_at.asc(),
            AgentSchedule.created_at.asc(),
            AgentSchedule.id.asc(),
        ).limit(max(limit, 0))

        rows = self.db.execute(stmt).scalars().all()
        return [_row_to_schedule(r) for r in rows]

    async def get_schedule(self, schedule_id: str) -> Optional[Schedule]:
        row = self.db.get(AgentSchedule, schedule_id)
        return _row_to_schedule(row) if row else None

    async def get_agent_context(self, agent_id: str) -> Optional[AgentContext]:
        agent = self.db.get(Agent, agent_id)
        if not agent:
            return None

        models = self.db.execute(
            select(AgentModel).where(AgentModel.agent_id == agent_id).order_by(AgentModel.created_at)
        ).scalars().all()
        actions = self.db.execute(
            select(AgentAction).where(AgentAction.agent_id == agent_id).order_by(AgentAction.created_at)
        ).scalars().all()

        return AgentContext(
            agent_id=agent.id,
            user_id=agent.user_id,
            name=agent.name,
            models=[ModelDefinition(id=m.id, name=m.name, fields=m.fields or []) for m in models],
            actions=[
                ActionDefinition(
                    id=a.id,
                    name=a.name,
                    model_id=a.model_id,
                    title=a.title,
                    description=a.description,
                    input_fields=a.input_fields or [],
                    output_fields=a.output_fields or [],
                    steps=a.steps or [],
                )
                for a in actions
            ],
        )

    async def list_records(self, model_id: str) -> List[Record]:
        rows = self.db.execute(
            select(AgentRecord)
            .where(AgentRecord.model_id == model_id, AgentRecord.deleted_at.is_(None))
            .order_by(AgentRecord.created_at.desc(), AgentRecord.id.asc())
        ).scalars().all()
        return [_row_to_record(r) for r in rows]

    async def update_schedule(
        self,
        schedule_id: str,
        *,
        last_run_at: Optional[datetime] = None,
        next_run_at: Optional[datetime] = None,
        status: Optional[str] = None,
    ) -> Optional[Schedule]:
        row = self.db.get(AgentSchedule, schedule_id)
        if not row:
            return None
        if last_run_at is not None:
            row.last_run_at = last_run_at
        if next_run_at is not None:
            row.next_run_at = next_run_at
        if status is not None:
            row.status = status
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(row)
        return _row_to_schedule(row)

    async def toggle_schedule(self, schedule_id: str) -> Optional[Schedule]:
        row = self.db.get(AgentSchedule, schedule_id)
        if not row:
            return None
        row.status = "paused" if row.status == "active" else "active"
        self.db.commit()
        self.db.refresh(row)
        return _row_to_schedule(row)
