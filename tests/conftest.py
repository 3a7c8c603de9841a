"""
Shared pytest fixtures for the schedule engine tests.

Every test gets a fresh in-memory SQLite database, a ``Seeder`` to populate
agents, models, actions, records and schedules, and a fake action executor
that records its calls and fails on demand.
"""

import asyncio
import itertools
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from agent_scheduler.clients.action_executor import ActionExecutionError, ActionExecutor
from agent_scheduler.database import Base
from agent_scheduler.models import (
    Agent,
    AgentAction,
    AgentModel,
    AgentRecord,
    AgentSchedule,
    AgentScheduleStep,
)
from agent_scheduler.repositories.sql_agent_store import SqlAgentStore

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def fixed_clock(at: datetime = NOW):
    return lambda: at


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine, autoflush=False)()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def store(db) -> SqlAgentStore:
    return SqlAgentStore(db)


class Seeder:
    """Small factory for agent graph rows."""

    _ids = itertools.count(1)

    def __init__(self, db):
        self.db = db

    def _id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids)}"

    def _add(self, row):
        self.db.add(row)
        self.db.commit()
        return row.id

    def agent(self, agent_id: Optional[str] = None, name: str = "Support Bot") -> str:
        return self._add(Agent(id=agent_id or self._id("agent"), user_id="user-1", name=name))

    def model(self, agent_id: str, name: str, model_id: Optional[str] = None) -> str:
        return self._add(AgentModel(id=model_id or self._id("model"), agent_id=agent_id, name=name, fields=[]))

    def action(self, agent_id: str, model_id: str, name: str, action_id: Optional[str] = None) -> str:
        return self._add(AgentAction(
            id=action_id or self._id("action"),
            agent_id=agent_id,
            model_id=model_id,
            name=name,
            input_fields=[],
            output_fields=[],
            steps=[],
        ))

    def records(self, model_id: str, *datas: Dict[str, Any]) -> List[str]:
        """Insert records so that ``list_records`` (newest first) returns them in argument order."""
        ids = []
        for index, data in enumerate(datas):
            ids.append(self._add(AgentRecord(
                id=self._id("record"),
                model_id=model_id,
                data=data,
                created_at=NOW - timedelta(seconds=index),
                updated_at=NOW,
            )))
        return ids

    def schedule(
        self,
        agent_id: str,
        steps: Iterable[Dict[str, Any]] = (),
        mode: str = "recurring",
        interval_hours: Optional[str] = "24",
        status: str = "active",
        last_run_at: Optional[datetime] = None,
        name: Optional[str] = None,
        schedule_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> str:
        row = AgentSchedule(
            id=schedule_id or self._id("schedule"),
            agent_id=agent_id,
            name=name,
            mode=mode,
            interval_hours=interval_hours,
            status=status,
            last_run_at=last_run_at,
            created_at=created_at or NOW - timedelta(days=30),
        )
        for step in steps:
            row.steps.append(AgentScheduleStep(id=self._id("step"), **step))
        return self._add(row)

    def simple_agent(self, *datas: Dict[str, Any]) -> Dict[str, Any]:
        """An agent with one ``Ticket`` model, one ``triage`` action and the given records."""
        agent_id = self.agent()
        model_id = self.model(agent_id, "Ticket")
        action_id = self.action(agent_id, model_id, "triage")
        record_ids = self.records(model_id, *datas)
        return {"agent_id": agent_id, "model_id": model_id, "action_id": action_id, "record_ids": record_ids}


@pytest.fixture
def seed(db) -> Seeder:
    return Seeder(db)


# =============================================================================
# Action executor
# =============================================================================


class FakeExecutor(ActionExecutor):
    """Records every call; fails for records whose data has ``"fail": true``."""

    def __init__(self, delay: float = 0):
        self.delay = delay
        self.calls: List[tuple] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def execute(self, action, record, context, schedule_id):
        self.calls.append((action.name, record.id, schedule_id))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if record.data.get("fail"):
                raise ActionExecutionError(f"action {action.name} failed on {record.id}")
            return {"processed": record.id, "agent": context.agent_id}
        finally:
            self.in_flight -= 1


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()
