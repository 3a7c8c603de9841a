"""FastAPI dependency injection providers."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from .database import get_db
from .repositories.agent_store import AgentStore
from .repositories.sql_agent_store import SqlAgentStore
from .clients.action_executor import ActionExecutor
from .clients.http_action_executor import HttpActionExecutor
from .services.schedule_engine import ScheduleEngine

# Singleton executor (keeps one HTTP connection pool for the process)
_executor = HttpActionExecutor()


def get_action_executor() -> ActionExecutor:
    return _executor


def get_agent_store(db: Session = Depends(get_db)) -> AgentStore:
    return SqlAgentStore(db)


def get_schedule_engine(
    store: Annotated[AgentStore, Depends(get_agent_store)],
    executor: Annotated[ActionExecutor, Depends(get_action_executor)],
) -> ScheduleEngine:
    return ScheduleEngine(store, executor)
