"""SQLAlchemy models — import all models here so Alembic can discover them."""

from .agent import Agent, AgentModel, AgentAction, AgentRecord
from .schedule import AgentSchedule, AgentScheduleStep

__all__ = [
    "Agent", "AgentModel", "AgentAction", "AgentRecord",
    "AgentSchedule", "AgentScheduleStep",
]
