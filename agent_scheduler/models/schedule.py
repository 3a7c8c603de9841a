"""Schedule and schedule-step tables."""

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship

from ..database import Base
from .agent import _uuid, _now


class AgentSchedule(Base):
    __tablename__ = "agent_schedules"

    id = Column(String, primary_key=True, default=_uuid)
    agent_id = Column(String, ForeignKey("agents.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=True)
    mode = Column(String, nullable=False)                      # once | recurring
    interval_hours = Column(String(10), nullable=True)         # stored as text, e.g. "24" or "0.5"
    status = Column(String, nullable=False, default="active")  # active | paused
    next_run_at = Column(DateTime(timezone=True), nullable=True)
    last_run_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)

    steps = relationship(
        "AgentScheduleStep",
        cascade="all, delete-orphan",
        order_by="AgentScheduleStep.order",
        lazy="selectin",
    )


class AgentScheduleStep(Base):
    __tablename__ = "agent_schedule_steps"

    id = Column(String, primary_key=True, default=_uuid)
    schedule_id = Column(String, ForeignKey("agent_schedules.id", ondelete="CASCADE"), nullable=False, index=True)
    model_id = Column(String, nullable=True)
    model_name = Column(String, nullable=True)
    action_id = Column(String, nullable=True)
    action_name = Column(String, nullable=True)
    query = Column(JSON, nullable=True)  # {filters: [...], logic} or legacy string
    order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)
