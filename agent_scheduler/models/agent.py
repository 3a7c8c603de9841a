"""Agent, data model, action and record tables."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, String, Text, DateTime, ForeignKey, JSON

from ..database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Agent(Base):
    __tablename__ = "agents"

    id = Column(String, primary_key=True, default=_uuid)
    user_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_now)


class AgentModel(Base):
    __tablename__ = "agent_models"

    id = Column(String, primary_key=True, default=_uuid)
    agent_id = Column(String, ForeignKey("agents.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    fields = Column(JSON, nullable=False, default=list)  # [{name, type, ...}]
    created_at = Column(DateTime(timezone=True), default=_now)


class AgentAction(Base):
    __tablename__ = "agent_actions"

    id = Column(String, primary_key=True, default=_uuid)
    agent_id = Column(String, ForeignKey("agents.id", ondelete="CASCADE"), nullable=False, index=True)
    model_id = Column(String, ForeignKey("agent_models.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)  # code identifier
    title = Column(String, nullable=True)  # display name
    description = Column(Text, nullable=True)
    input_fields = Column(JSON, nullable=False, default=list)
    output_fields = Column(JSON, nullable=False, default=list)
    steps = Column(JSON, nullable=False, default=list)  # opaque to the scheduler
    created_at = Column(DateTime(timezone=True), default=_now)


class AgentRecord(Base):
    __tablename__ = "agent_records"

    id = Column(String, primary_key=True, default=_uuid)
    model_id = Column(String, ForeignKey("agent_models.id", ondelete="CASCADE"), nullable=False, index=True)
    data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)
    deleted_at = Column(DateTime(timezone=True), nullable=True)  # soft delete
