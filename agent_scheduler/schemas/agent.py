"""Read-only views of the agent graph handed to the schedule engine."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class ModelDefinition(BaseModel):
    id: str
    name: str
    fields: List[Any] = []


class ActionDefinition(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    id: str
    name: str
    model_id: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    input_fields: List[Any] = []
    output_fields: List[Any] = []
    steps: List[Any] = []


class Record(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    id: str
    model_id: str
    data: Dict[str, Any] = {}
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AgentContext(BaseModel):
    """An agent with its models and actions, loaded once per schedule run."""

    agent_id: str
    user_id: Optional[str] = None
    name: Optional[str] = None
    models: List[ModelDefinition] = []
    actions: List[ActionDefinition] = []
