from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from ..schemas.agent import AgentContext, Record
from ..schemas.schedule import Schedule


class AgentStore(ABC):
    """Persistence for agents, models, records, actions and schedules."""

    @abstractmethod
    async def ping(self) -> None:
        pass

    @abstractmethod
    async def list_active_schedules(
        self,
        limit: int,
        agent_id: Optional[str] = None,
        include_once: bool = False,
    ) -> List[Schedule]:
        """Active schedules eligible for scanning, never-run first, at most ``limit``."""

    @abstractmethod
    async def get_schedule(self, schedule_id: str) -> Optional[Schedule]:
        pass

    @abstractmethod
    async def get_agent_context(self, agent_id: str) -> Optional[AgentContext]:
        pass

    @abstractmethod
    async def list_records(self, model_id: str) -> List[Record]:
        pass

    @abstractmethod
    async def update_schedule(
        self,
        schedule_id: str,
        *,
        last_run_at: Optional[datetime] = None,
        next_run_at: Optional[datetime] = None,
        status: Optional[str] = None,
    ) -> Optional[Schedule]:
        pass

    @abstractmethod
    async def toggle_schedule(self, schedule_id: str) -> Optional[Schedule]:
        pass
