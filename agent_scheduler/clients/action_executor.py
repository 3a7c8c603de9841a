from abc import ABC, abstractmethod
from typing import Any, Optional

from ..schemas.agent import ActionDefinition, AgentContext, Record


class ActionExecutionError(Exception):
    """An action failed for one record."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ActionExecutor(ABC):
    @abstractmethod
    async def execute(
        self,
        action: ActionDefinition,
        record: Record,
        context: AgentContext,
        schedule_id: str,
    ) -> Any:
        """Run ``action`` on one record and return its result.

        Raises ``ActionExecutionError`` (or any other exception) on failure.
        """

    async def aclose(self) -> None:
        pass
