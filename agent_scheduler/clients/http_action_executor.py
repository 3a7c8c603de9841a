"""Action executor that delegates to the agent execution HTTP endpoint."""

import logging
import time
from typing import Any, Optional

import httpx

from ..config import settings
from ..schemas.agent import ActionDefinition, AgentContext, Record
from .action_executor import ActionExecutionError, ActionExecutor

logger = logging.getLogger("agent_scheduler.clients.http_action_executor")


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:500] or response.reason_phrase
    if isinstance(body, dict):
        return str(body.get("error") or body.get("detail") or body)
    return str(body)


class HttpActionExecutor(ActionExecutor):
    """POSTs ``{action, record, agent, schedule_id}`` and returns the result.

    Usage::

        async with HttpActionExecutor("https://app.example.com/api/agent/execute") as executor:
            result = await executor.execute(action, record, context, schedule_id)
    """

    def __init__(
        self,
        url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url or settings.ACTION_EXECUTOR_URL
        self.token = settings.ACTION_EXECUTOR_TOKEN if token is None else token
        self.timeout = settings.ACTION_EXECUTOR_TIMEOUT_SECONDS if timeout is None else timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        # Created lazily so the client binds to the running event loop
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    async def execute(
        self,
        action: ActionDefinition,
        record: Record,
        context: AgentContext,
        schedule_id: str,
    ) -> Any:
        payload = {
            "action": action.model_dump(mode="json"),
            "record": record.model_dump(mode="json"),
            "agent": context.model_dump(mode="json"),
            "schedule_id": schedule_id,
        }
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}

        start = time.time()
        try:
            response = await self._get_client().post(self.url, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise ActionExecutionError(f"Action executor request failed: {exc}") from exc
        duration_ms = int((time.time() - start) * 1000)
        logger.debug(
            "Action '%s' on record %s -> HTTP %d in %dms",
            action.name, record.id, response.status_code, duration_ms,
        )

        if response.status_code >= 400:
            raise ActionExecutionError(
                f"Action executor returned HTTP {response.status_code}: {_error_detail(response)}",
                status_code=response.status_code,
            )

        if not response.content:
            return None
        try:
            body = response.json()
        except ValueError as exc:
            raise ActionExecutionError("Action executor returned a non-JSON response") from exc

        if isinstance(body, dict):
            if body.get("error"):
                raise ActionExecutionError(str(body["error"]), status_code=response.status_code)
            if "result" in body:
                return body["result"]
        return body

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *_):
        await self.aclose()
