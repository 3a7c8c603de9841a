"""Tests for the HTTP action executor client."""

import json

import httpx
import pytest

from agent_scheduler.clients.action_executor import ActionExecutionError
from agent_scheduler.clients.http_action_executor import HttpActionExecutor
from agent_scheduler.schemas.agent import ActionDefinition, AgentContext, ModelDefinition, Record

URL = "http://executor.test/api/agent/execute"

ACTION = ActionDefinition(id="a1", name="triage", model_id="m1")
RECORD = Record(id="r1", model_id="m1", data={"status": "open"})
CONTEXT = AgentContext(
    agent_id="agent-1",
    user_id="user-1",
    name="Support Bot",
    models=[ModelDefinition(id="m1", name="Ticket")],
    actions=[ACTION],
)


def executor_for(handler, token="exec-token"):
    return HttpActionExecutor(URL, token=token, timeout=5, transport=httpx.MockTransport(handler))


async def run(executor):
    async with executor:
        return await executor.execute(ACTION, RECORD, CONTEXT, "schedule-1")


class TestHttpActionExecutor:
    @pytest.mark.asyncio
    async def test_posts_payload_and_returns_result(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers.get("Authorization")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"result": {"summary": "done"}})

        assert await run(executor_for(handler)) == {"summary": "done"}
        assert seen["auth"] == "Bearer exec-token"
        assert seen["body"]["schedule_id"] == "schedule-1"
        assert seen["body"]["record"]["data"] == {"status": "open"}
        assert seen["body"]["action"]["name"] == "triage"
        assert seen["body"]["agent"]["agent_id"] == "agent-1"

    @pytest.mark.asyncio
    async def test_no_token_no_header(self):
        def handler(request):
            assert "Authorization" not in request.headers
            return httpx.Response(200, json={"ok": True})

        assert await run(executor_for(handler, token="")) == {"ok": True}

    @pytest.mark.asyncio
    async def test_empty_body(self):
        assert await run(executor_for(lambda request: httpx.Response(204))) is None

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        def handler(request):
            return httpx.Response(502, json={"error": "upstream down"})

        with pytest.raises(ActionExecutionError) as exc_info:
            await run(executor_for(handler))
        assert exc_info.value.status_code == 502
        assert "HTTP 502: upstream down" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_error_in_success_body(self):
        def handler(request):
            return httpx.Response(200, json={"error": "model refused"})

        with pytest.raises(ActionExecutionError, match="model refused"):
            await run(executor_for(handler))

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        def handler(request):
            return httpx.Response(200, text="<html>oops</html>")

        with pytest.raises(ActionExecutionError, match="non-JSON"):
            await run(executor_for(handler))

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ActionExecutionError, match="request failed"):
            await run(executor_for(handler))
