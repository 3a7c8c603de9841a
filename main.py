"""Agent Scheduler — FastAPI application entry-point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Annotated

import uvicorn
from fastapi import Depends, FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from agent_scheduler.config import settings
from agent_scheduler.dependencies import get_action_executor, get_agent_store
from agent_scheduler.repositories.agent_store import AgentStore
from agent_scheduler.routers.schedule_router import router as schedule_router
from agent_scheduler.schemas.report import HealthResponse
from agent_scheduler.ws_manager import schedule_events

VERSION = "1.0.0"

# ── Logging ─────────────────────────────────────────────────────────────────────

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
)
logger = logging.getLogger("agent_scheduler")


# ── Lifespan ────────────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "Agent Scheduler starting — max_schedules_per_run=%d  executor=%s",
        settings.CRON_MAX_SCHEDULES_PER_RUN,
        settings.ACTION_EXECUTOR_URL,
    )
    yield
    await get_action_executor().aclose()
    logger.info("Agent Scheduler shutting down")


# ── App ─────────────────────────────────────────────────────────────────────────

app = FastAPI(
    title="Agent Scheduler",
    description=(
        "Runs agent automations: finds due schedules, filters each step's records "
        "and invokes the step's action on every match."
    ),
    version=VERSION,
    lifespan=lifespan,
    root_path=settings.ROOT_PATH,
)

app.include_router(schedule_router)


# ── Global exception handler ───────────────────────────────────────────────────

@app.exception_handler(Exception)
async def _unhandled_exception(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "detail": str(exc),
            "error": type(exc).__name__,
            "path": str(request.url.path),
            "method": request.method,
        },
    )


# ── Health ──────────────────────────────────────────────────────────────────────

@app.get("/api/health", response_model=HealthResponse, tags=["Health"])
async def health(store: Annotated[AgentStore, Depends(get_agent_store)]):
    """Return database reachability and server version."""
    try:
        await store.ping()
        database = "ok"
    except Exception as exc:
        logger.warning("Database health check failed: %s", exc)
        database = f"error: {exc}"
    return HealthResponse(
        status="ok" if database == "ok" else "degraded",
        database=database,
        version=VERSION,
    )


# ── Real-time events ────────────────────────────────────────────────────────────

@app.websocket("/ws/schedules")
async def stream_schedule_events(ws: WebSocket):
    """Stream schedule run events as JSON ``{event, sent_at, data}`` messages."""
    await schedule_events.subscribe(ws)
    try:
        while True:
            await ws.receive_text()
    except WebSocketDisconnect:
        schedule_events.unsubscribe(ws)


# ── Entry-point ─────────────────────────────────────────────────────────────────

def main():
    uvicorn.run(
        "main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        log_level="info",
    )


if __name__ == "__main__":
    main()
