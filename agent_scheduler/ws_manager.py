"""Live schedule run events over WebSocket (``/ws/schedules``).

Every message is ``{"event": <name>, "sent_at": <iso time>, "data": {...}}``:

- ``schedule_run_started``: ``schedule_id``, ``name``, ``agent_id``, ``total_steps``
- ``schedule_step_completed``: ``schedule_id``, ``step_order``, ``success``,
  ``processed_records``, ``failed``, ``error``
- ``schedule_run_completed``: ``schedule_id``, ``status``, ``success``, ``error``,
  ``steps_executed``, ``recorded``
- ``schedule_toggled``: ``schedule_id``, ``status``
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Literal

from fastapi import WebSocket

logger = logging.getLogger("agent_scheduler.ws_manager")

ScheduleEvent = Literal[
    "schedule_run_started",
    "schedule_step_completed",
    "schedule_run_completed",
    "schedule_toggled",
]

RUN_STARTED: ScheduleEvent = "schedule_run_started"
STEP_COMPLETED: ScheduleEvent = "schedule_step_completed"
RUN_COMPLETED: ScheduleEvent = "schedule_run_completed"
TOGGLED: ScheduleEvent = "schedule_toggled"


class ScheduleEventHub:
    """Fans schedule events out to every subscribed socket.

    Subscribers only listen; a socket whose send fails is dropped.
    """

    def __init__(self):
        self._subscribers: list[WebSocket] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def subscribe(self, ws: WebSocket):
        await ws.accept()
        self._subscribers.append(ws)
        logger.info("Schedule event subscriber joined (%d total)", len(self._subscribers))

    def unsubscribe(self, ws: WebSocket):
        if ws in self._subscribers:
            self._subscribers.remove(ws)
            logger.info("Schedule event subscriber left (%d total)", len(self._subscribers))

    async def publish(self, event: ScheduleEvent, data: Dict[str, Any]):
        if not self._subscribers:
            return
        message = json.dumps(
            {"event": event, "sent_at": datetime.now(timezone.utc).isoformat(), "data": data},
            default=str,
        )
        for ws in list(self._subscribers):
            try:
                await ws.send_text(message)
            except Exception as exc:
                logger.debug("Dropping schedule event subscriber: %s", exc)
                self.unsubscribe(ws)


schedule_events = ScheduleEventHub()
