"""Schedule domain models and the stored query format.

A step's ``query`` column holds either a structured object
``{"filters": [...], "logic": "AND" | "OR"}`` or a legacy free-text string.
Both are parsed into a tagged variant at the repository boundary so the
filter evaluator can dispatch on the type instead of sniffing raw JSON.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

logger = logging.getLogger("agent_scheduler.schemas.schedule")


# ── Query variants ──────────────────────────────────────────────────────────────

class ScheduleFilter(BaseModel):
    field: str
    operator: str
    value: Any = None


class StructuredQuery(BaseModel):
    kind: Literal["structured"] = "structured"
    filters: List[ScheduleFilter] = []
    logic: Literal["AND", "OR"] = "AND"

    @field_validator("logic", mode="before")
    @classmethod
    def normalize_logic(cls, v: Any) -> str:
        if isinstance(v, str) and v.strip().upper() == "OR":
            return "OR"
        return "AND"

    def to_stored(self) -> dict:
        return {
            "filters": [f.model_dump() for f in self.filters],
            "logic": self.logic,
        }


class StringQuery(BaseModel):
    """Legacy free-text query.

    ``field equals 'value'`` texts carry the equivalent structured query in
    ``parsed``; anything else is matched against the whole serialized record.
    """

    kind: Literal["string"] = "string"
    text: str
    parsed: Optional[StructuredQuery] = None

    def to_stored(self) -> str:
        return self.text


class InvalidQuery(BaseModel):
    """A stored query that could not be parsed; the owning step fails."""

    kind: Literal["invalid"] = "invalid"
    raw: Any = None
    error: str

    def to_stored(self) -> Any:
        return self.raw


ScheduleQuery = Union[StructuredQuery, StringQuery, InvalidQuery]

_LEGACY_EQUALS = re.compile(r"""(\w+)\s+equals\s+['"](.*?)['"]""", re.IGNORECASE)


def parse_string_query(text: str) -> Optional[StructuredQuery]:
    """Recognize the legacy ``status equals 'open'`` form; ``None`` otherwise."""
    match = _LEGACY_EQUALS.search(text)
    if not match:
        return None
    field, value = match.groups()
    return StructuredQuery(filters=[ScheduleFilter(field=field, operator="equals", value=value)])


def parse_query(raw: Any) -> Optional[ScheduleQuery]:
    """Turn a stored ``query`` value into its tagged variant.

    ``None`` means "no filter": every record of the model matches.
    """
    if raw is None:
        return None
    if isinstance(raw, (StructuredQuery, StringQuery, InvalidQuery)):
        return raw
    if isinstance(raw, str):
        if not raw.strip():
            return None
        return StringQuery(text=raw, parsed=parse_string_query(raw))
    if isinstance(raw, dict):
        if raw.get("kind") == "string" and isinstance(raw.get("text"), str):
            return parse_query(raw["text"])
        if "filters" not in raw:
            # Objects without filters never narrowed anything
            return None
        try:
            return StructuredQuery(filters=raw.get("filters") or [], logic=raw.get("logic", "AND"))
        except ValidationError as exc:
            logger.warning("Unparsable structured query %r: %s", raw, exc)
            return InvalidQuery(raw=raw, error=f"Invalid query: {exc.error_count()} malformed filter field(s)")
    return InvalidQuery(raw=raw, error=f"Invalid query of type {type(raw).__name__}")


def query_to_stored(query: Optional[ScheduleQuery]) -> Any:
    return query.to_stored() if query is not None else None


# ── Schedules ───────────────────────────────────────────────────────────────────

class ScheduleStep(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    id: Optional[str] = None
    order: int = 0
    model_id: Optional[str] = None
    model_name: Optional[str] = None
    action_id: Optional[str] = None
    action_name: Optional[str] = None
    query: Optional[ScheduleQuery] = None

    @field_validator("query", mode="before")
    @classmethod
    def coerce_query(cls, v: Any) -> Optional[ScheduleQuery]:
        return parse_query(v)

    @property
    def model_ref(self) -> str:
        return self.model_name or self.model_id or "<unnamed model>"

    @property
    def action_ref(self) -> str:
        return self.action_name or self.action_id or "<unnamed action>"


class Schedule(BaseModel):
    id: str
    agent_id: str
    name: Optional[str] = None
    mode: Literal["once", "recurring"]
    interval_hours: Optional[float] = None
    status: Literal["active", "paused"] = "active"
    last_run_at: Optional[datetime] = None
    next_run_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    steps: List[ScheduleStep] = []

    @property
    def display_name(self) -> str:
        return self.name or self.id

    def ordered_steps(self) -> List[ScheduleStep]:
        return sorted(self.steps, key=lambda s: s.order)
