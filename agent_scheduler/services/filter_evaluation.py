"""Filter evaluation for schedule step queries.

Everything here is pure: no I/O, no state. Filters are advisory, so a
comparison that makes no sense for the record's value (a numeric operator on
a word, ``in`` without a list) fails the predicate instead of raising.
"""

from __future__ import annotations

import json
import logging
import math
import re
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

from ..schemas.schedule import (
    InvalidQuery,
    ScheduleFilter,
    ScheduleQuery,
    StringQuery,
)

logger = logging.getLogger("agent_scheduler.services.filter_evaluation")

T = TypeVar("T")


class _Absent:
    """Value of a field the record does not have."""

    def __repr__(self) -> str:
        return "<absent>"

    def __bool__(self) -> bool:
        return False


ABSENT = _Absent()

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def normalize_operator(operator: str) -> str:
    """``notEquals`` / ``not_equals`` / ``NOT_EQUALS`` all become ``not_equals``."""
    op = (operator or "").strip()
    if op and not op.isupper():
        op = _CAMEL_BOUNDARY.sub("_", op)
    return op.lower()


# ── Value coercion ──────────────────────────────────────────────────────────────

def _as_text(value: Any) -> str:
    if value is ABSENT or value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, default=str)
    return str(value)


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str) and value.strip():
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return None if math.isnan(number) else number


def _is_empty(value: Any) -> bool:
    if value is ABSENT or value is None:
        return True
    if isinstance(value, (str, list, dict)):
        return len(value) == 0
    return False


# ── Operators ───────────────────────────────────────────────────────────────────

def _equals(actual: Any, expected: Any) -> bool:
    if actual is ABSENT:
        return False
    if actual is None or expected is None:
        return actual is None and expected is None
    if isinstance(actual, bool) == isinstance(expected, bool) and actual == expected:
        return True
    return _as_text(actual) == _as_text(expected)


def _contains(actual: Any, expected: Any) -> bool:
    needle = _as_text(expected).lower()
    if isinstance(actual, list):
        return any(_as_text(item).lower() == needle for item in actual)
    return needle in _as_text(actual).lower()


def _compare(check: Callable[[float, float], bool]) -> Callable[[Any, Any], bool]:
    def op(actual: Any, expected: Any) -> bool:
        a, b = _as_number(actual), _as_number(expected)
        if a is None or b is None:
            return False
        return check(a, b)
    return op


def _in(actual: Any, expected: Any) -> bool:
    return isinstance(expected, list) and any(_equals(actual, item) for item in expected)


def _not_in(actual: Any, expected: Any) -> bool:
    return isinstance(expected, list) and not any(_equals(actual, item) for item in expected)


OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "equals": _equals,
    "not_equals": lambda a, e: not _equals(a, e),
    "contains": _contains,
    "not_contains": lambda a, e: not _contains(a, e),
    "is_empty": lambda a, e: _is_empty(a),
    "is_not_empty": lambda a, e: not _is_empty(a),
    "greater_than": _compare(lambda a, b: a > b),
    "less_than": _compare(lambda a, b: a < b),
    "greater_or_equal": _compare(lambda a, b: a >= b),
    "less_or_equal": _compare(lambda a, b: a <= b),
    "starts_with": lambda a, e: _as_text(a).lower().startswith(_as_text(e).lower()),
    "ends_with": lambda a, e: _as_text(a).lower().endswith(_as_text(e).lower()),
    "in": _in,
    "not_in": _not_in,
}


# ── Public API ──────────────────────────────────────────────────────────────────

def evaluate_filter(record_data: Any, flt: ScheduleFilter) -> bool:
    """Apply one filter to a record's data mapping."""
    data = record_data if isinstance(record_data, dict) else {}
    op = OPERATORS.get(normalize_operator(flt.operator))
    if op is None:
        logger.warning("Unknown filter operator: %s", flt.operator)
        return False
    return op(data.get(flt.field, ABSENT), flt.value)


def _matches_text(record_data: Any, text: str) -> bool:
    needle = text.strip().lower()
    if not needle:
        return True
    haystack = json.dumps(record_data, ensure_ascii=False, separators=(",", ":"), default=str).lower()
    return needle in haystack or any(token in haystack for token in needle.split())


def evaluate_query(record_data: Any, query: Optional[ScheduleQuery]) -> bool:
    """Decide whether a record matches a step query.

    No query and an empty filter list both match every record, under AND as
    well as OR.
    """
    if query is None:
        return True
    if isinstance(query, StringQuery):
        if query.parsed is not None:
            return evaluate_query(record_data, query.parsed)
        return _matches_text(record_data, query.text)
    if isinstance(query, InvalidQuery):
        return False
    if not query.filters:
        return True
    results = (evaluate_filter(record_data, f) for f in query.filters)
    return all(results) if query.logic == "AND" else any(results)


def filter_records(records: Iterable[T], query: Optional[ScheduleQuery]) -> List[T]:
    """Keep the records (anything with a ``data`` mapping) matching ``query``."""
    return [r for r in records if evaluate_query(r.data, query)]


_DESCRIPTIONS: Dict[str, str] = {
    "equals": '{field} equals "{value}"',
    "not_equals": '{field} does not equal "{value}"',
    "contains": '{field} contains "{value}"',
    "not_contains": '{field} does not contain "{value}"',
    "is_empty": "{field} is empty",
    "is_not_empty": "{field} is not empty",
    "greater_than": "{field} > {value}",
    "less_than": "{field} < {value}",
    "greater_or_equal": "{field} >= {value}",
    "less_or_equal": "{field} <= {value}",
    "starts_with": '{field} starts with "{value}"',
    "ends_with": '{field} ends with "{value}"',
    "in": "{field} in [{value}]",
    "not_in": "{field} not in [{value}]",
}


def describe_filter(flt: ScheduleFilter) -> str:
    op = normalize_operator(flt.operator)
    value = flt.value
    if op in ("in", "not_in") and isinstance(value, list):
        value = ", ".join(_as_text(v) for v in value)
    else:
        value = _as_text(value)
    template = _DESCRIPTIONS.get(op)
    if template is None:
        return f"{flt.field} {flt.operator} {value}"
    return template.format(field=flt.field, value=value)


def describe_query(query: Optional[ScheduleQuery]) -> str:
    """Human-readable rendering, e.g. ``status equals "open" AND score > 3``."""
    if query is None:
        return "all records"
    if isinstance(query, StringQuery):
        if query.parsed is not None:
            return describe_query(query.parsed)
        return f'records matching "{query.text.strip()}"'
    if isinstance(query, InvalidQuery):
        return f"invalid query ({query.error})"
    if not query.filters:
        return "all records"
    return f" {query.logic} ".join(describe_filter(f) for f in query.filters)
