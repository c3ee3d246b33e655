"""Evaluate a conjunction of typed filter conditions over rows.

Evaluation never raises for bad data: a value that cannot be coerced to the
operator's domain simply fails the predicate, and an unrecognised operator
is vacuously true.
"""
from __future__ import annotations

import logging
import operator as op
from typing import Any, Callable, Iterable, Sequence

from ..domain.types import ColumnType, FILTER_OPERATORS
from .coercion import to_number, to_text, to_timestamp
from .errors import FilterValidationError
from .models import Column, FilterCondition, Row

logger = logging.getLogger(__name__)

_STRING_OPS: dict[str, Callable[[str, str], bool]] = {
    "contains": lambda a, b: b in a,
    "does not contain": lambda a, b: b not in a,
    "starts with": lambda a, b: a.startswith(b),
    "ends with": lambda a, b: a.endswith(b),
}

_NUMERIC_OPS: dict[str, Callable[[float, float], bool]] = {
    "greater than": op.gt,
    "less than": op.lt,
    "greater than or equals": op.ge,
    "less than or equals": op.le,
}

_DATE_OPS: dict[str, Callable[[float, float], bool]] = {
    "after": op.gt,
    "before": op.lt,
    "on or after": op.ge,
    "on or before": op.le,
}


def operators_for(column_type: ColumnType) -> tuple[str, ...]:
    return FILTER_OPERATORS.get(column_type, ())


def _loose_equals(value: Any, target: Any) -> bool:
    left, right = to_number(value), to_number(target)
    if left is not None and right is not None:
        return left == right
    return to_text(value) == to_text(target)


def _compare(coerce: Callable[[Any], float | None], fn: Callable[[float, float], bool], value: Any, target: Any) -> bool:
    left, right = coerce(value), coerce(target)
    if left is None or right is None:
        return False
    return fn(left, right)


def matches(row: Row, condition: FilterCondition) -> bool:
    value = row.get(condition.column)
    target = condition.value
    name = condition.operator

    if name in _STRING_OPS:
        return _STRING_OPS[name](to_text(value).lower(), to_text(target).lower())
    if name == "equals":
        return _loose_equals(value, target)
    if name == "not equals":
        return not _loose_equals(value, target)
    if name in _NUMERIC_OPS:
        return _compare(to_number, _NUMERIC_OPS[name], value, target)
    if name in _DATE_OPS:
        return _compare(to_timestamp, _DATE_OPS[name], value, target)
    return True


def apply_filters(rows: Sequence[Row], conditions: Iterable[FilterCondition]) -> list[Row]:
    """Keep rows satisfying every condition, preserving their relative order."""
    conditions = list(conditions)
    if not conditions:
        return list(rows)
    unknown = {c.operator for c in conditions} - set(_STRING_OPS) - set(_NUMERIC_OPS) - set(_DATE_OPS) - {"equals", "not equals"}
    if unknown:
        logger.warning("Ignoring unknown filter operator(s): %s", ", ".join(sorted(unknown)))
    return [row for row in rows if all(matches(row, c) for c in conditions)]


def validate_condition(condition: FilterCondition, columns: Sequence[Column]) -> None:
    """Raise FilterValidationError unless the operator is valid for the column's type."""
    by_name = {c.name: c for c in columns}
    column = by_name.get(condition.column)
    if column is None:
        raise FilterValidationError(f"Filter column '{condition.column}' not found in columns")
    if condition.operator not in operators_for(column.type):
        raise FilterValidationError(
            f"Operator '{condition.operator}' not valid for {column.type} column '{column.name}'"
        )


def render_condition(condition: FilterCondition) -> str:
    return f"{condition.column} {condition.operator} {to_text(condition.value)}"
