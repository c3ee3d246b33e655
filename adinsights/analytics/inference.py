"""Infer a typed column schema from sample rows."""
from __future__ import annotations

import re
from typing import Any, Iterable, Mapping

from ..domain.types import ColumnType, SOURCE_FIELD
from .coercion import is_number
from .models import Column

_ISO_DATE_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")
_CAPITAL = re.compile(r"([A-Z])")


def infer_column_type(key: str, value: Any) -> ColumnType:
    if is_number(value):
        return "metric"
    if "date" in key.lower():
        return "date"
    if isinstance(value, str) and _ISO_DATE_PREFIX.match(value):
        return "date"
    return "dimension"


def to_display_name(name: str) -> str:
    """``accountCode`` -> ``Account Code``."""
    spaced = _CAPITAL.sub(r" \1", name)
    return spaced[:1].upper() + spaced[1:]


def infer_columns(sample_rows: Iterable[Mapping[str, Any]]) -> list[Column]:
    """First-seen-wins union of the keys across one sample row per source."""
    columns: list[Column] = []
    seen: set[str] = set()
    for row in sample_rows:
        for key, value in row.items():
            if key in seen or key == SOURCE_FIELD:
                continue
            seen.add(key)
            columns.append(Column(
                name=key,
                display_name=to_display_name(key),
                type=infer_column_type(key, value),
                original_key=key,
            ))
    return columns


def infer_data_types(sample_row: Mapping[str, Any]) -> dict[str, ColumnType]:
    return {key: infer_column_type(key, value) for key, value in sample_row.items()}
