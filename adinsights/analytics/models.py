from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field

from ..domain.types import ColumnType, SortDirection

Row = dict[str, Any]
FilterValue = Union[str, int, float, bool, None]


def _new_filter_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class DataSource:
    """One named tab and its fetched-row metadata."""
    id: str
    display_name: str
    row_count: int

    @property
    def available(self) -> bool:
        return self.row_count > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "displayName": self.display_name,
            "rowCount": self.row_count,
            "available": self.available,
        }


@dataclass(frozen=True)
class Column:
    """Typed column descriptor derived from sample rows."""
    name: str
    display_name: str
    type: ColumnType
    original_key: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "displayName": self.display_name,
            "type": self.type,
            "originalKey": self.original_key,
        }


@dataclass(frozen=True)
class SortConfig:
    column: str = ""
    direction: SortDirection = "asc"

    @property
    def is_active(self) -> bool:
        return bool(self.column)


class FilterCondition(BaseModel):
    """A single typed predicate; conditions combine with logical AND."""
    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=_new_filter_id)
    column: str
    operator: str = "equals"
    value: FilterValue = ""


class MetricStats(BaseModel):
    min: float
    max: float
    avg: float
    sum: float


class ValueCount(BaseModel):
    value: str
    count: int


class DimensionStats(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    unique_count: int = Field(alias="uniqueCount")
    top_values: list[ValueCount] | None = Field(default=None, alias="topValues")


class DataSummary(BaseModel):
    """Per-column statistics over the filtered and sorted rows."""
    model_config = ConfigDict(populate_by_name=True)

    total_rows: int = Field(alias="totalRows")
    metrics: dict[str, MetricStats] = Field(default_factory=dict)
    dimensions: dict[str, DimensionStats] = Field(default_factory=dict)


@dataclass(frozen=True)
class PipelineResult:
    """Everything one pipeline run derives from (sources, filters, sort, caps)."""
    columns: list[Column]
    combined_rows: list[Row]
    rows: list[Row]
    preview: list[Row]
    summary: DataSummary
    total_rows: int = 0
    filtered_rows: int = 0
    selected_sources: list[str] = field(default_factory=list)
