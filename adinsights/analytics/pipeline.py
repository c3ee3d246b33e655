"""Explicit analysis pipeline: combine -> filter -> sort -> {summarize, preview}.

The pipeline is a pure function of the registry rows and an AnalysisSession;
callers re-run it whenever the selection, filters, sort or caps change.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Sequence

from .combiner import DEFAULT_ROW_LIMIT_PER_SOURCE, combine_sources
from .errors import FilterValidationError, UnknownSourceError
from .filters import apply_filters, operators_for, validate_condition
from .inference import infer_columns
from .models import Column, FilterCondition, PipelineResult, SortConfig
from .registry import SourceRegistry
from .sorting import sort_rows, toggle_sort
from .summary import summarize

logger = logging.getLogger(__name__)

DEFAULT_PREVIEW_ROW_COUNT = 10


@dataclass
class AnalysisSession:
    """Current selection for one analyst: sources, filters, sort and row caps."""
    selected_sources: list[str] = field(default_factory=list)
    filters: list[FilterCondition] = field(default_factory=list)
    sort: SortConfig = field(default_factory=SortConfig)
    row_limit_per_source: int = DEFAULT_ROW_LIMIT_PER_SOURCE
    preview_row_count: int = DEFAULT_PREVIEW_ROW_COUNT

    def select_sources(self, source_ids: Sequence[str]) -> None:
        self.selected_sources = list(dict.fromkeys(source_ids))

    def toggle_source(self, source_id: str) -> None:
        if source_id in self.selected_sources:
            self.selected_sources = [s for s in self.selected_sources if s != source_id]
        else:
            self.selected_sources = [*self.selected_sources, source_id]

    def add_filter(
        self,
        column: str,
        operator: str = "equals",
        value: Any = "",
        columns: Sequence[Column] | None = None,
    ) -> FilterCondition:
        condition = FilterCondition(column=column, operator=operator, value=value)
        if columns is not None:
            validate_condition(condition, columns)
        self.filters = [*self.filters, condition]
        return condition

    def update_filter(
        self,
        filter_id: str,
        columns: Sequence[Column] | None = None,
        **updates: Any,
    ) -> FilterCondition:
        for index, existing in enumerate(self.filters):
            if existing.id != filter_id:
                continue
            updated = FilterCondition.model_validate({**existing.model_dump(), **updates, "id": filter_id})
            if columns is not None:
                validate_condition(updated, columns)
            self.filters = [*self.filters[:index], updated, *self.filters[index + 1:]]
            return updated
        raise FilterValidationError(f"Unknown filter id: {filter_id}")

    def remove_filter(self, filter_id: str) -> None:
        self.filters = [f for f in self.filters if f.id != filter_id]

    def clear_filters(self) -> None:
        self.filters = []

    def toggle_sort(self, column: str) -> SortConfig:
        self.sort = toggle_sort(self.sort, column)
        return self.sort


def run_pipeline(registry: SourceRegistry, session: AnalysisSession) -> PipelineResult:
    unknown = [s for s in session.selected_sources if not registry.has_source(s)]
    if unknown:
        raise UnknownSourceError(f"Unknown data source(s): {', '.join(unknown)}")

    selected = session.selected_sources
    columns = infer_columns(registry.sample_rows(selected))
    combined = combine_sources(selected, registry.rows_by_source, session.row_limit_per_source)
    filtered = apply_filters(combined, session.filters)
    rows = sort_rows(filtered, session.sort)

    logger.debug(
        "Pipeline over %s: combined=%d filtered=%d", selected, len(combined), len(rows)
    )
    return PipelineResult(
        columns=columns,
        combined_rows=combined,
        rows=rows,
        preview=rows[: max(session.preview_row_count, 0)],
        summary=summarize(rows, columns),
        total_rows=registry.total_rows(selected),
        filtered_rows=len(rows),
        selected_sources=list(selected),
    )


def available_operators(columns: Sequence[Column], column_name: str) -> tuple[str, ...]:
    for column in columns:
        if column.name == column_name:
            return operators_for(column.type)
    return ()
