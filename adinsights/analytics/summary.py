"""Compute per-column summary statistics over the filtered rows."""
from __future__ import annotations

import logging
from collections import Counter
from typing import Any, Sequence

import pandas as pd

from .coercion import to_number, to_text
from .models import Column, DataSummary, DimensionStats, MetricStats, Row, ValueCount

logger = logging.getLogger(__name__)

TOP_VALUES_MAX_DISTINCT = 10
TOP_VALUES_LIMIT = 5


def summarize(rows: Sequence[Row], columns: Sequence[Column]) -> DataSummary:
    """Build a DataSummary for ``rows``.

    Metric columns with no numeric values are left out rather than reported as NaN.
    Dimension and date columns report their distinct count, plus the five most
    frequent values when there are at most ten distinct values.
    """
    summary = DataSummary(total_rows=len(rows))
    if not rows:
        return summary

    for column in columns:
        values = [row.get(column.name) for row in rows]
        if column.type == "metric":
            stats = _metric_stats(values)
            if stats is not None:
                summary.metrics[column.name] = stats
        else:
            summary.dimensions[column.name] = _dimension_stats(values)

    return summary


def _metric_stats(values: list[Any]) -> MetricStats | None:
    # Parsed with the same rule as the numeric filters.
    numeric = pd.Series([to_number(v) for v in values], dtype="float64").dropna()
    if numeric.empty:
        return None
    total = float(numeric.sum())
    return MetricStats(
        min=float(numeric.min()),
        max=float(numeric.max()),
        avg=total / len(numeric),
        sum=total,
    )


def _dimension_stats(values: list[Any]) -> DimensionStats:
    counts = Counter(to_text(v) for v in values)
    top_values = None
    if len(counts) <= TOP_VALUES_MAX_DISTINCT:
        # Counter preserves first-seen order, and most_common sorts stably.
        top_values = [ValueCount(value=value, count=count) for value, count in counts.most_common(TOP_VALUES_LIMIT)]
    return DimensionStats(unique_count=len(counts), top_values=top_values)
