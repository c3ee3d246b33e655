"""Tabular analysis pipeline over multi-source spreadsheet rows."""
from .errors import (
    AnalyticsError,
    UnknownSourceError,
    FilterValidationError,
)
from .models import (
    Column,
    DataSource,
    DataSummary,
    DimensionStats,
    FilterCondition,
    MetricStats,
    PipelineResult,
    Row,
    SortConfig,
    ValueCount,
)
from .inference import infer_column_type, infer_columns, infer_data_types, to_display_name
from .combiner import DEFAULT_ROW_LIMIT_PER_SOURCE, combine_sources
from .filters import apply_filters, matches, operators_for, render_condition, validate_condition
from .sorting import compare_values, configure_collation, sort_rows, toggle_sort
from .summary import summarize
from .registry import SourceRegistry
from .pipeline import DEFAULT_PREVIEW_ROW_COUNT, AnalysisSession, available_operators, run_pipeline

__all__ = [
    "AnalyticsError",
    "UnknownSourceError",
    "FilterValidationError",
    "Column",
    "DataSource",
    "DataSummary",
    "DimensionStats",
    "FilterCondition",
    "MetricStats",
    "PipelineResult",
    "Row",
    "SortConfig",
    "ValueCount",
    "infer_column_type",
    "infer_columns",
    "infer_data_types",
    "to_display_name",
    "DEFAULT_ROW_LIMIT_PER_SOURCE",
    "combine_sources",
    "apply_filters",
    "matches",
    "operators_for",
    "render_condition",
    "validate_condition",
    "compare_values",
    "configure_collation",
    "sort_rows",
    "toggle_sort",
    "summarize",
    "SourceRegistry",
    "DEFAULT_PREVIEW_ROW_COUNT",
    "AnalysisSession",
    "available_operators",
    "run_pipeline",
]
