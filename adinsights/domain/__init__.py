"""Domain layer for adinsights."""
from .types import ColumnType, SortDirection, ProviderName, SHEET_TABS, SOURCE_FIELD, FILTER_OPERATORS, ErrorCode

__all__ = ["ColumnType", "SortDirection", "ProviderName", "SHEET_TABS", "SOURCE_FIELD", "FILTER_OPERATORS", "ErrorCode"]
