from __future__ import annotations


class AnalyticsError(Exception):
    """Base error class for the tabular analysis pipeline."""


class UnknownSourceError(AnalyticsError):
    """Raised when a selection names a source the registry does not hold."""


class FilterValidationError(AnalyticsError):
    """Raised when a filter references an unknown column or an operator its type does not allow."""
