"""
Map raw spreadsheet rows (keyed by human-readable headers) to pipeline rows.

Percentages arrive as fractions on the dashboard tabs and are scaled by 100
here; the analysis pipeline consumes the adapted values as-is.
"""
from __future__ import annotations

import logging
from typing import Any, Callable

from ..analytics.coercion import to_number

logger = logging.getLogger(__name__)

RawRow = dict[str, Any]


def _text(raw: Any) -> str:
    return "" if raw is None else str(raw)


def _number(raw: Any) -> float:
    if raw in (None, "", False):
        return 0.0
    value = to_number(raw)
    return 0.0 if value is None else value


def _percent(raw: Any) -> float:
    return _number(raw) * 100


def _optional_number(raw: Any) -> float | None:
    if not raw:
        return None
    return to_number(raw)


Field = tuple[str, str, Callable[[Any], Any]]

_DASHBOARD_FIELDS: list[Field] = [
    ("account", "Account", _text),
    ("accountCode", "Account Code", _text),
    ("wholeMonthMediaBudget", "% Whole Month Media Budget", _percent),
    ("wholeMonthWithRollover", "% Whole Month w/Rollover", _percent),
    ("overUnder", "% Over Under", _percent),
]

_TAB_FIELDS: dict[str, list[Field]] = {
    "Dashboard": _DASHBOARD_FIELDS,
    "Dashboard LivCor": _DASHBOARD_FIELDS,
    "All Error Score Card": [
        ("accountName", "Account Name", _text),
        ("errorScore", "Final Error Score", _number),
        ("average", "Average", _optional_number),
        ("median", "Median", _optional_number),
    ],
    "Broken Error Dashboard": [
        ("zeroSpenders", "Zero Spenders", _text),
        ("adsDisapprovals", "Ads Disapprovals", _number),
        ("assetDisapprovals", "Asset Disapprovals", _number),
        ("conversionIssues", "Conversion Issues", _number),
        ("noEndDates", "No End Dates", _number),
    ],
    "Soft Error Dashboard": [
        ("negativeKeywordConflicts", "Negative Keyword Conflicts", _number),
        ("impressionsOutsideCountry", "Impressions Outside Country", _number),
        ("displayAppsRunning", "Display Apps Running", _number),
        ("geoLocationUS", 'Geo Location "United States"', _number),
    ],
}

_DASHBOARD_TABS = {"Dashboard", "Dashboard LivCor"}


def _has_account(row: RawRow) -> bool:
    account = _text(row.get("Account")).strip()
    return account not in {"", "null", "undefined", "None"}


def _map_row(row: RawRow, fields: list[Field]) -> dict[str, Any]:
    mapped = {key: convert(row.get(header)) for key, header, convert in fields}
    # Missing optional values are dropped, never stored as None.
    return {k: v for k, v in mapped.items() if v is not None}


def adapt_tab(tab: str, raw_rows: list[Any]) -> list[dict[str, Any]]:
    """Adapt one tab's rows; unknown tabs pass through unchanged."""
    rows = [r for r in raw_rows if isinstance(r, dict)]
    if len(rows) != len(raw_rows):
        logger.warning("Dropped %d non-object row(s) from tab %s", len(raw_rows) - len(rows), tab)

    fields = _TAB_FIELDS.get(tab)
    if fields is None:
        return [dict(r) for r in rows]

    if tab in _DASHBOARD_TABS:
        month_progress = _percent(rows[0].get("Percent Through Month")) if rows else 0.0
        adapted = []
        for row in rows:
            if not _has_account(row):
                continue
            mapped = _map_row(row, fields)
            mapped["monthProgress"] = month_progress
            adapted.append(mapped)
        return adapted

    return [_map_row(row, fields) for row in rows]
