"""Single-column, type-aware, stable row ordering."""
from __future__ import annotations

import locale
import logging
import unicodedata
from functools import cmp_to_key
from typing import Any, Sequence

from .coercion import is_number, to_text
from .models import Row, SortConfig

logger = logging.getLogger(__name__)


def configure_collation(name: str = "") -> bool:
    """Switch LC_COLLATE to ``name`` (the environment's locale when empty).

    Returns False and keeps the current collation when the locale is unavailable.
    """
    try:
        locale.setlocale(locale.LC_COLLATE, name)
    except locale.Error as exc:
        logger.warning("Collation locale %r unavailable, keeping %s: %s", name, locale.setlocale(locale.LC_COLLATE), exc)
        return False
    return True


def _fold(text: str) -> str:
    """Strip accents and case: ``Écho`` -> ``echo``."""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold()


def _collate(a: str, b: str) -> int:
    # Base letters first, then accents and case, then raw code points.
    for left, right in ((_fold(a), _fold(b)), (a.casefold(), b.casefold())):
        result = locale.strcoll(left, right)
        if result:
            return result
    return locale.strcoll(a, b)


def compare_values(a: Any, b: Any) -> int:
    if is_number(a) and is_number(b):
        return (a > b) - (a < b)
    result = _collate(to_text(a), to_text(b))
    return (result > 0) - (result < 0)


def sort_rows(rows: Sequence[Row], sort_config: SortConfig | None) -> list[Row]:
    """Return a new list ordered by ``sort_config``; ties keep their input order in both directions."""
    if sort_config is None or not sort_config.is_active:
        return list(rows)
    column = sort_config.column
    key = cmp_to_key(lambda x, y: compare_values(x.get(column), y.get(column)))
    return sorted(rows, key=key, reverse=sort_config.direction == "desc")


def toggle_sort(current: SortConfig | None, column: str) -> SortConfig:
    """Same column flips the direction; a new column starts ascending."""
    if current is not None and current.column == column and current.direction == "asc":
        return SortConfig(column=column, direction="desc")
    return SortConfig(column=column, direction="asc")
