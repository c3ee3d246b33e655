"""Merge rows from the selected sources into one capped, provenance-tagged set."""
from __future__ import annotations

import logging
from typing import Mapping, Sequence

from ..domain.types import SOURCE_FIELD
from .models import Row

logger = logging.getLogger(__name__)

DEFAULT_ROW_LIMIT_PER_SOURCE = 500


def combine_sources(
    selected_sources: Sequence[str],
    rows_by_source: Mapping[str, Sequence[Row]],
    row_limit_per_source: int = DEFAULT_ROW_LIMIT_PER_SOURCE,
) -> list[Row]:
    """Take at most ``row_limit_per_source`` rows from each selected source, in selection order.

    Every output row is a copy stamped with ``__dataSource``; input rows are left untouched.
    """
    if not selected_sources or row_limit_per_source <= 0:
        return []

    combined: list[Row] = []
    for source_id in selected_sources:
        rows = rows_by_source.get(source_id)
        if not rows:
            logger.debug("Source %r has no rows; skipping", source_id)
            continue
        for row in rows[:row_limit_per_source]:
            tagged = dict(row)
            tagged[SOURCE_FIELD] = source_id
            combined.append(tagged)
    return combined
