"""Registry of named tabular sources and their fetched rows."""
from __future__ import annotations

import logging
from types import MappingProxyType
from typing import TYPE_CHECKING, Iterable, Mapping, Sequence

from .errors import UnknownSourceError
from .models import DataSource, Row

if TYPE_CHECKING:
    from ..integrations.sheets_client import SheetsClient

logger = logging.getLogger(__name__)


class SourceRegistry:
    """Owns source metadata and rows; rows are treated as immutable once loaded."""

    def __init__(self, rows_by_source: Mapping[str, Sequence[Row]] | None = None) -> None:
        self._rows: dict[str, tuple[Row, ...]] = {
            source_id: tuple(rows) for source_id, rows in (rows_by_source or {}).items()
        }

    @classmethod
    async def load(cls, client: "SheetsClient", tabs: Iterable[str]) -> "SourceRegistry":
        """Fetch every tab concurrently and build a registry from the joined result."""
        rows_by_source = await client.fetch_all(tabs)
        registry = cls(rows_by_source)
        logger.info(
            "Loaded %d source(s): %s",
            len(registry._rows),
            ", ".join(f"{s.id}={s.row_count}" for s in registry.list_sources()),
        )
        return registry

    @property
    def rows_by_source(self) -> Mapping[str, Sequence[Row]]:
        return MappingProxyType(self._rows)

    def list_sources(self) -> list[DataSource]:
        return [DataSource(id=sid, display_name=sid, row_count=len(rows)) for sid, rows in self._rows.items()]

    def has_source(self, source_id: str) -> bool:
        return source_id in self._rows

    def get_source(self, source_id: str) -> DataSource:
        if source_id not in self._rows:
            raise UnknownSourceError(f"Unknown data source: {source_id}")
        return DataSource(id=source_id, display_name=source_id, row_count=len(self._rows[source_id]))

    def get_rows(self, source_id: str) -> Sequence[Row]:
        if source_id not in self._rows:
            raise UnknownSourceError(f"Unknown data source: {source_id}")
        return self._rows[source_id]

    def sample_rows(self, source_ids: Iterable[str]) -> list[Row]:
        """First row of each given source that has any rows."""
        return [self._rows[sid][0] for sid in source_ids if self._rows.get(sid)]

    def default_source(self) -> str | None:
        for source in self.list_sources():
            if source.available:
                return source.id
        return None

    def total_rows(self, source_ids: Iterable[str]) -> int:
        return sum(len(self._rows.get(sid, ())) for sid in source_ids)
