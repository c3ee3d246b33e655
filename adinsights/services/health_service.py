"""
Health check service.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Literal, Sequence

from ..integrations import LLMProvider, SheetsClient

HealthStatusType = Literal["ok", "error", "unavailable"]


@dataclass(frozen=True)
class ServiceHealth:
    status: HealthStatusType
    message: str | None = None
    latency_ms: int | None = None


@dataclass(frozen=True)
class HealthReport:
    backend: ServiceHealth
    sheet_endpoint: ServiceHealth
    providers: dict[str, ServiceHealth]


class HealthService:
    """Service for checking health of all system components."""

    def __init__(self, sheets_client: SheetsClient, providers: Sequence[LLMProvider]) -> None:
        self._sheets = sheets_client
        self._providers = list(providers)

    async def check_all(self) -> HealthReport:
        sheet, *providers = await asyncio.gather(
            self._check_sheet(), *(self._check_provider(p) for p in self._providers)
        )
        return HealthReport(
            ServiceHealth("ok", "Backend is running"),
            sheet,
            {p.name: h for p, h in zip(self._providers, providers)},
        )

    async def _check_sheet(self) -> ServiceHealth:
        ok, msg, lat = await self._sheets.check_health()
        if ok:
            return ServiceHealth("ok", msg, lat)
        return ServiceHealth("unavailable" if "not configured" in msg or "Cannot connect" in msg else "error", msg)

    async def _check_provider(self, provider: LLMProvider) -> ServiceHealth:
        ok, msg = await provider.check_health()
        return ServiceHealth("ok" if ok else "unavailable", msg)
