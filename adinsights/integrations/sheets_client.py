"""
Client for the spreadsheet-backed tabular endpoint (``GET <url>?tab=<name>``).
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Iterable

import requests

from .tab_adapters import adapt_tab

logger = logging.getLogger(__name__)


class SheetsClientError(Exception):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SheetsClient:
    """Async client that fetches tabs and maps them to pipeline rows."""

    def __init__(self, base_url: str | None, timeout_seconds: int = 30) -> None:
        self._base_url = base_url
        self._timeout = timeout_seconds

    @property
    def is_configured(self) -> bool:
        return bool(self._base_url)

    def _get(self, tab: str) -> Any:
        if not self._base_url:
            raise SheetsClientError("Sheet endpoint URL is not configured")
        try:
            resp = requests.get(self._base_url, params={"tab": tab}, timeout=self._timeout)
        except requests.exceptions.RequestException as exc:
            raise SheetsClientError(f"Failed to fetch data for tab {tab}: {exc}") from exc
        if not resp.ok:
            raise SheetsClientError(f"Failed to fetch data for tab {tab}: HTTP {resp.status_code}", resp.status_code)
        try:
            return resp.json()
        except ValueError as exc:
            raise SheetsClientError(f"Tab {tab} returned a non-JSON payload") from exc

    async def fetch_tab(self, tab: str) -> list[dict[str, Any]]:
        """Fetch one tab and adapt its rows; a non-array payload yields no rows."""
        raw = await asyncio.to_thread(self._get, tab)
        if not isinstance(raw, list):
            logger.warning("Response is not an array for tab %s; treating as empty", tab)
            return []
        return adapt_tab(tab, raw)

    async def fetch_all(self, tabs: Iterable[str]) -> dict[str, list[dict[str, Any]]]:
        """Fetch every tab concurrently; a failing tab is logged and comes back empty."""
        tabs = list(tabs)
        start = time.perf_counter()
        results = await asyncio.gather(*(self.fetch_tab(tab) for tab in tabs), return_exceptions=True)
        out: dict[str, list[dict[str, Any]]] = {}
        for tab, result in zip(tabs, results):
            if isinstance(result, BaseException) and not isinstance(result, Exception):
                raise result
            if isinstance(result, Exception):
                logger.warning("Error fetching %s data: %s", tab, result)
                out[tab] = []
            else:
                out[tab] = result
        logger.info("Fetched %d tab(s) in %dms", len(tabs), int((time.perf_counter() - start) * 1000))
        return out

    async def check_health(self) -> tuple[bool, str, int | None]:
        if not self.is_configured:
            return False, "Sheet endpoint URL not configured", None
        try:
            start = time.perf_counter()
            resp = await asyncio.to_thread(lambda: requests.get(self._base_url, timeout=5))
            latency_ms = int((time.perf_counter() - start) * 1000)
            if resp.ok:
                return True, "Sheet endpoint is reachable", latency_ms
            return False, f"Sheet endpoint returned status {resp.status_code}", None
        except requests.exceptions.ConnectionError:
            return False, f"Cannot connect to sheet endpoint at {self._base_url}", None
        except Exception as e:
            return False, str(e), None
