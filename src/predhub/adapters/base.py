"""Abstract platform adapter (Polymarket, Polkamarkets, Limitless, ...)."""

from __future__ import annotations

from abc import ABC, abstractmethod

import structlog

from predhub.models import Market, MarketStats, Platform, PricePoint

log = structlog.get_logger(__name__)


class PlatformAdapter(ABC):
    """
    One external market source mapped to the canonical Market record.

    Public methods never raise: a failing fetcher is logged and degrades to an
    empty list, None, or empty stats. Subclasses implement the _fetch_* methods
    and are free to raise from them.
    """

    platform: Platform

    @property
    def name(self) -> str:
        return self.platform.value

    def owns_id(self, market_id: str) -> bool:
        return market_id.startswith(f"{self.platform.value}_")

    def strip_prefix(self, market_id: str) -> str:
        prefix = f"{self.platform.value}_"
        return market_id[len(prefix):] if market_id.startswith(prefix) else market_id

    # --- fetchers (may raise) ---

    @abstractmethod
    async def _fetch_active(self, limit: int, offset: int, timeframe: str) -> list[Market]:
        ...

    @abstractmethod
    async def _fetch_by_category(self, category: str, limit: int, timeframe: str) -> list[Market]:
        ...

    @abstractmethod
    async def _search(self, query: str, limit: int) -> list[Market]:
        ...

    @abstractmethod
    async def _fetch_by_id(self, raw_id: str) -> Market | None:
        ...

    async def _fetch_stats(self) -> MarketStats:
        return MarketStats.from_markets(await self._fetch_active(100, 0, "all"))

    async def _fetch_price_history(self, raw_id: str, timeframe: str) -> list[PricePoint]:
        return []

    # --- non-throwing contract ---

    async def get_active_markets(self, limit: int, offset: int = 0, timeframe: str = "all") -> list[Market]:
        try:
            return (await self._fetch_active(limit, offset, timeframe))[:max(0, limit)]
        except Exception as e:
            log.warning("adapter_error", platform=self.name, op="active", error=str(e))
            return []

    async def get_markets_by_category(self, category: str, limit: int, timeframe: str = "all") -> list[Market]:
        try:
            return (await self._fetch_by_category(category, limit, timeframe))[:max(0, limit)]
        except Exception as e:
            log.warning("adapter_error", platform=self.name, op="category", category=category, error=str(e))
            return []

    async def search_markets(self, query: str, limit: int) -> list[Market]:
        try:
            return (await self._search(query, limit))[:max(0, limit)]
        except Exception as e:
            log.warning("adapter_error", platform=self.name, op="search", query=query, error=str(e))
            return []

    async def get_market_by_id(self, raw_id: str) -> Market | None:
        try:
            return await self._fetch_by_id(self.strip_prefix(raw_id))
        except Exception as e:
            log.warning("adapter_error", platform=self.name, op="by_id", market_id=raw_id, error=str(e))
            return None

    async def get_market_stats(self) -> MarketStats:
        try:
            return await self._fetch_stats()
        except Exception as e:
            log.warning("adapter_error", platform=self.name, op="stats", error=str(e))
            return MarketStats()

    async def get_price_history(self, raw_id: str, timeframe: str) -> list[PricePoint]:
        try:
            points = await self._fetch_price_history(self.strip_prefix(raw_id), timeframe)
        except Exception as e:
            log.warning("adapter_error", platform=self.name, op="price_history", market_id=raw_id, error=str(e))
            return []
        return sorted(points, key=lambda p: p.timestamp)

    async def ping(self) -> None:
        """Unguarded probe for health checks; raises on failure."""
        await self._fetch_active(1, 0, "all")
