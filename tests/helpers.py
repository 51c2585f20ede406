"""In-memory adapter and market builders shared by tests."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

from predhub.adapters.base import PlatformAdapter
from predhub.models import Market, Platform, PricePoint


def make_market(
    market_id: str,
    platform: Platform = Platform.POLYMARKET,
    volume: float = 0.0,
    liquidity: float = 0.0,
    category: str = "Other",
    yes_price: float = 0.5,
    active: bool = True,
    end_date: datetime | None = None,
    title: str = "",
) -> Market:
    return Market(
        id=market_id,
        platform=platform,
        title=title or f"Market {market_id}",
        category=category,
        active=active,
        end_date=end_date or datetime(2030, 1, 1, tzinfo=timezone.utc),
        outcome_prices=[yes_price, round(1 - yes_price, 4)],
        yes_price=yes_price,
        no_price=round(1 - yes_price, 4),
        volume=volume,
        liquidity=liquidity,
    )


class FakeAdapter(PlatformAdapter):
    """Serves a fixed list; can raise, stall, or record calls."""

    def __init__(
        self,
        platform: Platform,
        markets: list[Market] | None = None,
        error: Exception | None = None,
        delay: float = 0.0,
        history: list[PricePoint] | None = None,
    ):
        self.platform = platform
        self.markets = markets or []
        self.error = error
        self.delay = delay
        self.history = history or []
        self.calls: list[tuple[str, object]] = []
        self.timeframes: list[str] = []
        self.cancelled = False

    async def _maybe_fail(self) -> None:
        if self.delay:
            try:
                await asyncio.sleep(self.delay)
            except asyncio.CancelledError:
                self.cancelled = True
                raise
        if self.error is not None:
            raise self.error

    async def _fetch_active(self, limit: int, offset: int, timeframe: str) -> list[Market]:
        self.calls.append(("active", limit))
        await self._maybe_fail()
        return self.markets[offset : offset + limit]

    async def _fetch_by_category(self, category: str, limit: int, timeframe: str) -> list[Market]:
        self.calls.append(("category", category))
        self.timeframes.append(timeframe)
        await self._maybe_fail()
        return [m for m in self.markets if m.category.lower() == category.lower()][:limit]

    async def _search(self, query: str, limit: int) -> list[Market]:
        self.calls.append(("search", query))
        await self._maybe_fail()
        return [m for m in self.markets if query.lower() in m.title.lower()][:limit]

    async def _fetch_by_id(self, raw_id: str) -> Market | None:
        self.calls.append(("by_id", raw_id))
        await self._maybe_fail()
        for m in self.markets:
            if m.raw_id == raw_id or m.id == raw_id:
                return m
        return None

    async def _fetch_price_history(self, raw_id: str, timeframe: str) -> list[PricePoint]:
        self.calls.append(("history", raw_id))
        await self._maybe_fail()
        return list(self.history)
