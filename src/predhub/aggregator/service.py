"""Aggregator - concurrent fan-out to platform adapters with partial-failure tolerance."""

from __future__ import annotations

import asyncio
import math
import random
from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime, timedelta, timezone
from typing import Any, TypeVar

import structlog

from predhub.adapters import LimitlessAdapter, PolkamarketsAdapter, PolymarketAdapter
from predhub.adapters.base import PlatformAdapter
from predhub.adapters.normalize import normalize_listing_timeframe
from predhub.config.settings import Settings
from predhub.models import CategoryStat, Market, MarketStats, PricePoint

log = structlog.get_logger(__name__)

T = TypeVar("T")

TOP_CATEGORIES = 10
TRENDING_MIN_VOLUME = 1000.0
HIGH_LIQUIDITY_MIN = 5000.0


def _by_volume(m: Market) -> float:
    return m.volume


def _by_volume_and_liquidity(m: Market) -> float:
    return m.volume + m.liquidity


def _by_liquidity(m: Market) -> float:
    return m.liquidity


def _by_end_date(m: Market) -> float:
    return m.end_date.timestamp()


def merge_markets(
    results: Sequence[Sequence[Market]], key: Callable[[Market], float], limit: int
) -> list[Market]:
    """
    Flatten per-adapter results, drop repeated ids (first occurrence wins),
    stable-sort descending by key and keep the first `limit`.
    """
    seen: set[str] = set()
    merged: list[Market] = []
    for markets in results:
        for m in markets:
            if m.id in seen:
                continue
            seen.add(m.id)
            merged.append(m)
    return sorted(merged, key=key, reverse=True)[:limit]


def combine_stats(results: Sequence[MarketStats], top_n: int = TOP_CATEGORIES) -> MarketStats:
    """Sum counts and volume, average per-adapter liquidity, merge categories by name."""
    if not results:
        return MarketStats()
    categories: dict[str, CategoryStat] = {}
    for stats in results:
        for cat in stats.top_categories:
            merged = categories.setdefault(cat.category, CategoryStat(category=cat.category))
            merged.count += cat.count
            merged.volume += cat.volume
    return MarketStats(
        total_markets=sum(s.total_markets for s in results),
        active_markets=sum(s.active_markets for s in results),
        total_volume=sum(s.total_volume for s in results),
        average_liquidity=sum(s.average_liquidity for s in results) / len(results),
        top_categories=sorted(categories.values(), key=lambda c: c.volume, reverse=True)[:top_n],
    )


def _normalize_limit(limit: Any) -> int:
    try:
        return max(0, int(limit))
    except (TypeError, ValueError):
        return 0


class Aggregator:
    """
    Fans every query out to all adapters at once and merges the results.

    Each adapter call is bounded by timeout_sec; an adapter that raises or times
    out contributes the empty result and the merge goes on with the rest.
    Cancellation of the caller propagates to every in-flight adapter call.
    """

    def __init__(
        self,
        adapters: Sequence[PlatformAdapter],
        timeout_sec: float = 12.0,
        rng: random.Random | None = None,
    ):
        self.adapters = list(adapters)
        self.timeout_sec = timeout_sec
        self.rng = rng or random.Random()

    def adapter_for(self, market_id: str) -> PlatformAdapter | None:
        """Adapter owning the "<platform>_" prefix of market_id, if any."""
        for adapter in self.adapters:
            if adapter.owns_id(market_id):
                return adapter
        return None

    async def _guarded(
        self, adapter: PlatformAdapter, op: str, call: Awaitable[T], empty: Callable[[], T]
    ) -> tuple[T, bool]:
        """(result, failed). Timeouts and exceptions become (empty(), True)."""
        try:
            return await asyncio.wait_for(call, timeout=self.timeout_sec), False
        except asyncio.TimeoutError:
            log.warning("adapter_timeout", platform=adapter.name, op=op, timeout_sec=self.timeout_sec)
        except Exception as e:
            log.warning("adapter_error", platform=adapter.name, op=op, error=str(e))
        return empty(), True

    async def _fan_out(
        self, op: str, call: Callable[[PlatformAdapter], Awaitable[T]], empty: Callable[[], T]
    ) -> list[T]:
        outcomes = await asyncio.gather(*(self._guarded(a, op, call(a), empty) for a in self.adapters))
        failures = sum(1 for _, failed in outcomes if failed)
        log.info("aggregation_complete", op=op, adapters=len(self.adapters), failures=failures)
        return [result for result, _ in outcomes]

    def _per_adapter(self, limit: int) -> int:
        return math.ceil(limit / len(self.adapters))

    async def _active(self, limit: Any, timeframe: str, key: Callable[[Market], float]) -> list[Market]:
        limit = _normalize_limit(limit)
        if limit == 0 or not self.adapters:
            return []
        per_adapter = self._per_adapter(limit)
        tf = normalize_listing_timeframe(timeframe)
        results = await self._fan_out("active", lambda a: a.get_active_markets(per_adapter, 0, tf), list)
        return merge_markets(results, key, limit)

    async def get_all_markets(self, limit: int, timeframe: str = "all") -> list[Market]:
        """Active markets from every platform, highest volume first."""
        return await self._active(limit, timeframe, _by_volume)

    async def search_markets(self, query: str, limit: int) -> list[Market]:
        """Queries shorter than two characters return [] without touching any adapter."""
        q = (query or "").strip()
        limit = _normalize_limit(limit)
        if len(q) < 2 or limit == 0 or not self.adapters:
            return []
        per_adapter = self._per_adapter(limit)
        results = await self._fan_out("search", lambda a: a.search_markets(q, per_adapter), list)
        return merge_markets(results, _by_volume_and_liquidity, limit)

    async def get_markets_by_category(self, category: str, limit: int, timeframe: str = "all") -> list[Market]:
        """Category filter fanned out to every platform; timeframe drives synthetic end dates."""
        limit = _normalize_limit(limit)
        if limit == 0 or not self.adapters or not (category or "").strip():
            return []
        per_adapter = self._per_adapter(limit)
        tf = normalize_listing_timeframe(timeframe)
        results = await self._fan_out(
            "category", lambda a: a.get_markets_by_category(category, per_adapter, tf), list
        )
        return merge_markets(results, _by_volume_and_liquidity, limit)

    async def get_featured_markets(self, limit: int) -> list[Market]:
        """Uniform shuffle of the top 2 * limit markets by volume."""
        limit = _normalize_limit(limit)
        if limit == 0:
            return []
        pool = await self.get_all_markets(limit * 2)
        self.rng.shuffle(pool)
        return pool[:limit]

    async def get_market_by_id(self, market_id: str) -> Market | None:
        """Route by platform prefix; unprefixed ids probe each adapter in turn."""
        if not market_id:
            return None
        owner = self.adapter_for(market_id)
        candidates = [owner] if owner is not None else self.adapters
        for adapter in candidates:
            market, _ = await self._guarded(adapter, "by_id", adapter.get_market_by_id(market_id), lambda: None)
            if market is not None:
                return market
        return None

    async def get_price_history(self, market_id: str, timeframe: str) -> list[PricePoint]:
        """Real history from the adapter owning the id prefix; [] when no adapter owns it."""
        adapter = self.adapter_for(market_id)
        if adapter is None:
            return []
        points, _ = await self._guarded(
            adapter, "price_history", adapter.get_price_history(market_id, timeframe), list
        )
        return points

    async def get_market_stats(self) -> MarketStats:
        if not self.adapters:
            return MarketStats()
        results = await self._fan_out("stats", lambda a: a.get_market_stats(), MarketStats)
        return combine_stats(results)

    # --- listing variants ---

    async def list_markets(
        self, limit: int, offset: int = 0, category: str | None = None, timeframe: str = "all"
    ) -> list[Market]:
        """Paged listing: fetch limit + offset merged markets, return the [offset, offset + limit) slice."""
        limit = _normalize_limit(limit)
        offset = _normalize_limit(offset)
        if limit == 0:
            return []
        if category and category.strip():
            markets = await self.get_markets_by_category(category, limit + offset, timeframe)
        else:
            markets = await self.get_all_markets(limit + offset, timeframe)
        return markets[offset : offset + limit]

    async def get_markets_by_timeframe(self, timeframe: str, limit: int) -> list[Market]:
        tf = normalize_listing_timeframe(timeframe)
        if tf == "future":
            key = _by_end_date
        elif tf == "trending":
            key = _by_volume_and_liquidity
        else:
            key = _by_volume
        return await self._active(limit, tf, key)

    async def get_trending_markets(self, limit: int) -> list[Market]:
        limit = _normalize_limit(limit)
        markets = await self.get_all_markets(limit * 2)
        return [m for m in markets if m.volume > TRENDING_MIN_VOLUME][:limit]

    async def get_high_liquidity_markets(self, limit: int) -> list[Market]:
        limit = _normalize_limit(limit)
        markets = await self.get_all_markets(limit * 2)
        liquid = [m for m in markets if m.liquidity > HIGH_LIQUIDITY_MIN]
        return sorted(liquid, key=_by_liquidity, reverse=True)[:limit]

    async def get_markets_ending_soon(self, hours: int, limit: int, now: datetime | None = None) -> list[Market]:
        """Active markets ending within `hours`, soonest first."""
        limit = _normalize_limit(limit)
        now = now or datetime.now(timezone.utc)
        cutoff = now + timedelta(hours=max(0, hours))
        markets = await self.get_all_markets(limit * 2)
        ending = [m for m in markets if m.active and m.end_date <= cutoff]
        return sorted(ending, key=_by_end_date)[:limit]

    async def get_platform_health(self) -> list[dict[str, Any]]:
        """Probe every adapter concurrently; a probe that raises or times out marks it down."""

        async def probe(adapter: PlatformAdapter) -> dict[str, Any]:
            _, failed = await self._guarded(adapter, "ping", adapter.ping(), lambda: None)
            return {
                "platform": adapter.name,
                "status": "down" if failed else "healthy",
                "checked_at": datetime.now(timezone.utc).isoformat(),
            }

        return list(await asyncio.gather(*(probe(a) for a in self.adapters)))


def build_aggregator(settings: Settings, rng: random.Random | None = None) -> Aggregator:
    """Aggregator over the adapters enabled in settings."""
    adapters: list[PlatformAdapter] = []
    if settings.polymarket_enabled:
        adapters.append(
            PolymarketAdapter(
                gamma_api_base=settings.gamma_api_base,
                clob_api_base=settings.clob_api_base,
                timeout=settings.polymarket_timeout_sec,
            )
        )
    if settings.polkamarkets_enabled:
        adapters.append(PolkamarketsAdapter(catalog_size=settings.polkamarkets_catalog_size))
    if settings.limitless_enabled:
        adapters.append(
            LimitlessAdapter(
                api_base=settings.limitless_api_base,
                page_size=settings.limitless_page_size,
                timeout=settings.limitless_timeout_sec,
            )
        )
    log.debug("aggregator_built", platforms=[a.name for a in adapters])
    return Aggregator(adapters, timeout_sec=settings.adapter_timeout_sec, rng=rng)
