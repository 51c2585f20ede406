"""Price history with synthetic fallback, candles, and synthetic market details."""

from __future__ import annotations

import random

import structlog

from predhub.adapters.normalize import clamp
from predhub.aggregator.service import Aggregator
from predhub.models import (
    BookLevel,
    Candle,
    LiquidityBreakdown,
    Market,
    MarketDetails,
    OrderBookView,
    PricePoint,
    Sentiment,
    VolumeBreakdown,
)
from predhub.series.generator import generate_series, normalize_timeframe
from predhub.series.ohlc import to_candles

log = structlog.get_logger(__name__)

MAX_HISTORY_POINTS = 500
BOOK_LEVELS = 5
TICK = 0.01


def _strictly_increasing(points: list[PricePoint]) -> list[PricePoint]:
    """Sort by timestamp; for repeated timestamps keep the last point."""
    out: list[PricePoint] = []
    for p in sorted(points, key=lambda p: p.timestamp):
        if out and out[-1].timestamp == p.timestamp:
            out[-1] = p
        else:
            out.append(p)
    return out


class PriceHistoryService:
    """
    Chart data for a market. Real adapter history is used when it has at least
    min_real_points points; otherwise a synthetic series is generated, starting
    from the last real price or the market's yes_price when either is known.
    """

    def __init__(self, aggregator: Aggregator, rng: random.Random | None = None, min_real_points: int = 10):
        self.aggregator = aggregator
        self.rng = rng or random.Random()
        self.min_real_points = min_real_points

    async def _start_price(self, market_id: str, real: list[PricePoint]) -> float | None:
        if real:
            return real[-1].price
        market = await self.aggregator.get_market_by_id(market_id)
        if market is not None and market.yes_price > 0:
            return market.yes_price
        return None

    async def get_price_history(
        self,
        market_id: str,
        time_range: str = "24h",
        limit: int = MAX_HISTORY_POINTS,
        now_ms: int | None = None,
    ) -> list[PricePoint]:
        """Most recent `limit` points, ascending by timestamp."""
        limit = max(0, limit)
        if limit == 0:
            return []
        tf = normalize_timeframe(time_range)
        real = _strictly_increasing(await self.aggregator.get_price_history(market_id, tf))
        if len(real) >= self.min_real_points:
            points = real
        else:
            log.info("history_synthetic", market_id=market_id, time_range=tf, real_points=len(real))
            start_price = await self._start_price(market_id, real)
            points = generate_series(tf, rng=self.rng, now_ms=now_ms, start_price=start_price)
        return points[-limit:]

    async def get_candles(
        self, market_id: str, time_range: str = "24h", fill_gaps: bool = False, now_ms: int | None = None
    ) -> list[Candle]:
        tf = normalize_timeframe(time_range)
        points = await self.get_price_history(market_id, tf, limit=MAX_HISTORY_POINTS, now_ms=now_ms)
        return to_candles(points, tf, fill_gaps=fill_gaps)

    async def get_market_details(self, market_id: str) -> MarketDetails | None:
        market = await self.aggregator.get_market_by_id(market_id)
        if market is None:
            return None
        return build_details(market, self.rng)


def build_details(market: Market, rng: random.Random) -> MarketDetails:
    """Presentational breakdowns derived from yes_price, volume and liquidity (not exchange data)."""
    vol = market.volume
    volume_24h = market.extra.get("volume_24h") or vol * (0.02 + rng.random() * 0.06)
    volume_7d = max(volume_24h, vol * (0.15 + rng.random() * 0.2))
    volume_30d = max(volume_7d, vol * (0.5 + rng.random() * 0.3))

    depth_yes = market.liquidity * market.yes_price
    liquidity = LiquidityBreakdown(
        total=market.liquidity, depth_yes=depth_yes, depth_no=max(0.0, market.liquidity - depth_yes)
    )

    spread = round(TICK + rng.random() * 2 * TICK, 4)
    mid = clamp(market.yes_price, TICK, 1 - TICK)
    bids = []
    asks = []
    for i in range(BOOK_LEVELS):
        size = round(market.liquidity * (0.02 + rng.random() * 0.08), 2)
        bids.append(BookLevel(price=round(clamp(mid - spread / 2 - i * TICK), 4), size=size))
        size = round(market.liquidity * (0.02 + rng.random() * 0.08), 2)
        asks.append(BookLevel(price=round(clamp(mid + spread / 2 + i * TICK), 4), size=size))

    jitter = (rng.random() - 0.5) * 10
    bullish = clamp(market.yes_price * 80 + jitter, 0, 100)
    bearish = clamp(market.no_price * 80 - jitter, 0, 100 - bullish)
    sentiment = Sentiment(
        bullish=round(bullish, 1), bearish=round(bearish, 1), neutral=round(100 - bullish - bearish, 1)
    )

    return MarketDetails(
        market=market,
        volume=VolumeBreakdown(total=vol, volume_24h=volume_24h, volume_7d=volume_7d, volume_30d=volume_30d),
        liquidity=liquidity,
        order_book=OrderBookView(bids=bids, asks=asks, spread=spread),
        sentiment=sentiment,
    )
