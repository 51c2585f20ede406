"""FastAPI app exposing aggregated markets, price history and candles."""

from __future__ import annotations

import random
from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from predhub.adapters.normalize import normalize_listing_timeframe
from predhub.aggregator.service import Aggregator, build_aggregator
from predhub.api.params import parse_bool, parse_int
from predhub.api.schemas import (
    CandleGeometry,
    CandlesResponse,
    ChartAxes,
    ErrorResponse,
    HealthResponse,
    MarketsListResponse,
    PlatformHealth,
    PriceHistoryResponse,
)
from predhub.config import get_settings
from predhub.models import Candle, MarketDetails, MarketStats
from predhub.series.generator import normalize_timeframe
from predhub.series.history import MAX_HISTORY_POINTS, PriceHistoryService
from predhub.series.ohlc import ChartScale, bucket_width

log = structlog.get_logger(__name__)

MAX_LIMIT = 500
DEFAULT_HOURS = 24
MAX_HOURS = 24 * 365
MAX_CHART_PX = 4096

# Set by run_api() before uvicorn builds the app.
_config_profile: str | None = None


def _error_json(code: str, message: str, status_code: int = 404) -> JSONResponse:
    """Return consistent error JSON: { detail, code }."""
    return JSONResponse(
        status_code=status_code,
        content={"detail": message, "code": code},
    )


def _aggregator(request: Request) -> Aggregator:
    return request.app.state.aggregator


def _history(request: Request) -> PriceHistoryService:
    return request.app.state.history


def _limit(request: Request, value: str | None) -> int:
    return parse_int(value, request.app.state.default_limit, 1, request.app.state.max_limit)


def _place(scale: ChartScale, candle: Candle) -> CandleGeometry:
    return CandleGeometry(
        timestamp=candle.timestamp,
        x=scale.x(candle.timestamp),
        open_y=scale.y(candle.open),
        close_y=scale.y(candle.close),
        high_y=scale.y(candle.high),
        low_y=scale.y(candle.low),
        volume_height=scale.volume_height(candle.volume),
    )


def create_app(
    aggregator: Aggregator | None = None,
    history: PriceHistoryService | None = None,
    profile: str | None = None,
) -> FastAPI:
    """Build the app. Without an aggregator, one is wired from config (profile or run_api's)."""
    settings = get_settings(profile or _config_profile)
    if aggregator is None:
        aggregator = build_aggregator(settings)
    if history is None:
        history = PriceHistoryService(aggregator, rng=random.Random(), min_real_points=settings.min_real_points)

    app = FastAPI(title="PredHub API", version="0.1.0")
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])
    app.state.aggregator = aggregator
    app.state.history = history
    max_limit = settings.max_limit if settings.max_limit > 0 else MAX_LIMIT
    app.state.max_limit = max_limit
    app.state.default_limit = max(1, min(settings.default_limit, max_limit))

    @app.get("/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.get("/platforms/health", response_model=list[PlatformHealth])
    async def platforms_health(request: Request) -> list[dict[str, Any]]:
        return await _aggregator(request).get_platform_health()

    @app.get("/markets", response_model=MarketsListResponse)
    async def markets_list(
        request: Request,
        limit: str | None = None,
        offset: str | None = None,
        category: str | None = None,
        timeframe: str | None = None,
    ) -> MarketsListResponse:
        """Merged listing across platforms; optional category and timeframe filters."""
        n = _limit(request, limit)
        off = parse_int(offset, 0, 0)
        markets = await _aggregator(request).list_markets(
            n, off, category=category, timeframe=normalize_listing_timeframe(timeframe)
        )
        return MarketsListResponse(markets=markets, total=len(markets), limit=n, offset=off)

    @app.get("/markets/search", response_model=MarketsListResponse)
    async def markets_search(request: Request, q: str | None = None, limit: str | None = None) -> MarketsListResponse:
        n = _limit(request, limit)
        markets = await _aggregator(request).search_markets(q or "", n)
        return MarketsListResponse(markets=markets, total=len(markets), limit=n)

    @app.get("/markets/featured", response_model=MarketsListResponse)
    async def markets_featured(request: Request, limit: str | None = None) -> MarketsListResponse:
        n = _limit(request, limit)
        markets = await _aggregator(request).get_featured_markets(n)
        return MarketsListResponse(markets=markets, total=len(markets), limit=n)

    @app.get("/markets/trending", response_model=MarketsListResponse)
    async def markets_trending(request: Request, limit: str | None = None) -> MarketsListResponse:
        n = _limit(request, limit)
        markets = await _aggregator(request).get_trending_markets(n)
        return MarketsListResponse(markets=markets, total=len(markets), limit=n)

    @app.get("/markets/high-liquidity", response_model=MarketsListResponse)
    async def markets_high_liquidity(request: Request, limit: str | None = None) -> MarketsListResponse:
        n = _limit(request, limit)
        markets = await _aggregator(request).get_high_liquidity_markets(n)
        return MarketsListResponse(markets=markets, total=len(markets), limit=n)

    @app.get("/markets/ending-soon", response_model=MarketsListResponse)
    async def markets_ending_soon(
        request: Request, hours: str | None = None, limit: str | None = None
    ) -> MarketsListResponse:
        n = _limit(request, limit)
        h = parse_int(hours, DEFAULT_HOURS, 1, MAX_HOURS)
        markets = await _aggregator(request).get_markets_ending_soon(h, n)
        return MarketsListResponse(markets=markets, total=len(markets), limit=n)

    @app.get("/markets/stats", response_model=MarketStats)
    async def markets_stats(request: Request) -> MarketStats:
        return await _aggregator(request).get_market_stats()

    @app.get(
        "/markets/{market_id}",
        response_model=MarketDetails,
        responses={404: {"description": "Market not found", "model": ErrorResponse}},
    )
    async def market_detail(request: Request, market_id: str):
        """Market plus synthetic volume/liquidity/order book/sentiment. 404 if no platform knows the id."""
        details = await _history(request).get_market_details(market_id)
        if details is None:
            return _error_json("not_found", f"Market not found: {market_id}")
        return details

    @app.get("/markets/{market_id}/history", response_model=PriceHistoryResponse)
    async def market_history(
        request: Request, market_id: str, time_range: str | None = None, limit: str | None = None
    ) -> PriceHistoryResponse:
        """Real price history when the platform has enough of it, else a synthetic series."""
        tf = normalize_timeframe(time_range)
        n = parse_int(limit, MAX_HISTORY_POINTS, 1, MAX_HISTORY_POINTS)
        points = await _history(request).get_price_history(market_id, tf, n)
        return PriceHistoryResponse(market_id=market_id, time_range=tf, points=points)

    @app.get("/markets/{market_id}/candles", response_model=CandlesResponse)
    async def market_candles(
        request: Request,
        market_id: str,
        time_range: str | None = None,
        fill_gaps: str | None = None,
        width: str | None = None,
        height: str | None = None,
        padding: str | None = None,
    ) -> CandlesResponse:
        """Candles plus chart axes; pixel geometry too when width and height are given."""
        tf = normalize_timeframe(time_range)
        candles = await _history(request).get_candles(market_id, tf, fill_gaps=parse_bool(fill_gaps))
        w = parse_int(width, 0, 0, MAX_CHART_PX)
        h = parse_int(height, 0, 0, MAX_CHART_PX)
        scale = ChartScale.for_candles(candles, w, h, padding=parse_int(padding, 40, 0, MAX_CHART_PX // 2))
        axes = ChartAxes(
            time_min=scale.time_min,
            time_max=scale.time_max,
            price_min=scale.price_min,
            price_max=scale.price_max,
            volume_max=scale.volume_max,
        )
        geometry = [_place(scale, c) for c in candles] if w and h else []
        return CandlesResponse(
            market_id=market_id, time_range=tf, bucket_ms=bucket_width(tf), candles=candles, axes=axes, geometry=geometry
        )

    log.debug("api_app_created", platforms=[a.name for a in aggregator.adapters])
    return app


def run_api(host: str = "127.0.0.1", port: int = 8000, profile: str | None = None) -> None:
    global _config_profile
    _config_profile = profile
    import uvicorn
    uvicorn.run("predhub.api.main:create_app", factory=True, host=host, port=port, reload=False)
