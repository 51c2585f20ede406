"""Pydantic schemas for API request/response consistency and OpenAPI docs."""

from __future__ import annotations

from pydantic import BaseModel, Field

from predhub.models import Candle, Market, PricePoint


# --- Health ---
class HealthResponse(BaseModel):
    status: str = "ok"


class PlatformHealth(BaseModel):
    platform: str
    status: str = Field(..., description="healthy or down")
    checked_at: str


# --- Error (consistent shape for 4xx/5xx) ---
class ErrorResponse(BaseModel):
    detail: str = Field(..., description="Human-readable message")
    code: str | None = Field(None, description="Machine-readable code, e.g. not_found")


# --- Markets ---
class MarketsListResponse(BaseModel):
    markets: list[Market]
    total: int
    limit: int
    offset: int = 0


# --- Series ---
class PriceHistoryResponse(BaseModel):
    market_id: str
    time_range: str
    points: list[PricePoint]


class ChartAxes(BaseModel):
    time_min: int
    time_max: int
    price_min: float
    price_max: float
    volume_max: float


class CandleGeometry(BaseModel):
    """One candle placed in a width x height pixel box (y grows downward)."""

    timestamp: int
    x: float
    open_y: float
    close_y: float
    high_y: float
    low_y: float
    volume_height: float


class CandlesResponse(BaseModel):
    market_id: str
    time_range: str
    bucket_ms: int
    candles: list[Candle]
    axes: ChartAxes
    geometry: list[CandleGeometry] = Field(default_factory=list, description="Present when width and height are given")
