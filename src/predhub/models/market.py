"""Market, MarketStats, MarketDetails - canonical entities."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, model_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Platform(str, Enum):
    """Source platform. Value doubles as the market id prefix."""

    POLYMARKET = "polymarket"
    POLKAMARKETS = "polkamarkets"
    LIMITLESS = "limitless"
    MYRIAD = "myriad"


class Market(BaseModel):
    """Canonical market - platform-agnostic."""

    id: str  # "<platform>_<raw id>"
    platform: Platform
    title: str = ""
    description: str = ""
    category: str = "Other"
    active: bool = True
    start_date: datetime = Field(default_factory=_utcnow)
    end_date: datetime = Field(default_factory=_utcnow)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    outcomes: list[str] = Field(default_factory=lambda: ["Yes", "No"], min_length=2)
    outcome_prices: list[float] = Field(default_factory=lambda: [0.0, 0.0])
    yes_price: float = Field(0.0, ge=0, le=1)
    no_price: float = Field(0.0, ge=0, le=1)
    volume: float = Field(0.0, ge=0)
    liquidity: float = Field(0.0, ge=0)
    external_url: str | None = None
    extra: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_outcome_alignment(self) -> Market:
        if len(self.outcomes) != len(self.outcome_prices):
            raise ValueError(
                f"outcomes/outcome_prices length mismatch: {len(self.outcomes)} != {len(self.outcome_prices)}"
            )
        for p in self.outcome_prices:
            if not 0 <= p <= 1:
                raise ValueError(f"outcome price out of [0, 1]: {p}")
        return self

    @property
    def raw_id(self) -> str:
        """Id without the platform prefix."""
        prefix = f"{self.platform.value}_"
        return self.id[len(prefix):] if self.id.startswith(prefix) else self.id


class CategoryStat(BaseModel):
    category: str
    count: int = 0
    volume: float = 0.0


class MarketStats(BaseModel):
    """Per-platform (or aggregated) market statistics."""

    total_markets: int = 0
    active_markets: int = 0
    total_volume: float = 0.0
    average_liquidity: float = 0.0
    top_categories: list[CategoryStat] = Field(default_factory=list)

    @classmethod
    def from_markets(cls, markets: list[Market], top_n: int = 10) -> MarketStats:
        """Compute stats over a sample of markets (used by adapters without a stats endpoint)."""
        active = [m for m in markets if m.active]
        by_category: dict[str, CategoryStat] = {}
        for m in active:
            stat = by_category.setdefault(m.category, CategoryStat(category=m.category))
            stat.count += 1
            stat.volume += m.volume
        top = sorted(by_category.values(), key=lambda c: c.volume, reverse=True)[:top_n]
        return cls(
            total_markets=len(markets),
            active_markets=len(active),
            total_volume=sum(m.volume for m in markets),
            average_liquidity=(sum(m.liquidity for m in active) / len(active)) if active else 0.0,
            top_categories=top,
        )


class VolumeBreakdown(BaseModel):
    total: float
    volume_24h: float
    volume_7d: float
    volume_30d: float


class LiquidityBreakdown(BaseModel):
    total: float
    depth_yes: float
    depth_no: float


class BookLevel(BaseModel):
    price: float = Field(..., ge=0, le=1)
    size: float = Field(..., ge=0)


class OrderBookView(BaseModel):
    """Presentational order book - synthetic, not an exchange snapshot."""

    bids: list[BookLevel] = Field(default_factory=list)
    asks: list[BookLevel] = Field(default_factory=list)
    spread: float = 0.0


class Sentiment(BaseModel):
    bullish: float
    bearish: float
    neutral: float


class MarketDetails(BaseModel):
    """Market plus presentational sub-objects for the detail view."""

    market: Market
    volume: VolumeBreakdown
    liquidity: LiquidityBreakdown
    order_book: OrderBookView
    sentiment: Sentiment
