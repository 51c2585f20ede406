"""Canonical schema (Pydantic) - Market, stats, details, series."""

from predhub.models.market import (
    BookLevel,
    CategoryStat,
    LiquidityBreakdown,
    Market,
    MarketDetails,
    MarketStats,
    OrderBookView,
    Platform,
    Sentiment,
    VolumeBreakdown,
)
from predhub.models.series import Candle, PricePoint

__all__ = [
    "Market",
    "Platform",
    "MarketStats",
    "CategoryStat",
    "MarketDetails",
    "VolumeBreakdown",
    "LiquidityBreakdown",
    "OrderBookView",
    "BookLevel",
    "Sentiment",
    "PricePoint",
    "Candle",
]
