"""PricePoint, Candle - chart series."""

from pydantic import BaseModel, Field


class PricePoint(BaseModel):
    """Single point of a price/volume series."""

    timestamp: int  # ms epoch
    price: float = Field(..., ge=0, le=1)
    volume: float = Field(0.0, ge=0)


class Candle(BaseModel):
    """OHLC summary of one time bucket."""

    timestamp: int  # bucket start, ms epoch
    open: float
    high: float
    low: float
    close: float
    volume: float = Field(0.0, ge=0)
