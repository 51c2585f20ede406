"""OHLC bucketing of price series and chart scale mapping."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from predhub.models import Candle, PricePoint
from predhub.series.generator import normalize_timeframe

_MINUTE_MS = 60_000

# timeframe -> bucket width ms
BUCKET_WIDTHS: dict[str, int] = {
    "1h": 5 * _MINUTE_MS,
    "6h": 15 * _MINUTE_MS,
    "24h": 30 * _MINUTE_MS,
    "7d": 120 * _MINUTE_MS,
    "30d": 240 * _MINUTE_MS,
}


def bucket_width(timeframe: str | None) -> int:
    return BUCKET_WIDTHS[normalize_timeframe(timeframe)]


def to_candles(points: Iterable[PricePoint], timeframe: str | None = "24h", fill_gaps: bool = False) -> list[Candle]:
    """
    Group points into floor(ts / width) * width buckets, one candle per non-empty bucket,
    ascending. With fill_gaps, empty buckets between the first and last candle become
    zero-volume candles at the previous close.
    """
    width = bucket_width(timeframe)
    buckets: dict[int, list[PricePoint]] = {}
    for p in sorted(points, key=lambda p: p.timestamp):
        buckets.setdefault((p.timestamp // width) * width, []).append(p)

    candles: list[Candle] = []
    for ts in sorted(buckets):
        if fill_gaps and candles:
            prev = candles[-1]
            gap_ts = prev.timestamp + width
            while gap_ts < ts:
                candles.append(
                    Candle(timestamp=gap_ts, open=prev.close, high=prev.close, low=prev.close, close=prev.close, volume=0.0)
                )
                gap_ts += width
        group = buckets[ts]
        prices = [p.price for p in group]
        candles.append(
            Candle(
                timestamp=ts,
                open=group[0].price,
                high=max(prices),
                low=min(prices),
                close=group[-1].price,
                volume=sum(p.volume for p in group),
            )
        )
    return candles


def price_range(candles: Sequence[Candle], padding: float = 0.15) -> tuple[float, float]:
    """(low, high) of the chart's price axis, padded by a fraction of the span. Never below 0."""
    if not candles:
        return 0.0, 1.0
    lo = min(c.low for c in candles)
    hi = max(c.high for c in candles)
    pad = (hi - lo) * padding
    return max(0.0, lo - pad), hi + pad


def volume_range(candles: Sequence[Candle]) -> tuple[float, float]:
    if not candles:
        return 0.0, 100.0
    return 0.0, max(c.volume for c in candles)


@dataclass
class ChartScale:
    """Maps candle space (ms, price, volume) onto a width x height pixel box with padding."""

    width: float
    height: float
    padding: float
    time_min: int
    time_max: int
    price_min: float
    price_max: float
    volume_max: float = 100.0

    @classmethod
    def for_candles(cls, candles: Sequence[Candle], width: float, height: float, padding: float = 40.0) -> ChartScale:
        price_min, price_max = price_range(candles)
        _, volume_max = volume_range(candles)
        timestamps = [c.timestamp for c in candles] or [0]
        return cls(
            width=width,
            height=height,
            padding=padding,
            time_min=min(timestamps),
            time_max=max(timestamps),
            price_min=price_min,
            price_max=price_max,
            volume_max=volume_max,
        )

    @property
    def plot_width(self) -> float:
        return max(0.0, self.width - 2 * self.padding)

    @property
    def plot_height(self) -> float:
        return max(0.0, self.height - 2 * self.padding)

    def x(self, timestamp: int) -> float:
        span = self.time_max - self.time_min
        if span <= 0:
            return self.padding
        return self.padding + (timestamp - self.time_min) / span * self.plot_width

    def y(self, price: float) -> float:
        """Higher prices map to smaller y (screen coordinates)."""
        span = self.price_max - self.price_min
        if span <= 0:
            return self.padding + self.plot_height / 2
        return self.padding + (1 - (price - self.price_min) / span) * self.plot_height

    def volume_height(self, volume: float, max_height: float | None = None) -> float:
        """Bar height for volume; max_height defaults to a fifth of the plot."""
        top = self.plot_height * 0.2 if max_height is None else max_height
        if self.volume_max <= 0:
            return 0.0
        return max(0.0, volume) / self.volume_max * top
