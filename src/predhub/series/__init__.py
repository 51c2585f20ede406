"""Price series: synthetic generation, OHLC bucketing, history with fallback."""

from predhub.series.generator import TIMEFRAMES, WalkState, generate_series, normalize_timeframe, step
from predhub.series.history import PriceHistoryService
from predhub.series.ohlc import BUCKET_WIDTHS, ChartScale, price_range, to_candles, volume_range

__all__ = [
    "TIMEFRAMES",
    "WalkState",
    "step",
    "generate_series",
    "normalize_timeframe",
    "BUCKET_WIDTHS",
    "to_candles",
    "price_range",
    "volume_range",
    "ChartScale",
    "PriceHistoryService",
]
