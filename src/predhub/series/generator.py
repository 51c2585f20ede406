"""
Synthetic price/volume series for markets without usable tick history.

Price is a bounded random walk: a decaying trend, a volatility term whose scale
is itself mean-reverting with occasional shocks, and a fixed-frequency cycle.
Volume follows time of day and day of week, and spikes while volatility is high.
"""

from __future__ import annotations

import math
import random
import time
from dataclasses import dataclass
from datetime import datetime, timezone

from predhub.adapters.normalize import RandomSource, clamp
from predhub.models import PricePoint

# timeframe -> (points, interval ms)
TIMEFRAMES: dict[str, tuple[int, int]] = {
    "1h": (60, 60_000),
    "6h": (72, 300_000),
    "24h": (96, 900_000),
    "7d": (168, 3_600_000),
    "30d": (120, 21_600_000),
}
DEFAULT_TIMEFRAME = "24h"

PRICE_FLOOR = 0.01
PRICE_CEIL = 0.99
VOLATILITY_FLOOR = 0.01
VOLATILITY_CAP = 0.05
SHOCK_PROBABILITY = 0.1
HIGH_VOLATILITY = 0.03
MAX_BASE_VOLUME = 15_000


def normalize_timeframe(timeframe: str | None) -> str:
    tf = (timeframe or DEFAULT_TIMEFRAME).strip().lower()
    return tf if tf in TIMEFRAMES else DEFAULT_TIMEFRAME


def _uniform(rng: RandomSource, lo: float, hi: float) -> float:
    return lo + rng.random() * (hi - lo)


@dataclass(frozen=True)
class WalkState:
    price: float
    volatility: float


def step(state: WalkState, progress: float, trend: float, rng: RandomSource) -> tuple[WalkState, float]:
    """
    Advance the walk one point. progress is i / n in [0, 1).

    Returns (next state, volatility used for this step's price move). Draws two
    randoms, in order: the volatility term, then the shock roll.
    """
    trend_component = trend * (1 - progress * 0.5) * 0.01
    volatility_component = _uniform(rng, -0.5, 0.5) * state.volatility
    cycle_component = math.sin(progress * 4 * math.pi) * 0.005
    price = clamp(state.price + trend_component + volatility_component + cycle_component, PRICE_FLOOR, PRICE_CEIL)
    if rng.random() < SHOCK_PROBABILITY:
        volatility = min(VOLATILITY_CAP, state.volatility * 1.5)
    else:
        volatility = max(VOLATILITY_FLOOR, state.volatility * 0.99)
    return WalkState(price=price, volatility=volatility), state.volatility


def volume_multiplier(timestamp_ms: int, volatility: float) -> float:
    """Trading-hours profile (UTC), weekend damping, high-volatility spike."""
    dt = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
    if 9 <= dt.hour <= 17:
        mult = 2.0
    elif 18 <= dt.hour <= 22:
        mult = 1.2
    else:
        mult = 0.3
    if dt.weekday() >= 5:
        mult *= 0.4
    if volatility > HIGH_VOLATILITY:
        mult *= 3.0
    return mult


def generate_series(
    timeframe: str | None = DEFAULT_TIMEFRAME,
    rng: RandomSource | None = None,
    now_ms: int | None = None,
    start_price: float | None = None,
) -> list[PricePoint]:
    """
    Points ending just before now_ms, one interval apart, strictly increasing.
    Same rng seed and now_ms give identical output.
    """
    rng = rng or random.Random()
    now_ms = int(time.time() * 1000) if now_ms is None else now_ms
    count, interval = TIMEFRAMES[normalize_timeframe(timeframe)]

    if start_price is None:
        price = _uniform(rng, 0.15, 0.85)
    else:
        price = clamp(start_price, PRICE_FLOOR, PRICE_CEIL)
    trend = _uniform(rng, -0.15, 0.15)
    state = WalkState(price=price, volatility=_uniform(rng, 0.01, 0.04))

    points = []
    for i in range(count):
        ts = now_ms - (count - i) * interval
        state, _ = step(state, i / count, trend, rng)
        volume = round(rng.random() * MAX_BASE_VOLUME * volume_multiplier(ts, state.volatility))
        points.append(PricePoint(timestamp=ts, price=round(state.price, 4), volume=volume))
    return points
