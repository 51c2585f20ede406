"""Shared normalization helpers: numeric coercion, price/outcome parsing, category inference."""

from __future__ import annotations

import json
import math
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol

import structlog

log = structlog.get_logger(__name__)

DEFAULT_OUTCOMES = ("Yes", "No")
DEFAULT_OUTCOME_PRICES = ("0", "0")

LISTING_TIMEFRAMES = ("all", "24h", "7d", "30d", "future", "trending")

# Checked in order; first match wins.
CATEGORY_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    (
        "Politics",
        re.compile(
            r"trump|biden|election|president|congress|senate|white house|political|politics|vote|"
            r"democrat|republican|governor|mayor|immigration|deport",
            re.IGNORECASE,
        ),
    ),
    (
        "Crypto",
        re.compile(
            r"bitcoin|btc|ethereum|eth|crypto|blockchain|defi|nft|solana|ada|cardano|polygon|matic|"
            r"usdt|tether|usdc|binance",
            re.IGNORECASE,
        ),
    ),
    (
        "Economics",
        re.compile(
            r"recession|gdp|inflation|federal reserve|fed|interest rate|stock|market cap|economy|"
            r"nasdaq|s&p|dow jones|treasury|bond|gold|commodities",
            re.IGNORECASE,
        ),
    ),
    (
        "Technology",
        re.compile(
            r"ai |artificial intelligence|chatgpt|openai|google|meta|microsoft|apple|nvidia|amd|"
            r"tesla|spacex|tech|software|hardware|chip|semiconductor|gemini|deepseek",
            re.IGNORECASE,
        ),
    ),
    (
        "Sports",
        re.compile(
            r"nba|nfl|soccer|football|baseball|basketball|hockey|olympics|championship|match|game|"
            r"sport|player|team|super bowl",
            re.IGNORECASE,
        ),
    ),
    (
        "Entertainment",
        re.compile(
            r"movie|film|oscar|grammy|emmy|music|album|song|celebrity|actor|actress|director|"
            r"box office|streaming|netflix|disney|avatar|wicked|marvel|dc",
            re.IGNORECASE,
        ),
    ),
    (
        "Science",
        re.compile(
            r"pandemic|covid|virus|vaccine|disease|health|medical|science|research|climate|weather|"
            r"hurricane|earthquake",
            re.IGNORECASE,
        ),
    ),
    (
        "Business",
        re.compile(
            r"ceo|company|corporation|business|startup|ipo|merger|acquisition|earnings|revenue|"
            r"profit|amazon|walmart|microstrategy",
            re.IGNORECASE,
        ),
    ),
    (
        "Space",
        re.compile(r"spacex|rocket|launch|satellite|mars|moon|nasa|space|starship", re.IGNORECASE),
    ),
]


class RandomSource(Protocol):
    """Anything with random() -> float in [0, 1). random.Random satisfies this."""

    def random(self) -> float: ...


def to_float(value: Any, default: float = 0.0) -> float:
    """Coerce str/int/float to a finite float; anything else gives default."""
    if value is None or isinstance(value, bool):
        return default
    try:
        f = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(f) or math.isinf(f):
        return default
    return f


def non_negative(value: Any) -> float:
    """Volume/liquidity coercion: negative, NaN or garbage -> 0."""
    return max(0.0, to_float(value))


def clamp(value: float, lo: float = 0.0, hi: float = 1.0) -> float:
    return max(lo, min(hi, value))


def _split_list_string(s: str) -> list[Any] | None:
    s = s.strip()
    if not s:
        return None
    if s.startswith("["):
        try:
            loaded = json.loads(s)
        except json.JSONDecodeError:
            return None
        return loaded if isinstance(loaded, list) else None
    return [part.strip() for part in s.split(",")]


def try_parse_price_list(value: Any) -> list[float] | None:
    """
    Parse a JSON-encoded string, comma-separated string, or native list into floats.
    Returns None when any element is not numeric or the shape is unknown.
    """
    if isinstance(value, (list, tuple)):
        items: list[Any] | None = list(value)
    elif isinstance(value, str):
        items = _split_list_string(value)
    else:
        items = None
    if not items:
        return None
    out = []
    for item in items:
        if isinstance(item, bool):
            return None
        try:
            f = float(item)
        except (TypeError, ValueError):
            return None
        if math.isnan(f) or math.isinf(f):
            return None
        out.append(f)
    return out


def parse_outcome_prices(value: Any, default: tuple[str, ...] = DEFAULT_OUTCOME_PRICES) -> list[float]:
    """Prices clamped to [0, 1]; unparseable input falls back to default (["0", "0"])."""
    parsed = try_parse_price_list(value)
    if parsed is None:
        log.debug("price_parse_fallback", raw=str(value)[:80])
        parsed = [float(p) for p in default]
    return [clamp(p) for p in parsed]


def parse_outcomes(value: Any) -> list[str]:
    """Outcome names from list or string forms; fewer than two names falls back to Yes/No."""
    names: list[Any] | None
    if isinstance(value, (list, tuple)):
        names = list(value)
    elif isinstance(value, str):
        names = _split_list_string(value)
    else:
        names = None
    if not names:
        return list(DEFAULT_OUTCOMES)
    cleaned = [str(n).strip() for n in names if n is not None and str(n).strip()]
    if len(cleaned) < 2:
        return list(DEFAULT_OUTCOMES)
    return cleaned


def align_prices(outcomes: list[str], prices: list[float]) -> list[float]:
    """Pad with 0.0 or truncate so len(prices) == len(outcomes)."""
    aligned = list(prices[: len(outcomes)])
    while len(aligned) < len(outcomes):
        aligned.append(0.0)
    return aligned


def binary_prices(prices: list[float]) -> tuple[float, float]:
    """(yes, no) from outcome prices. no = 1 - yes unless a positive second price is known."""
    yes = clamp(prices[0]) if prices else 0.0
    if len(prices) >= 2 and prices[1] > 0:
        return yes, clamp(prices[1])
    return yes, clamp(1.0 - yes)


def infer_category(title: str | None) -> str:
    """Keyword category for a market title. Pure; same title -> same category."""
    text = title or ""
    for name, pattern in CATEGORY_PATTERNS:
        if pattern.search(text):
            return name
    return "Other"


def resolve_category(explicit: Any, title: str | None) -> str:
    """Explicit category if non-empty, else inferred from title."""
    if isinstance(explicit, str) and explicit.strip():
        return explicit.strip()
    return infer_category(title)


def parse_datetime(value: Any, default: datetime | None = None) -> datetime:
    """ISO-8601 string, epoch seconds/ms, or datetime -> aware UTC datetime."""
    fallback = default or datetime.now(timezone.utc)
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        ts = float(value)
        if ts > 1e12:
            ts /= 1000.0
        try:
            return datetime.fromtimestamp(ts, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return fallback
    if isinstance(value, str) and value.strip():
        s = value.strip()
        if s.isdigit():
            return parse_datetime(int(s), default=fallback)
        if s.endswith("Z"):
            s = s[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(s)
        except ValueError:
            return fallback
        return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)
    return fallback


def normalize_listing_timeframe(timeframe: str | None) -> str:
    tf = (timeframe or "all").strip().lower()
    return tf if tf in LISTING_TIMEFRAMES else "all"


def synthetic_end_date(timeframe: str | None, rng: RandomSource, now: datetime | None = None) -> datetime:
    """End date for sources without one, spread over the horizon the timeframe implies."""
    now = now or datetime.now(timezone.utc)
    tf = normalize_listing_timeframe(timeframe)
    if tf == "24h":
        days = rng.random()
    elif tf == "7d":
        days = rng.random() * 7
    elif tf == "30d":
        days = rng.random() * 30
    elif tf == "future":
        days = 30 + rng.random() * 150
    elif tf == "trending":
        days = rng.random() * 7 if rng.random() < 0.3 else rng.random() * 90
    else:
        days = rng.random() * 365
    return now + timedelta(days=days)


def prefixed_id(platform: str, raw_id: Any) -> str:
    return f"{platform}_{raw_id}"


def matches_query(query: str, *fields: str | None) -> bool:
    """Case-insensitive substring match over any of the given fields."""
    q = query.strip().lower()
    if not q:
        return False
    return any(q in (f or "").lower() for f in fields)
