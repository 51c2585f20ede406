"""Limitless Exchange adapter - REST market listing, search, lookup."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
import structlog
from pydantic import ValidationError

from predhub.adapters.base import PlatformAdapter
from predhub.adapters.normalize import (
    DEFAULT_OUTCOME_PRICES,
    DEFAULT_OUTCOMES,
    binary_prices,
    clamp,
    infer_category,
    matches_query,
    non_negative,
    parse_datetime,
    prefixed_id,
    try_parse_price_list,
)
from predhub.models import Market, Platform

log = structlog.get_logger(__name__)

LIMITLESS_API_BASE = "https://api.limitless.exchange"
MAX_PAGE_SIZE = 25

# Listing timeframe -> (path, extra params)
_TIMEFRAME_ROUTES: dict[str, tuple[str, dict[str, str]]] = {
    "24h": ("/markets/active", {"sort": "volume", "timeframe": "24h"}),
    "7d": ("/markets/active", {"sort": "volume", "timeframe": "7d"}),
    "30d": ("/markets/active", {"sort": "volume", "timeframe": "30d"}),
    "future": ("/markets/upcoming", {}),
    "trending": ("/markets/trending", {}),
}


def _prices(value: Any) -> list[float]:
    """Limitless quotes percentages (42.8) or fractions (0.428); normalize to [0, 1]."""
    parsed = try_parse_price_list(value)
    if parsed is None:
        parsed = [float(p) for p in DEFAULT_OUTCOME_PRICES]
    prices = [clamp(p / 100 if p > 1 else p) for p in parsed[:2]]
    while len(prices) < 2:
        prices.append(0.0)
    return prices


def _formatted_thousands(raw: dict[str, Any], key: str) -> float:
    """*Formatted fields are in thousands (164.1 -> 164_100)."""
    return non_negative(raw.get(f"{key}Formatted")) * 1000 or non_negative(raw.get(key))


def parse_market(raw: dict[str, Any], now: datetime | None = None) -> Market:
    """Convert a Limitless market object to the canonical Market."""
    now = now or datetime.now(timezone.utc)
    raw_id = raw.get("id") if raw.get("id") is not None else raw.get("slug")
    if raw_id is None or str(raw_id) == "":
        raise ValueError("market without id or slug")
    title = raw.get("title") or raw.get("question") or "Untitled"
    categories = raw.get("categories")
    if isinstance(categories, list) and categories and str(categories[0]).strip():
        category = str(categories[0]).strip()
    else:
        category = infer_category(title)
    prices = _prices(raw.get("prices"))
    yes_price, no_price = binary_prices(prices)
    volume = _formatted_thousands(raw, "volume")
    liquidity = _formatted_thousands(raw, "liquidity") or volume * 0.1
    status = str(raw.get("status") or "").upper()
    end_raw = raw.get("expirationTimestamp") or raw.get("expirationDate")
    created_at = parse_datetime(raw.get("createdAt"), default=now)
    slug = raw.get("slug")
    return Market(
        id=prefixed_id(Platform.LIMITLESS.value, raw_id),
        platform=Platform.LIMITLESS,
        title=title,
        description=raw.get("description") or "",
        category=category,
        active=status != "RESOLVED" and raw.get("expired") is not True,
        start_date=parse_datetime(raw.get("creationTimestamp"), default=created_at),
        end_date=parse_datetime(end_raw) if end_raw else now + timedelta(days=7),
        created_at=created_at,
        updated_at=parse_datetime(raw.get("updatedAt"), default=created_at),
        outcomes=list(DEFAULT_OUTCOMES),
        outcome_prices=prices,
        yes_price=yes_price,
        no_price=no_price,
        volume=volume,
        liquidity=liquidity,
        external_url=f"https://limitless.exchange/advanced/markets/{slug or raw_id}",
        extra={
            "slug": slug,
            "open_interest": _formatted_thousands(raw, "openInterest"),
            "tags": raw.get("tags") or [],
        },
    )


def parse_markets(data: Any) -> list[Market]:
    if isinstance(data, dict):
        rows = data.get("items") or data.get("data") or []
    elif isinstance(data, list):
        rows = data
    else:
        rows = []
    markets = []
    now = datetime.now(timezone.utc)
    for row in rows:
        if not isinstance(row, dict):
            continue
        try:
            markets.append(parse_market(row, now=now))
        except (ValidationError, ValueError, TypeError) as e:
            log.warning("skip_market", platform="limitless", market_id=row.get("id"), error=str(e))
    return markets


class LimitlessAdapter(PlatformAdapter):
    """Limitless REST client. The API serves at most 25 markets per page."""

    platform = Platform.LIMITLESS

    def __init__(
        self,
        api_base: str = LIMITLESS_API_BASE,
        page_size: int = MAX_PAGE_SIZE,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_base = api_base.rstrip("/")
        self.page_size = max(1, min(page_size, MAX_PAGE_SIZE))
        self.timeout = timeout
        self._transport = transport

    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        async with httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
            headers={"Accept": "application/json", "User-Agent": "PredHub/0.1"},
        ) as client:
            resp = await client.get(f"{self.api_base}{path}", params=params)
            resp.raise_for_status()
            if not resp.content:
                return {}
            return resp.json()

    async def _fetch_active(self, limit: int, offset: int, timeframe: str) -> list[Market]:
        path, extra = _TIMEFRAME_ROUTES.get(timeframe, ("/markets/active", {}))
        page = offset // self.page_size + 1
        params = {"page": page, "limit": min(max(limit, 1), self.page_size), **extra}
        return parse_markets(await self._get_json(path, params=params))

    async def _fetch_by_category(self, category: str, limit: int, timeframe: str) -> list[Market]:
        wanted = category.strip().lower()
        markets = await self._fetch_active(self.page_size, 0, timeframe)
        return [m for m in markets if m.category.lower() == wanted][:limit]

    async def _search(self, query: str, limit: int) -> list[Market]:
        data = await self._get_json("/markets/search", params={"query": query, "limit": min(limit, self.page_size)})
        markets = parse_markets(data)
        if markets:
            return markets
        # Search endpoint returned nothing usable; fall back to filtering the active page.
        active = await self._fetch_active(self.page_size, 0, "all")
        return [m for m in active if matches_query(query, m.title, m.description, m.category)]

    async def _fetch_by_id(self, raw_id: str) -> Market | None:
        try:
            data = await self._get_json(f"/markets/{raw_id}")
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                return None
            raise
        if not isinstance(data, dict) or not data:
            return None
        return parse_market(data)
