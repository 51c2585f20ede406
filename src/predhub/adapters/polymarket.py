"""Polymarket adapter - Gamma API market metadata, CLOB price history."""

from __future__ import annotations

import json
from typing import Any

import httpx
import structlog
from pydantic import ValidationError

from predhub.adapters.base import PlatformAdapter
from predhub.adapters.normalize import (
    align_prices,
    binary_prices,
    matches_query,
    non_negative,
    parse_datetime,
    parse_outcome_prices,
    parse_outcomes,
    prefixed_id,
    resolve_category,
    to_float,
)
from predhub.models import Market, Platform, PricePoint

log = structlog.get_logger(__name__)

GAMMA_API_BASE = "https://gamma-api.polymarket.com"
CLOB_API_BASE = "https://clob.polymarket.com"

# timeframe -> (CLOB interval, fidelity in minutes)
_HISTORY_PARAMS = {
    "1h": ("1h", 1),
    "6h": ("6h", 5),
    "24h": ("1d", 15),
    "7d": ("1w", 60),
    "30d": ("1m", 360),
}


def _token_ids(value: str | list[str] | None) -> list[str]:
    if isinstance(value, list):
        return [str(t) for t in value]
    if not value:
        return []
    try:
        loaded = json.loads(value)
    except (json.JSONDecodeError, TypeError):
        return []
    return [str(t) for t in loaded] if isinstance(loaded, list) else []


def parse_market(raw: dict[str, Any]) -> Market:
    """Convert a Gamma API market object to the canonical Market."""
    raw_id = raw.get("id") or raw.get("conditionId")
    if raw_id is None or str(raw_id) == "":
        raise ValueError("market without id")
    title = raw.get("question") or raw.get("title") or ""
    outcomes = parse_outcomes(raw.get("outcomes"))
    prices = align_prices(outcomes, parse_outcome_prices(raw.get("outcomePrices")))
    yes_price, no_price = binary_prices(prices)
    slug = raw.get("slug")
    created_at = parse_datetime(raw.get("createdAt"))
    return Market(
        id=prefixed_id(Platform.POLYMARKET.value, raw_id),
        platform=Platform.POLYMARKET,
        title=title,
        description=raw.get("description") or "",
        category=resolve_category(raw.get("category"), title),
        active=bool(raw.get("active", True)) and not raw.get("closed", False) and not raw.get("archived", False),
        start_date=parse_datetime(raw.get("startDate"), default=created_at),
        end_date=parse_datetime(raw.get("endDate")),
        created_at=created_at,
        updated_at=parse_datetime(raw.get("updatedAt"), default=created_at),
        outcomes=outcomes,
        outcome_prices=prices,
        yes_price=yes_price,
        no_price=no_price,
        volume=non_negative(raw.get("volumeNum") or raw.get("volume")),
        liquidity=non_negative(raw.get("liquidityNum") or raw.get("liquidity")),
        external_url=f"https://polymarket.com/market/{slug}" if slug else None,
        extra={
            "slug": slug,
            "condition_id": raw.get("conditionId"),
            "clob_token_ids": _token_ids(raw.get("clobTokenIds")),
            "volume_24h": to_float(raw.get("volume24hr")),
        },
    )


def parse_markets(rows: Any) -> list[Market]:
    """Parse a page of Gamma rows, skipping malformed ones."""
    if isinstance(rows, dict):
        rows = rows.get("data") or rows.get("markets") or []
    if not isinstance(rows, list):
        return []
    markets = []
    for row in rows:
        if not isinstance(row, dict):
            continue
        try:
            markets.append(parse_market(row))
        except (ValidationError, ValueError, TypeError) as e:
            log.warning("skip_market", platform="polymarket", market_id=row.get("id"), error=str(e))
    return markets


class PolymarketAdapter(PlatformAdapter):
    """Gamma REST client. Search/category filter a fetched page locally."""

    platform = Platform.POLYMARKET

    def __init__(
        self,
        gamma_api_base: str = GAMMA_API_BASE,
        clob_api_base: str = CLOB_API_BASE,
        timeout: float = 15.0,
        scan_limit: int = 200,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.gamma_api_base = gamma_api_base.rstrip("/")
        self.clob_api_base = clob_api_base.rstrip("/")
        self.timeout = timeout
        self.scan_limit = scan_limit
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
            headers={"Accept": "application/json", "User-Agent": "PredHub/0.1"},
        )

    async def _get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        async with self._client() as client:
            resp = await client.get(url, params=params)
            resp.raise_for_status()
            return resp.json()

    async def _fetch_page(self, limit: int, offset: int = 0, **extra: Any) -> list[Market]:
        params = {"limit": limit, "offset": offset, "active": "true", "closed": "false", **extra}
        data = await self._get_json(f"{self.gamma_api_base}/markets", params=params)
        return parse_markets(data)

    async def _fetch_active(self, limit: int, offset: int, timeframe: str) -> list[Market]:
        markets = await self._fetch_page(limit, offset)
        return [m for m in markets if m.active]

    async def _fetch_by_category(self, category: str, limit: int, timeframe: str) -> list[Market]:
        wanted = category.strip().lower()
        markets = await self._fetch_page(self.scan_limit)
        return [m for m in markets if m.category.lower() == wanted][:limit]

    async def _search(self, query: str, limit: int) -> list[Market]:
        markets = await self._fetch_page(self.scan_limit)
        return [m for m in markets if matches_query(query, m.title, m.description, m.category)][:limit]

    async def _fetch_by_id(self, raw_id: str) -> Market | None:
        try:
            data = await self._get_json(f"{self.gamma_api_base}/markets/{raw_id}")
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                return None
            raise
        if isinstance(data, list):
            data = data[0] if data else None
        if not isinstance(data, dict):
            return None
        return parse_market(data)

    async def _fetch_price_history(self, raw_id: str, timeframe: str) -> list[PricePoint]:
        market = await self._fetch_by_id(raw_id)
        token_ids = market.extra.get("clob_token_ids") if market else None
        if not token_ids:
            return []
        interval, fidelity = _HISTORY_PARAMS.get(timeframe, _HISTORY_PARAMS["24h"])
        data = await self._get_json(
            f"{self.clob_api_base}/prices-history",
            params={"market": token_ids[0], "interval": interval, "fidelity": fidelity},
        )
        history = data.get("history") if isinstance(data, dict) else None
        points = []
        for row in history or []:
            if not isinstance(row, dict) or row.get("t") is None:
                continue
            price = to_float(row.get("p"), default=-1.0)
            if not 0 <= price <= 1:
                continue
            points.append(PricePoint(timestamp=int(to_float(row["t"])) * 1000, price=price, volume=0.0))
        return points
