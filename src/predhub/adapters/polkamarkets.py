"""Polkamarkets adapter - synthetic catalog shaped like the on-chain market structure.

Polkamarkets exposes no public REST API (markets live in contracts and a subgraph),
so this adapter produces a deterministic catalog: every field of market N is derived
from a Random seeded with N, so ids are stable across calls and processes.
"""

from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone
from typing import Any

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
    synthetic_end_date,
)
from predhub.models import Market, MarketStats, Platform

log = structlog.get_logger(__name__)

QUESTIONS: dict[str, list[str]] = {
    "Crypto": [
        "Will Bitcoin close a month above $120,000 this year?",
        "Will Ethereum staking yield exceed 5% by year end?",
        "Will Solana flip BNB by market cap this quarter?",
        "Will total stablecoin supply pass $300 billion?",
        "Will a spot Solana ETF be approved in the US?",
        "Will DeFi TVL exceed $200 billion this year?",
    ],
    "Economy": [
        "Will the Federal Reserve cut rates at the next meeting?",
        "Will US CPI inflation print below 3% this quarter?",
        "Will the S&P 500 close the year above 6,500?",
        "Will gold trade above $3,000 per ounce?",
        "Will US unemployment exceed 5% this year?",
        "Will oil exceed $100 per barrel this year?",
    ],
    "Politics": [
        "Will there be a US government shutdown this fiscal year?",
        "Will the debt ceiling be raised before the deadline?",
        "Will the Senate pass an immigration reform bill?",
        "Will the filibuster be abolished this session?",
        "Will presidential approval exceed 50% this year?",
        "Will a Supreme Court justice retire this year?",
    ],
    "Sport": [
        "Will the AFC team win the next Super Bowl?",
        "Will the NBA Finals go to seven games?",
        "Will a new Formula 1 champion be crowned this season?",
        "Will an underdog win the Champions League?",
        "Will a swimming world record fall at the next championship?",
        "Will the Stanley Cup Final go to seven games?",
    ],
    "Culture": [
        "Will the top-grossing film of the year pass $2 billion?",
        "Will a streaming original win Best Picture?",
        "Will the most-streamed album of the year be a debut?",
        "Will a video game adaptation top the box office this summer?",
        "Will a K-pop act headline a major US festival?",
        "Will a reality show be the most-watched premiere of the year?",
    ],
    "Gaming": [
        "Will the next flagship console launch before the holidays?",
        "Will an esports final pass 5 million peak viewers?",
        "Will a battle royale remain the most-played game on Steam?",
        "Will a game studio acquisition exceed $10 billion this year?",
        "Will a speedrun world record be broken at the next marathon?",
        "Will a mobile game gross $1 billion in its first year?",
    ],
}

RESOLUTION_SOURCES = ["coingecko.com", "bloomberg.com", "reuters.com", "federalreserve.gov", "multiple-sources"]

_POOL: list[tuple[str, str]] = [(cat, q) for cat, qs in QUESTIONS.items() for q in qs]


def raw_market(index: int, timeframe: str = "all", now: datetime | None = None) -> dict[str, Any]:
    """Raw catalog row for market `index` (1-based), in the platform's own shape."""
    now = now or datetime.now(timezone.utc)
    rng = random.Random(f"polkamarkets:{index}")
    category, question = _POOL[(index - 1) % len(_POOL)]
    yes = 0.3 + rng.random() * 0.4
    volume = int(rng.random() * 500_000) + 10_000
    liquidity = int(volume * (0.2 + rng.random() * 0.3))
    created_at = now - timedelta(days=rng.random() * 90)
    source = RESOLUTION_SOURCES[int(rng.random() * len(RESOLUTION_SOURCES))]
    return {
        "id": str(index),
        "question": question,
        "description": f"This market resolves on the stated criteria. Resolution source: {source}",
        "outcomes": '["Yes", "No"]',
        "outcomePrices": f"[{yes:.3f}, {1 - yes:.3f}]",
        "volume": volume,
        "liquidity": liquidity,
        "active": True,
        "closed": False,
        "endDate": synthetic_end_date(timeframe, rng, now).isoformat(),
        "category": category,
        "createdAt": created_at.isoformat(),
        "updatedAt": created_at.isoformat(),
        "marketType": "binary",
        "resolutionSource": source,
    }


def parse_market(raw: dict[str, Any]) -> Market:
    """Convert a Polkamarkets row to the canonical Market."""
    title = raw.get("question") or raw.get("title") or ""
    outcomes = parse_outcomes(raw.get("outcomes"))
    prices = align_prices(outcomes, parse_outcome_prices(raw.get("outcomePrices")))
    yes_price, no_price = binary_prices(prices)
    created_at = parse_datetime(raw.get("createdAt"))
    return Market(
        id=prefixed_id(Platform.POLKAMARKETS.value, raw["id"]),
        platform=Platform.POLKAMARKETS,
        title=title,
        description=raw.get("description") or "",
        category=resolve_category(raw.get("category"), title),
        active=bool(raw.get("active", True)) and not raw.get("closed", False),
        start_date=created_at,
        end_date=parse_datetime(raw.get("endDate")),
        created_at=created_at,
        updated_at=parse_datetime(raw.get("updatedAt"), default=created_at),
        outcomes=outcomes,
        outcome_prices=prices,
        yes_price=yes_price,
        no_price=no_price,
        volume=non_negative(raw.get("volume")),
        liquidity=non_negative(raw.get("liquidity")),
        external_url=f"https://app.polkamarkets.com/markets/{raw['id']}",
        extra={"market_type": raw.get("marketType"), "resolution_source": raw.get("resolutionSource")},
    )


class PolkamarketsAdapter(PlatformAdapter):
    """Deterministic synthetic catalog of `catalog_size` markets."""

    platform = Platform.POLKAMARKETS

    def __init__(self, catalog_size: int = 200) -> None:
        self.catalog_size = max(0, catalog_size)

    def _catalog(self, start: int, stop: int, timeframe: str = "all") -> list[Market]:
        now = datetime.now(timezone.utc)
        markets = []
        for i in range(max(1, start), min(stop, self.catalog_size) + 1):
            try:
                markets.append(parse_market(raw_market(i, timeframe, now)))
            except (ValidationError, ValueError, KeyError) as e:
                log.warning("skip_market", platform="polkamarkets", market_id=i, error=str(e))
        return markets

    async def _fetch_active(self, limit: int, offset: int, timeframe: str) -> list[Market]:
        if limit <= 0:
            return []
        return self._catalog(offset + 1, offset + limit, timeframe)

    async def _fetch_by_category(self, category: str, limit: int, timeframe: str) -> list[Market]:
        wanted = category.strip().lower()
        return [m for m in self._catalog(1, self.catalog_size, timeframe) if m.category.lower() == wanted][:limit]

    async def _search(self, query: str, limit: int) -> list[Market]:
        return [
            m for m in self._catalog(1, self.catalog_size)
            if matches_query(query, m.title, m.description, m.category)
        ][:limit]

    async def _fetch_by_id(self, raw_id: str) -> Market | None:
        try:
            index = int(raw_id)
        except ValueError:
            return None
        if not 1 <= index <= self.catalog_size:
            return None
        return parse_market(raw_market(index))

    async def _fetch_stats(self) -> MarketStats:
        return MarketStats.from_markets(self._catalog(1, self.catalog_size))
