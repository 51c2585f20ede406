"""Aggregator fan-out, merge, routing and failure tolerance."""

import asyncio
import random
from datetime import datetime, timedelta, timezone

import pytest

from helpers import FakeAdapter, make_market
from predhub.adapters.polkamarkets import PolkamarketsAdapter
from predhub.aggregator.service import Aggregator, build_aggregator, merge_markets
from predhub.config.settings import Settings
from predhub.models import Platform

POLY = Platform.POLYMARKET
POLKA = Platform.POLKAMARKETS
LIMIT = Platform.LIMITLESS


def _ids(markets):
    return [m.id for m in markets]


def test_failed_adapter_contributes_nothing():
    a = FakeAdapter(POLY, [make_market("p_1", POLY, volume=100)])
    b = FakeAdapter(POLKA, error=RuntimeError("boom"))
    c = FakeAdapter(LIMIT, [make_market("l_1", LIMIT, volume=50)])
    result = asyncio.run(Aggregator([a, b, c]).get_all_markets(10))
    assert _ids(result) == ["p_1", "l_1"]


def test_error_raised_past_adapter_guard_is_contained():
    class Exploding(FakeAdapter):
        async def get_active_markets(self, limit, offset=0, timeframe="all"):
            raise ValueError("unguarded")

    ok = FakeAdapter(POLY, [make_market("p_1", POLY, volume=1)])
    result = asyncio.run(Aggregator([Exploding(LIMIT), ok]).get_all_markets(5))
    assert _ids(result) == ["p_1"]


def test_per_adapter_limit_is_ceil_of_share():
    adapters = [FakeAdapter(p) for p in (POLY, POLKA, LIMIT)]
    asyncio.run(Aggregator(adapters).get_all_markets(10))
    assert [a.calls for a in adapters] == [[("active", 4)]] * 3


def test_result_length_never_exceeds_limit():
    a = FakeAdapter(POLY, [make_market(f"p_{i}", POLY, volume=i) for i in range(10)])
    b = FakeAdapter(LIMIT, [make_market(f"l_{i}", LIMIT, volume=i) for i in range(10)])
    result = asyncio.run(Aggregator([a, b]).get_all_markets(5))
    assert len(result) == 5
    volumes = [m.volume for m in result]
    assert volumes == sorted(volumes, reverse=True)


def test_equal_volume_keeps_adapter_order():
    a = FakeAdapter(POLY, [make_market("p_1", POLY, volume=10)])
    b = FakeAdapter(LIMIT, [make_market("l_1", LIMIT, volume=10)])
    result = asyncio.run(Aggregator([a, b]).get_all_markets(10))
    assert _ids(result) == ["p_1", "l_1"]


def test_duplicate_ids_keep_first_occurrence():
    first = make_market("p_1", POLY, volume=1)
    dup = make_market("p_1", POLY, volume=1000)
    other = make_market("p_2", POLY, volume=5)
    merged = merge_markets([[first, other], [dup]], key=lambda m: m.volume, limit=10)
    assert _ids(merged) == ["p_2", "p_1"]
    assert merged[1].volume == 1


def test_zero_and_negative_limit_skip_fan_out():
    a = FakeAdapter(POLY, [make_market("p_1", POLY)])
    agg = Aggregator([a])
    assert asyncio.run(agg.get_all_markets(0)) == []
    assert asyncio.run(agg.get_all_markets(-3)) == []
    assert a.calls == []


def test_no_adapters_returns_empty():
    assert asyncio.run(Aggregator([]).get_all_markets(10)) == []


def test_timed_out_adapter_contributes_empty():
    slow = FakeAdapter(POLY, [make_market("p_1", POLY, volume=100)], delay=5)
    fast = FakeAdapter(LIMIT, [make_market("l_1", LIMIT, volume=1)])
    result = asyncio.run(Aggregator([slow, fast], timeout_sec=0.05).get_all_markets(10))
    assert _ids(result) == ["l_1"]


def test_every_adapter_failing_yields_empty_results():
    crypto = [make_market("p_1", POLY, volume=10, category="Crypto", title="Bitcoin above 100k")]
    adapters = [
        FakeAdapter(POLY, crypto, error=RuntimeError("boom")),
        FakeAdapter(POLKA, crypto, error=ValueError("bad payload")),
        FakeAdapter(LIMIT, crypto, delay=5),
    ]
    agg = Aggregator(adapters, timeout_sec=0.05)
    assert asyncio.run(agg.get_all_markets(10)) == []
    assert asyncio.run(agg.search_markets("bitcoin", 10)) == []
    assert asyncio.run(agg.get_markets_by_category("Crypto", 10)) == []
    stats = asyncio.run(agg.get_market_stats())
    assert (stats.total_markets, stats.active_markets, stats.total_volume) == (0, 0, 0.0)
    assert stats.average_liquidity == 0.0
    assert stats.top_categories == []


def test_every_adapter_raising_past_its_guard_yields_empty_results():
    class Exploding(FakeAdapter):
        async def get_active_markets(self, limit, offset=0, timeframe="all"):
            raise RuntimeError("unguarded")

        async def get_market_stats(self):
            raise RuntimeError("unguarded")

    agg = Aggregator([Exploding(POLY), Exploding(LIMIT)])
    assert asyncio.run(agg.get_all_markets(10)) == []
    assert asyncio.run(agg.get_market_stats()).total_markets == 0


def test_cancellation_propagates_to_adapter_calls():
    slow = FakeAdapter(POLY, delay=10)
    agg = Aggregator([slow], timeout_sec=30)

    async def run():
        task = asyncio.create_task(agg.get_all_markets(5))
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(run())
    assert slow.cancelled


def test_search_short_query_does_not_fan_out():
    a = FakeAdapter(POLY, [make_market("p_1", POLY, title="Bitcoin")])
    agg = Aggregator([a])
    assert asyncio.run(agg.search_markets("b", 10)) == []
    assert asyncio.run(agg.search_markets("   ", 10)) == []
    assert a.calls == []


def test_search_sorts_by_volume_plus_liquidity():
    a = FakeAdapter(POLY, [make_market("p_1", POLY, volume=100, liquidity=0, title="Bitcoin 100k")])
    b = FakeAdapter(LIMIT, [make_market("l_1", LIMIT, volume=60, liquidity=60, title="Bitcoin ETF")])
    result = asyncio.run(Aggregator([a, b]).search_markets("bitcoin", 10))
    assert _ids(result) == ["l_1", "p_1"]


def test_category_fan_out():
    a = FakeAdapter(POLY, [make_market("p_1", POLY, category="Crypto", volume=5), make_market("p_2", POLY)])
    b = FakeAdapter(LIMIT, [make_market("l_1", LIMIT, category="crypto", volume=9)])
    result = asyncio.run(Aggregator([a, b]).get_markets_by_category("Crypto", 10))
    assert _ids(result) == ["l_1", "p_1"]


def test_featured_is_deterministic_under_seed():
    markets = [make_market(f"p_{i}", POLY, volume=100 - i) for i in range(20)]

    def featured(seed):
        agg = Aggregator([FakeAdapter(POLY, markets)], rng=random.Random(seed))
        return _ids(asyncio.run(agg.get_featured_markets(5)))

    assert featured(7) == featured(7)
    picked = featured(7)
    assert len(picked) == 5
    # drawn from the top 2 * limit by volume
    assert set(picked) <= {f"p_{i}" for i in range(10)}


def test_get_by_id_routes_on_prefix():
    poly = FakeAdapter(POLY, [make_market("polymarket_1", POLY)])
    limitless = FakeAdapter(LIMIT, [make_market("limitless_1", LIMIT)])
    market = asyncio.run(Aggregator([poly, limitless]).get_market_by_id("limitless_1"))
    assert market is not None and market.id == "limitless_1"
    assert poly.calls == []
    assert limitless.calls == [("by_id", "1")]


def test_get_by_id_probes_until_found():
    first = FakeAdapter(POLY, [])
    second = FakeAdapter(POLKA, [make_market("abc", POLKA)])
    third = FakeAdapter(LIMIT, [])
    market = asyncio.run(Aggregator([first, second, third]).get_market_by_id("abc"))
    assert market is not None and market.id == "abc"
    assert first.calls == [("by_id", "abc")]
    assert third.calls == []


def test_get_by_id_unknown_returns_none():
    agg = Aggregator([FakeAdapter(POLY), FakeAdapter(LIMIT, error=RuntimeError("down"))])
    assert asyncio.run(agg.get_market_by_id("nope")) is None
    assert asyncio.run(agg.get_market_by_id("")) is None


def test_stats_sum_and_merge_categories():
    a = FakeAdapter(POLY, [make_market("p_1", POLY, volume=100, liquidity=10, category="Crypto")])
    b = FakeAdapter(
        LIMIT,
        [
            make_market("l_1", LIMIT, volume=50, liquidity=30, category="Crypto"),
            make_market("l_2", LIMIT, volume=200, liquidity=20, category="Sports"),
        ],
    )
    stats = asyncio.run(Aggregator([a, b]).get_market_stats())
    assert stats.total_markets == 3
    assert stats.active_markets == 3
    assert stats.total_volume == 350
    assert stats.average_liquidity == pytest.approx(17.5)
    assert [(c.category, c.count, c.volume) for c in stats.top_categories] == [
        ("Sports", 1, 200),
        ("Crypto", 2, 150),
    ]


def test_stats_tolerate_failing_adapter():
    a = FakeAdapter(POLY, [make_market("p_1", POLY, volume=100, liquidity=40)])
    b = FakeAdapter(LIMIT, error=RuntimeError("down"))
    stats = asyncio.run(Aggregator([a, b]).get_market_stats())
    assert stats.total_markets == 1
    assert stats.average_liquidity == pytest.approx(20.0)


def test_list_markets_slices_offset():
    a = FakeAdapter(POLY, [make_market(f"p_{v}", POLY, volume=v) for v in (5, 4, 3, 2, 1)])
    result = asyncio.run(Aggregator([a]).list_markets(2, offset=1))
    assert _ids(result) == ["p_4", "p_3"]


def test_list_markets_with_category():
    a = FakeAdapter(POLY, [make_market("p_1", POLY, category="Sports"), make_market("p_2", POLY)])
    result = asyncio.run(Aggregator([a]).list_markets(10, category="sports"))
    assert _ids(result) == ["p_1"]


def test_list_markets_category_keeps_timeframe_end_dates():
    now = datetime.now(timezone.utc)
    agg = Aggregator([PolkamarketsAdapter(catalog_size=60)])
    result = asyncio.run(agg.list_markets(20, 0, category="Crypto", timeframe="24h"))
    assert result and all(m.category == "Crypto" for m in result)
    assert all(m.end_date <= now + timedelta(days=1, minutes=1) for m in result)


def test_category_passes_timeframe_to_adapters():
    a = FakeAdapter(POLY, [make_market("p_1", POLY, category="Crypto")])
    asyncio.run(Aggregator([a]).get_markets_by_category("Crypto", 5, timeframe="weird"))
    assert a.timeframes == ["all"]


def test_trending_and_high_liquidity_thresholds():
    a = FakeAdapter(
        POLY,
        [
            make_market("p_1", POLY, volume=5000, liquidity=1000),
            make_market("p_2", POLY, volume=2000, liquidity=9000),
            make_market("p_3", POLY, volume=500, liquidity=6000),
        ],
    )
    agg = Aggregator([a])
    assert _ids(asyncio.run(agg.get_trending_markets(10))) == ["p_1", "p_2"]
    assert _ids(asyncio.run(agg.get_high_liquidity_markets(10))) == ["p_2", "p_3"]


def test_ending_soon_ascending_and_active_only():
    now = datetime(2026, 1, 1, tzinfo=timezone.utc)
    a = FakeAdapter(
        POLY,
        [
            make_market("p_late", POLY, end_date=now + timedelta(hours=20)),
            make_market("p_soon", POLY, end_date=now + timedelta(hours=2)),
            make_market("p_closed", POLY, end_date=now + timedelta(hours=1), active=False),
            make_market("p_far", POLY, end_date=now + timedelta(days=30)),
        ],
    )
    result = asyncio.run(Aggregator([a]).get_markets_ending_soon(24, 10, now=now))
    assert _ids(result) == ["p_soon", "p_late"]


def test_timeframe_future_sorts_by_end_date():
    now = datetime(2026, 1, 1, tzinfo=timezone.utc)
    a = FakeAdapter(
        POLY,
        [
            make_market("p_1", POLY, volume=100, end_date=now + timedelta(days=1)),
            make_market("p_2", POLY, volume=1, end_date=now + timedelta(days=90)),
        ],
    )
    assert _ids(asyncio.run(Aggregator([a]).get_markets_by_timeframe("future", 10))) == ["p_2", "p_1"]
    assert _ids(asyncio.run(Aggregator([a]).get_markets_by_timeframe("bogus", 10))) == ["p_1", "p_2"]


def test_platform_health_marks_failing_probe_down():
    ok = FakeAdapter(POLY)
    down = FakeAdapter(LIMIT, error=ConnectionError("refused"))
    health = asyncio.run(Aggregator([ok, down]).get_platform_health())
    assert [(h["platform"], h["status"]) for h in health] == [("polymarket", "healthy"), ("limitless", "down")]
    assert all(h["checked_at"] for h in health)


def test_build_aggregator_respects_enabled_flags():
    settings = Settings(aggregator={"adapter_timeout_sec": 3.0}, polkamarkets={"enabled": False})
    agg = build_aggregator(settings)
    assert [a.name for a in agg.adapters] == ["polymarket", "limitless"]
    assert agg.timeout_sec == 3.0
