"""HTTP API over a fake aggregator."""

import random
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from helpers import FakeAdapter, make_market
from predhub.aggregator.service import Aggregator
from predhub.api.main import create_app
from predhub.api.params import parse_bool, parse_int
from predhub.models import Platform
from predhub.series.history import PriceHistoryService


@pytest.fixture
def client():
    soon = datetime.now(timezone.utc) + timedelta(hours=3)
    poly = FakeAdapter(
        Platform.POLYMARKET,
        [
            make_market("polymarket_1", volume=9000, liquidity=8000, category="Crypto", title="Bitcoin to 150k"),
            make_market("polymarket_2", volume=10, liquidity=1, end_date=soon, title="Rain in Paris"),
        ],
    )
    limitless = FakeAdapter(
        Platform.LIMITLESS,
        [make_market("limitless_a", Platform.LIMITLESS, volume=500, liquidity=100, title="ETH above 5k")],
    )
    down = FakeAdapter(Platform.POLKAMARKETS, error=RuntimeError("offline"))
    aggregator = Aggregator([poly, down, limitless], rng=random.Random(1))
    history = PriceHistoryService(aggregator, rng=random.Random(2))
    return TestClient(create_app(aggregator=aggregator, history=history))


def _ids(resp):
    return [m["id"] for m in resp.json()["markets"]]


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_platforms_health(client):
    body = client.get("/platforms/health").json()
    assert {h["platform"]: h["status"] for h in body} == {
        "polymarket": "healthy",
        "polkamarkets": "down",
        "limitless": "healthy",
    }


def test_markets_list_merged_by_volume(client):
    resp = client.get("/markets")
    assert resp.status_code == 200
    assert _ids(resp) == ["polymarket_1", "limitless_a", "polymarket_2"]
    assert resp.json()["limit"] == 50


def test_markets_list_offset_and_category(client):
    assert _ids(client.get("/markets", params={"limit": 1, "offset": 1})) == ["limitless_a"]
    assert _ids(client.get("/markets", params={"category": "crypto"})) == ["polymarket_1"]


@pytest.mark.parametrize("params", [{"limit": "abc"}, {"limit": "-5"}, {"limit": "99999"}, {"offset": "x"}, {"timeframe": "??"}])
def test_malformed_params_never_4xx(client, params):
    resp = client.get("/markets", params=params)
    assert resp.status_code == 200


def test_limit_is_clamped(client):
    assert client.get("/markets", params={"limit": "-5"}).json()["limit"] == 1
    assert client.get("/markets", params={"limit": "99999"}).json()["limit"] == 500


def test_search(client):
    assert _ids(client.get("/markets/search", params={"q": "eth"})) == ["limitless_a"]
    resp = client.get("/markets/search", params={"q": "e"})
    assert resp.status_code == 200 and _ids(resp) == []
    assert _ids(client.get("/markets/search")) == []


def test_featured_trending_liquidity_ending(client):
    assert len(_ids(client.get("/markets/featured", params={"limit": 2}))) == 2
    assert _ids(client.get("/markets/trending")) == ["polymarket_1"]
    assert _ids(client.get("/markets/high-liquidity")) == ["polymarket_1"]
    assert _ids(client.get("/markets/ending-soon", params={"hours": "bad"})) == ["polymarket_2"]


def test_stats(client):
    body = client.get("/markets/stats").json()
    assert body["total_markets"] == 3
    assert body["total_volume"] == 9510


def test_market_detail_and_404(client):
    resp = client.get("/markets/polymarket_1")
    assert resp.status_code == 200
    assert resp.json()["market"]["id"] == "polymarket_1"
    missing = client.get("/markets/polymarket_missing")
    assert missing.status_code == 404
    assert missing.json() == {"detail": "Market not found: polymarket_missing", "code": "not_found"}


def test_history_synthetic_with_bad_limit(client):
    resp = client.get("/markets/polymarket_1/history", params={"time_range": "1h", "limit": "lots"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["time_range"] == "1h"
    assert len(body["points"]) == 60
    stamps = [p["timestamp"] for p in body["points"]]
    assert stamps == sorted(stamps)


def test_history_limit_and_unknown_range(client):
    body = client.get("/markets/polymarket_1/history", params={"time_range": "1y", "limit": "10"}).json()
    assert body["time_range"] == "24h"
    assert len(body["points"]) == 10


def test_candles(client):
    resp = client.get("/markets/limitless_a/candles", params={"time_range": "7d", "fill_gaps": "true"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["bucket_ms"] == 7_200_000
    assert body["candles"]
    assert body["axes"]["price_min"] <= body["axes"]["price_max"]
    assert body["geometry"] == []


def test_candles_geometry_fits_chart_box(client):
    params = {"time_range": "24h", "width": "800", "height": "400", "padding": "40"}
    body = client.get("/markets/limitless_a/candles", params=params).json()
    assert len(body["geometry"]) == len(body["candles"])
    first, last = body["geometry"][0], body["geometry"][-1]
    assert first["x"] == pytest.approx(40.0)
    assert last["x"] == pytest.approx(760.0)
    for g in body["geometry"]:
        assert 40.0 <= g["x"] <= 760.0
        assert 40.0 <= g["high_y"] <= g["low_y"] <= 360.0
        assert 0.0 <= g["volume_height"] <= 320 * 0.2 + 1e-9


def test_candles_bad_chart_size_falls_back_to_no_geometry(client):
    resp = client.get("/markets/limitless_a/candles", params={"width": "wide", "height": "-5"})
    assert resp.status_code == 200
    assert resp.json()["geometry"] == []


def test_param_parsers():
    assert parse_int("12", 5) == 12
    assert parse_int(" 7 ", 5) == 7
    assert parse_int("3.9", 5) == 3
    assert parse_int("abc", 5) == 5
    assert parse_int(None, 5) == 5
    assert parse_int("-1", 5, minimum=0) == 0
    assert parse_int("900", 5, maximum=500) == 500
    assert parse_bool("true") is True
    assert parse_bool("0") is False
    assert parse_bool("maybe", default=True) is True
