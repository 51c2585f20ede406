"""Series subcommand: synthetic generation and market candles."""

from __future__ import annotations

import asyncio
import json
import random

import typer

from predhub.aggregator.service import build_aggregator
from predhub.series.generator import TIMEFRAMES, generate_series, normalize_timeframe
from predhub.series.history import PriceHistoryService
from predhub.series.ohlc import to_candles

app = typer.Typer(help="Price series and OHLC candles")


@app.command("generate")
def generate(
    timeframe: str = typer.Option("24h", "--timeframe", "-t", help=", ".join(TIMEFRAMES)),
    seed: int | None = typer.Option(None, "--seed", help="Seed for a reproducible series"),
    start_price: float | None = typer.Option(None, "--start-price", help="Initial price in (0, 1)"),
    candles: bool = typer.Option(False, "--candles", help="Bucket into OHLC candles"),
) -> None:
    """Generate a synthetic series and print it as JSON lines."""
    tf = normalize_timeframe(timeframe)
    points = generate_series(tf, rng=random.Random(seed), start_price=start_price)
    rows = to_candles(points, tf) if candles else points
    for row in rows:
        typer.echo(json.dumps(row.model_dump()))


@app.command("candles")
def market_candles(
    ctx: typer.Context,
    market_id: str = typer.Argument(..., help="Market id, e.g. limitless_btc-above-100k"),
    timeframe: str = typer.Option("24h", "--timeframe", "-t", help=", ".join(TIMEFRAMES)),
    fill_gaps: bool = typer.Option(False, "--fill-gaps", help="Carry close forward over empty buckets"),
) -> None:
    """Candles for a market from real history, or a synthetic series when history is sparse."""
    settings = ctx.obj["settings"]
    service = PriceHistoryService(build_aggregator(settings), min_real_points=settings.min_real_points)
    rows = asyncio.run(service.get_candles(market_id, timeframe, fill_gaps=fill_gaps))
    for c in rows:
        typer.echo(f"{c.timestamp}  o={c.open:.4f} h={c.high:.4f} l={c.low:.4f} c={c.close:.4f} v={c.volume:.0f}")
    typer.echo(f"Total: {len(rows)} candles")
