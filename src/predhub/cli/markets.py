"""Markets subcommand: list, search, featured, stats, show."""

from __future__ import annotations

import asyncio
import json

import typer

from predhub.aggregator.service import Aggregator, build_aggregator
from predhub.models import Market
from predhub.series.history import PriceHistoryService

app = typer.Typer(help="Aggregated market listing and lookup")


def _aggregator(ctx: typer.Context) -> Aggregator:
    return build_aggregator(ctx.obj["settings"])


def _echo_markets(markets: list[Market]) -> None:
    for m in markets:
        title = m.title[:60]
        typer.echo(f"  {m.id[:32]:<32}  {m.platform.value:<12}  {m.volume:>12.0f}  {m.yes_price:.3f}  {title}")
    typer.echo(f"Total: {len(markets)} markets")


@app.command("list")
def list_markets(
    ctx: typer.Context,
    limit: int = typer.Option(20, "--limit", "-n", help="Max markets"),
    offset: int = typer.Option(0, "--offset", help="Skip this many merged markets"),
    category: str | None = typer.Option(None, "--category", "-c", help="Category filter (e.g. Crypto)"),
    timeframe: str = typer.Option("all", "--timeframe", "-t", help="all, 24h, 7d, 30d, future, trending"),
) -> None:
    """List active markets across platforms, highest volume first."""
    aggregator = _aggregator(ctx)
    markets = asyncio.run(aggregator.list_markets(limit, offset, category=category, timeframe=timeframe))
    _echo_markets(markets)


@app.command("search")
def search(
    ctx: typer.Context,
    query: str = typer.Argument(..., help="Text to match in title, description or category"),
    limit: int = typer.Option(20, "--limit", "-n", help="Max markets"),
) -> None:
    """Search every platform."""
    if len(query.strip()) < 2:
        typer.echo("Query must be at least 2 characters.", err=True)
        raise typer.Exit(1)
    markets = asyncio.run(_aggregator(ctx).search_markets(query, limit))
    _echo_markets(markets)


@app.command("featured")
def featured(
    ctx: typer.Context,
    limit: int = typer.Option(10, "--limit", "-n", help="Max markets"),
) -> None:
    """Random pick from the top markets by volume."""
    _echo_markets(asyncio.run(_aggregator(ctx).get_featured_markets(limit)))


@app.command("stats")
def stats(ctx: typer.Context) -> None:
    """Aggregated market statistics."""
    s = asyncio.run(_aggregator(ctx).get_market_stats())
    typer.echo(f"Total markets:     {s.total_markets}")
    typer.echo(f"Active markets:    {s.active_markets}")
    typer.echo(f"Total volume:      {s.total_volume:,.0f}")
    typer.echo(f"Average liquidity: {s.average_liquidity:,.0f}")
    for c in s.top_categories:
        typer.echo(f"  {c.category:<16} {c.count:>5}  {c.volume:>14,.0f}")


@app.command("show")
def show(
    ctx: typer.Context,
    market_id: str = typer.Argument(..., help="Market id, e.g. polymarket_12345"),
) -> None:
    """Market details as JSON."""
    settings = ctx.obj["settings"]
    service = PriceHistoryService(_aggregator(ctx), min_real_points=settings.min_real_points)
    details = asyncio.run(service.get_market_details(market_id))
    if details is None:
        typer.echo(f"Market not found: {market_id}", err=True)
        raise typer.Exit(1)
    typer.echo(json.dumps(details.model_dump(mode="json"), indent=2))
