"""Root CLI app - entry point and command registration."""

from pathlib import Path

import typer

from predhub import __version__
from predhub.config import configure_logging, get_settings

app = typer.Typer(
    name="predhub",
    help="PredHub - Prediction markets aggregated across platforms, with price history and candles.",
    no_args_is_help=True,
)


def _print_version(value: bool) -> None:
    if value:
        typer.echo(f"predhub {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    config_dir: Path | None = typer.Option(
        None, "--config-dir", "-C", help="Directory holding default.toml and profile overlays"
    ),
    profile: str | None = typer.Option(
        None, "--profile", "-p", help="Profile overlaid on default.toml (e.g. dev)"
    ),
    version: bool = typer.Option(
        False, "--version", callback=_print_version, is_eager=True, help="Show version and exit"
    ),
) -> None:
    """Load settings once, configure logging, share both with subcommands."""
    settings = get_settings(profile, config_dir)
    configure_logging(settings)
    ctx.obj = {"settings": settings, "profile": profile, "config_dir": config_dir}


# Subcommands live in sibling modules
from predhub.cli import api_cmd, markets, series  # noqa: E402

app.add_typer(markets.app, name="markets")
app.add_typer(series.app, name="series")
app.add_typer(api_cmd.app, name="api")


def run() -> None:
    app()


if __name__ == "__main__":
    run()
