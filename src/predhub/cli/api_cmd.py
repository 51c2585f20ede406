"""API server command."""

import os

import typer

from predhub.api.main import run_api
from predhub.config.settings import CONFIG_DIR_ENV

app = typer.Typer(help="Serve the HTTP API")


@app.callback(invoke_without_command=True)
def api(
    ctx: typer.Context,
    host: str = typer.Option("127.0.0.1", "--host", help="Bind host"),
    port: int = typer.Option(8000, "--port", help="Bind port"),
) -> None:
    if ctx.invoked_subcommand is not None:
        return
    opts = ctx.obj or {}
    # the app is built inside uvicorn; hand it the same config directory
    if opts.get("config_dir") is not None:
        os.environ[CONFIG_DIR_ENV] = str(opts["config_dir"])
    run_api(host=host, port=port, profile=opts.get("profile"))
