from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer

from app.schemas import HistoryMode
from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_dashboard, render_history


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Read live sensor values and histories from the dashboard service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Dashboard API base URL (defaults to DASHBOARD_API_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each HTTP request.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("status")
def status_command(ctx: typer.Context) -> None:
    """Show the latest value per sensor and when data last changed."""
    state = _get_state(ctx)
    render_dashboard(state.client.get_dashboard())


@app.command("refresh")
def refresh_command(ctx: typer.Context) -> None:
    """Poll the sensor endpoint now and show the updated values."""
    state = _get_state(ctx)
    typer.echo(f"Refreshing via {state.config.base_url} ...")
    render_dashboard(state.client.refresh())


@app.command("history")
def history_command(
    ctx: typer.Context,
    kind: str = typer.Argument(..., help="Sensor kind, e.g. temperature or moisture."),
    mode: HistoryMode = typer.Option(
        HistoryMode.live,
        "--mode",
        "-m",
        case_sensitive=False,
        help="live: append-only history; chart: most recent window.",
    ),
) -> None:
    """List stored readings for one sensor kind."""
    state = _get_state(ctx)
    readings = state.client.get_history(kind, mode=mode.value)
    render_history(kind.capitalize(), mode.value, readings)
