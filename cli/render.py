from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, Optional

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def format_timestamp(raw: Optional[str]) -> str:
    """Render an ISO timestamp as ``Jan 1, 2025 • 10:00:05`` or ``-``."""
    if not raw:
        return "-"
    candidate = raw[:-1] + "+00:00" if raw.endswith("Z") else raw
    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError:
        return raw
    return f"{parsed:%b} {parsed.day}, {parsed:%Y • %H:%M:%S}"


def format_value(value: Optional[float], unit: str) -> str:
    if value is None:
        return "NaN"
    return f"{value:.2f} {unit}".rstrip()


def render_dashboard(payload: Dict[str, Any]) -> None:
    echo_heading("Live Data")
    if payload.get("loading"):
        typer.echo("Waiting for the first poll ...")
    elif payload.get("error"):
        typer.secho(f"Error: {payload['error']}", fg=typer.colors.RED)
    else:
        for sensor in payload.get("sensors") or []:
            latest = sensor.get("latest")
            if latest is None:
                typer.echo(f"{sensor.get('kind')}: -")
            else:
                value = format_value(latest.get("value"), sensor.get("unit") or "")
                typer.echo(f"{sensor.get('kind')}: {value}")
    typer.echo(f"Last updated: {format_timestamp(payload.get('last_updated'))}")


def render_history(kind: str, mode: str, readings: Iterable[Dict[str, Any]]) -> None:
    echo_heading(f"{kind} ({mode} history)")
    rows = list(readings)
    if not rows:
        typer.echo("No data yet")
        return
    for reading in rows:
        value = format_value(reading.get("value"), reading.get("unit") or "")
        typer.echo(f"  {format_timestamp(reading.get('observed_at'))}  {value}")
