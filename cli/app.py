from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_reading, render_readings


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for submitting and querying RF readings.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        typer.secho("CLI state is uninitialized.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Readings API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Request timeout in seconds.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("submit", context_settings={"ignore_unknown_options": True})
def submit_command(
    ctx: typer.Context,
    frequency_hz: float = typer.Argument(..., help="Frequency in hertz."),
    signal_dbm: float = typer.Argument(..., help="Signal strength in dBm."),
    classification: Optional[str] = typer.Option(
        None,
        "--classification",
        "-c",
        help="Classification label (server defaults to UNKNOWN).",
    ),
    timestamp: Optional[int] = typer.Option(
        None,
        "--timestamp",
        "-t",
        help="Epoch milliseconds (server defaults to now).",
    ),
) -> None:
    """Store a single reading."""
    state = _get_state(ctx)
    payload: Dict[str, Any] = {"frequency_hz": frequency_hz, "signal_dbm": signal_dbm}
    if classification is not None:
        payload["classification"] = classification
    if timestamp is not None:
        payload["timestamp"] = timestamp

    reading = state.client.submit_reading(payload)
    typer.secho("Reading saved.", fg=typer.colors.GREEN)
    render_reading(reading)


@app.command("query")
def query_command(
    ctx: typer.Context,
    from_ms: Optional[int] = typer.Option(
        None, "--from", help="Inclusive lower bound, epoch milliseconds."
    ),
    to_ms: Optional[int] = typer.Option(
        None, "--to", help="Inclusive upper bound, epoch milliseconds."
    ),
    limit: Optional[int] = typer.Option(
        None, "--limit", "-n", help="Maximum readings to return (1-5000, default 1000)."
    ),
    sort: Optional[str] = typer.Option(
        None, "--sort", help="Sort by timestamp: asc or desc."
    ),
) -> None:
    """Fetch readings in a time range."""
    state = _get_state(ctx)
    if sort is not None and sort.lower() not in {"asc", "desc"}:
        raise typer.BadParameter("sort must be 'asc' or 'desc'.", param_hint="--sort")
    readings = state.client.query_readings(
        from_ms=from_ms, to_ms=to_ms, limit=limit, sort=sort
    )
    render_readings(readings)


@app.command("latest")
def latest_command(
    ctx: typer.Context,
    count: Optional[int] = typer.Option(
        None, "--count", "-n", help="Number of readings (default 20)."
    ),
) -> None:
    """Fetch the most recent readings, newest first."""
    state = _get_state(ctx)
    render_readings(state.client.latest_readings(count))
