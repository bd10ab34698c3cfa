from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def format_timestamp(value: Any) -> str:
    if not isinstance(value, (int, float)):
        return str(value)
    moment = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def render_reading(reading: Dict[str, Any]) -> None:
    echo_heading("Saved Reading")
    echo_key_values(
        [
            ("frequency_hz", reading.get("frequency_hz")),
            ("signal_dbm", reading.get("signal_dbm")),
            ("classification", reading.get("classification")),
            ("timestamp", format_timestamp(reading.get("timestamp"))),
        ]
    )


def render_readings(readings: List[Dict[str, Any]]) -> None:
    echo_heading(f"Readings ({len(readings)})")
    if not readings:
        typer.echo("No readings found.")
        return
    for reading in readings:
        typer.echo(
            f"  {format_timestamp(reading.get('timestamp'))}"
            f"  {reading.get('frequency_hz')} Hz"
            f"  {reading.get('signal_dbm')} dBm"
            f"  {reading.get('classification')}"
        )
