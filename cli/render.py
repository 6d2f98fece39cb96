from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_latest(payload: Optional[Dict[str, Any]]) -> None:
    echo_heading("Latest Reading")
    if not payload:
        typer.echo("No readings recorded yet.")
        return
    echo_key_values(
        [
            ("deviceId", payload.get("deviceId")),
            ("temperature", payload.get("temperature")),
            ("humidity", payload.get("humidity")),
            ("timestamp", payload.get("timestamp")),
        ]
    )


def render_history(timeframe: str, points: List[Dict[str, Any]]) -> None:
    echo_heading(f"History ({timeframe})")
    if not points:
        typer.echo("No readings in this timeframe.")
        return
    for point in points:
        typer.echo(
            f"  - {point.get('label') or point.get('timestamp')}: "
            f"temperature={point.get('temperature'):.1f} "
            f"humidity={point.get('humidity'):.1f}"
        )
