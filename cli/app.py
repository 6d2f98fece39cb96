from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_history, render_latest


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


class TimeframeChoice(str, Enum):
    last_24h = "24h"
    last_7d = "7d"
    last_30d = "30d"


class ReportChoice(str, Enum):
    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"
    yearly = "yearly"


app = typer.Typer(
    help="Utilities for querying the telemetry hub service.",
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
        help="Telemetry API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    user: Optional[str] = typer.Option(
        None,
        "--user",
        "-u",
        help="Caller identity forwarded to the API (defaults to TELEMETRY_USER env).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Request timeout in seconds.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, user=user, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("latest")
def latest_command(ctx: typer.Context) -> None:
    """Show the most recently ingested reading."""
    state = _get_state(ctx)
    render_latest(state.client.get_latest())


@app.command("history")
def history_command(
    ctx: typer.Context,
    timeframe: TimeframeChoice = typer.Option(
        TimeframeChoice.last_24h,
        "--timeframe",
        "-t",
        help="Chart window to aggregate.",
    ),
) -> None:
    """Show time-bucketed averages for a trailing window."""
    state = _get_state(ctx)
    points = state.client.get_history(timeframe.value)
    render_history(timeframe.value, points)


@app.command("report")
def report_command(
    ctx: typer.Context,
    report_type: ReportChoice = typer.Argument(..., help="Report period type."),
    start: str = typer.Option(..., "--start", "-s", help="ISO-8601 start date."),
    end: Optional[str] = typer.Option(None, "--end", "-e", help="ISO-8601 end date."),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        dir_okay=False,
        help="Write the report to this file instead of printing it.",
    ),
) -> None:
    """Generate a plain-text report for a date range."""
    state = _get_state(ctx)
    text = state.client.generate_report(report_type.value, start, end)
    if output is None:
        typer.echo(text, nl=False)
        return
    output.write_text(text, encoding="utf-8")
    typer.secho(f"Report written to {output}", fg=typer.colors.GREEN)
