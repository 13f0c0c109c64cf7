from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_state
from models.intervals import IntervalWindow


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the chart widget service.",
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
        help="Widget service base URL (defaults to API_BASE_URL env or http://localhost:8000).",
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


@app.command("create")
def create_command(
    ctx: typer.Context,
    feature: List[str] = typer.Option(
        ...,
        "--feature",
        "-f",
        help="Device feature selector to chart; repeat for several features.",
    ),
    interval: Optional[IntervalWindow] = typer.Option(
        None,
        "--interval",
        "-i",
        help="Initial time window (defaults to last-hour).",
    ),
    title: Optional[str] = typer.Option(None, "--title", help="Widget title."),
    unit: Optional[str] = typer.Option(None, "--unit", help="Unit displayed next to values."),
) -> None:
    """Create a chart widget for one or more device features."""
    state = _get_state(ctx)
    payload = state.client.create_widget(
        feature_ids=list(feature),
        interval=interval.value if interval is not None else None,
        title=title,
        unit=unit,
    )
    typer.secho(f"Widget created. widget_id={payload.get('widget_id')}", fg=typer.colors.GREEN)


@app.command("state")
def state_command(
    ctx: typer.Context,
    widget_id: str = typer.Argument(..., help="Identifier returned from the create command."),
) -> None:
    """Show the current values and variation of a widget."""
    state = _get_state(ctx)
    render_state(state.client.get_state(widget_id))


@app.command("interval")
def interval_command(
    ctx: typer.Context,
    widget_id: str = typer.Argument(..., help="Identifier returned from the create command."),
    window: IntervalWindow = typer.Argument(..., help="Time window to display."),
) -> None:
    """Switch the time window of a widget."""
    state = _get_state(ctx)
    payload = state.client.select_interval(widget_id, window.value)
    typer.echo(f"Interval set to {payload.get('interval')} for widget {widget_id}.")


@app.command("publish")
def publish_command(
    ctx: typer.Context,
    feature_id: str = typer.Argument(..., help="Device feature selector."),
    value: float = typer.Argument(..., help="New reading."),
    device_name: str = typer.Option("cli", "--device", "-d", help="Device name attached to the reading."),
) -> None:
    """Report a new device feature reading."""
    state = _get_state(ctx)
    payload = state.client.publish_state(feature_id, device_name, value)
    typer.echo(f"State published to {payload.get('delivered', 0)} widget(s).")
