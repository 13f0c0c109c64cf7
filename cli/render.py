from __future__ import annotations

from typing import Any, Dict, Iterable

import typer

from services.statistics import round_display

_DIRECTION_COLORS = {
    "up": typer.colors.GREEN,
    "flat": typer.colors.YELLOW,
    "down": typer.colors.RED,
}


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_state(payload: Dict[str, Any]) -> None:
    echo_heading(payload.get("title") or "Chart")
    echo_key_values(
        [
            ("widget_id", payload.get("widget_id")),
            ("phase", payload.get("phase")),
            ("interval", payload.get("interval")),
        ]
    )

    typer.echo()
    echo_heading("Summary")
    if payload.get("empty_series") is True:
        typer.echo("No value recorded for this period.")
    elif payload.get("empty_series") is None:
        typer.echo("No data loaded yet.")
    else:
        unit = payload.get("unit") or ""
        last_value = payload.get("last_value_rounded")
        if last_value is not None:
            typer.echo(f"last value: {last_value}{unit}")
        variation = payload.get("variation_percent")
        if variation is not None:
            color = _DIRECTION_COLORS.get(payload.get("variation_direction") or "")
            shown = round_display(variation) if isinstance(variation, (int, float)) else variation
            typer.secho(f"variation: {shown}%", fg=color)

    series = payload.get("series") or []
    if series:
        typer.echo()
        echo_heading("Series")
        for item in series:
            typer.echo(f"  - {item.get('name')}: {len(item.get('data') or [])} points")
