"""Output formatters: Rich tables, JSON, Telegram text."""

from __future__ import annotations

import json
from datetime import datetime, timezone

from rich.console import Console
from rich.table import Table

from market_pulse.forecasting.alternatives import AlternativePrediction
from market_pulse.forecasting.models import BlendedPrediction, Model
from market_pulse.notifications.base import Notice
from market_pulse.simulation.controller import SimulationParameter


def _timestamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")


def format_models_table(models: list[Model], console: Console | None = None) -> None:
    """Print the model roster."""
    if console is None:
        console = Console()

    table = Table(title="Forecasting Models", show_lines=False)
    table.add_column("ID", width=12)
    table.add_column("Name", width=16)
    table.add_column("Enabled", width=7)
    table.add_column("Weight", justify="right", width=7)

    for m in models:
        enabled = "[green]yes[/green]" if m.enabled else "[dim]no[/dim]"
        table.add_row(m.id, m.name, enabled, f"{m.weight:.2f}")

    console.print(table)


def format_contributions_table(blended: BlendedPrediction, console: Console | None = None) -> None:
    """Print per-model contributions sorted by weight share (descending)."""
    if console is None:
        console = Console()

    if blended.is_degenerate:
        console.print("[yellow]No active models or contributions (blended value is 0).[/yellow]")

    rows = sorted(blended.contributions, key=lambda c: c.contribution_percentage, reverse=True)

    table = Table(
        title=f"Blended Prediction: {blended.value:,.4g}",
        caption=f"Generated at {_timestamp()}",
        show_lines=True,
    )
    table.add_column("Model", width=16)
    table.add_column("On", width=3)
    table.add_column("Prediction", justify="right", width=11)
    table.add_column("Conf", justify="right", width=5)
    table.add_column("Weight", justify="right", width=7)
    table.add_column("Contribution", justify="right", width=12)
    table.add_column("Weight %", justify="right", width=8)
    table.add_column("Value %", justify="right", width=8)

    for c in rows:
        style = "" if c.contribution_percentage else "dim"
        table.add_row(
            c.name,
            "Y" if c.enabled else "-",
            f"{c.value:,.4g}" if c.has_prediction else "n/a",
            f"{c.confidence:.0%}" if c.confidence is not None else "",
            f"{c.weight:.2f}",
            f"{c.contribution:,.4g}",
            f"{c.contribution_percentage:.1f}%",
            f"{c.value_share_percentage:.1f}%",
            style=style,
        )

    console.print(table)


def format_json(blended: BlendedPrediction) -> str:
    """Format a blended prediction as a JSON string."""
    return json.dumps(blended.to_dict(), indent=2)


def format_alternatives_table(
    predictions: list[AlternativePrediction],
    console: Console | None = None,
) -> None:
    if console is None:
        console = Console()

    if not predictions:
        console.print("[yellow]No alternative models configured for this dataset.[/yellow]")
        return

    table = Table(title="Alternative Model Predictions")
    table.add_column("Model", width=16)
    table.add_column("Value", justify="right", width=10)
    table.add_column("Confidence", justify="right", width=10)
    for p in predictions:
        color = "green" if p.value > 0 else "red" if p.value < 0 else "white"
        table.add_row(p.model, f"[{color}]{p.value:+.2f}[/{color}]", f"{p.confidence:.0%}")
    console.print(table)


def format_simulation_table(
    base: float,
    adjusted: dict[str, float],
    parameters: list[SimulationParameter],
    console: Console | None = None,
) -> None:
    if console is None:
        console = Console()

    params = ", ".join(f"{p.name} {p.value:g}{p.unit}" for p in parameters)
    table = Table(title=f"Simulation (base {base:,.4g})", caption=params)
    table.add_column("Model", width=16)
    table.add_column("Adjusted", justify="right", width=12)
    table.add_column("Change", justify="right", width=8)
    for model_id, value in adjusted.items():
        change = (value - base) / base if base else 0.0
        table.add_row(model_id, f"{value:,.4g}", f"{change:+.1%}")
    console.print(table)


def format_telegram_notice(notice: Notice) -> str:
    """Format a notice for Telegram (Markdown)."""
    icon = "⚠️" if notice.variant == "destructive" else "ℹ️"
    lines = [
        f"{icon} *{notice.title}*",
        "",
        notice.description[:300],
        "",
        f"\U0001f550 {notice.timestamp.strftime('%Y-%m-%d %H:%M UTC')}",
    ]
    return "\n".join(lines)
