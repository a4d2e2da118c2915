"""Typer CLI: market-pulse models, toggle, weight, blend, alternatives, simulate."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from market_pulse.common.types import Dataset

app = typer.Typer(
    name="market-pulse",
    help="Multi-model prediction blending and what-if simulation for market dashboards",
    no_args_is_help=True,
)
console = Console()


def _store():
    from market_pulse.storage.model_store import ModelSettingsStore

    return ModelSettingsStore()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


async def _load_registry():
    """Registry hydrated from the local store, persisting back to it."""
    from market_pulse.forecasting.registry import ModelRegistry
    from market_pulse.notifications.base import CompositeNotifier, NoticeLog
    from market_pulse.notifications.telegram import TelegramNotifier

    store = _store()
    notices = NoticeLog()
    telegram = TelegramNotifier()
    registry = ModelRegistry(
        persist=store,
        notifier=CompositeNotifier([notices, telegram]),
    )
    registry.hydrate(await store.load_all())
    return registry, notices, telegram


def _print_notices(notices) -> None:
    for notice in notices.notices:
        console.print(f"[red]{notice.title}: {notice.description}[/red]")


def _parse_params(params: list[str]) -> dict[str, float]:
    parsed: dict[str, float] = {}
    for item in params:
        key, sep, raw = item.partition("=")
        if not sep:
            raise typer.BadParameter(f"Expected id=value, got {item!r}", param_hint="--param")
        try:
            parsed[key.strip()] = float(raw)
        except ValueError:
            raise typer.BadParameter(f"Not a number: {raw!r}", param_hint="--param")
    return parsed


@app.command()
def models() -> None:
    """Show the model roster with saved settings applied."""
    from market_pulse.dashboard.formatters import format_models_table

    async def _run() -> None:
        registry, _, _ = await _load_registry()
        format_models_table(registry.models, console)

    asyncio.run(_run())


@app.command()
def toggle(model_id: str = typer.Argument(help="Model ID to enable/disable")) -> None:
    """Enable or disable a model."""
    from market_pulse.dashboard.formatters import format_models_table

    async def _run() -> None:
        registry, notices, telegram = await _load_registry()
        if model_id not in registry:
            console.print(f"[yellow]Unknown model '{model_id}'[/yellow]")
            return
        await registry.toggle_enabled(model_id)
        await telegram.close()
        _print_notices(notices)
        format_models_table(registry.models, console)

    asyncio.run(_run())


@app.command()
def weight(
    model_id: str = typer.Argument(help="Model ID to reweight"),
    value: float = typer.Argument(help="New relative weight (nominally 0-1)"),
) -> None:
    """Set a model's relative weight."""
    from market_pulse.dashboard.formatters import format_models_table

    async def _run() -> None:
        registry, notices, telegram = await _load_registry()
        if model_id not in registry:
            console.print(f"[yellow]Unknown model '{model_id}'[/yellow]")
            return
        await registry.update_weight(model_id, value)
        await telegram.close()
        _print_notices(notices)
        format_models_table(registry.models, console)

    asyncio.run(_run())


@app.command()
def blend(
    dataset: Dataset = typer.Option(Dataset.FINANCIAL, "--dataset", "-d", help="Market dataset"),
    metric: str = typer.Option("price", "--metric", "-m", help="Metric key"),
    output: str = typer.Option("table", "--output", "-o", help="Output format: table, json"),
) -> None:
    """Fetch the latest model predictions and show the blended forecast."""
    from market_pulse.config import get_settings
    from market_pulse.dashboard.formatters import format_contributions_table, format_json
    from market_pulse.dashboard.state import ChartStateCoordinator
    from market_pulse.sources.predictions import SupabasePredictionSource

    if not get_settings().supabase_url:
        console.print("[red]SUPABASE_URL is not configured[/red]")
        raise typer.Exit(code=1)

    async def _run() -> None:
        registry, notices, telegram = await _load_registry()
        state = ChartStateCoordinator(
            registry=registry, notices=notices, dataset=dataset, metric=metric,
        )
        await state.refresh_predictions(SupabasePredictionSource())
        await telegram.close()
        _print_notices(notices)

        blended = state.blended_prediction()
        if output == "json":
            console.print(format_json(blended))
        else:
            format_contributions_table(blended, console)

    asyncio.run(_run())


@app.command()
def alternatives(
    base_change: float = typer.Argument(help="Base predicted change (%)"),
    confidence: float = typer.Argument(help="Base prediction confidence (0-1)"),
    dataset: Dataset = typer.Option(Dataset.FINANCIAL, "--dataset", "-d", help="Market dataset"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for the seasonal swing"),
) -> None:
    """Derive alternative-model predictions from a base prediction."""
    import numpy as np

    from market_pulse.dashboard.formatters import format_alternatives_table
    from market_pulse.forecasting.alternatives import alternative_configs, derive_alternatives

    rng = np.random.default_rng(seed)
    derived = derive_alternatives(base_change, confidence, alternative_configs(dataset, rng))
    format_alternatives_table(derived, console)


@app.command()
def simulate(
    base: float = typer.Argument(help="Base series value to adjust"),
    param: List[str] = typer.Option([], "--param", "-p", help="Parameter override, id=value"),
    parameter_id: str = typer.Option("trend", "--apply", help="Parameter driving the adjustment"),
    scenario: Optional[str] = typer.Option(None, "--scenario", help="Load a saved scenario first"),
    save: Optional[str] = typer.Option(None, "--save", help="Save the resulting parameters"),
) -> None:
    """Show per-model adjusted values under what-if parameters."""
    from market_pulse.dashboard.formatters import format_simulation_table
    from market_pulse.simulation.controller import SimulationController

    overrides = _parse_params(param)

    async def _run() -> None:
        registry, _, _ = await _load_registry()
        store = _store()
        controller = SimulationController()

        if scenario:
            saved = await store.load_scenario(scenario)
            if saved is None:
                console.print(f"[yellow]No scenario named '{scenario}'[/yellow]")
            else:
                controller.restore(saved)

        for pid, value in overrides.items():
            if controller.update_parameter(pid, value) is None:
                console.print(f"[yellow]Ignoring unknown parameter '{pid}'[/yellow]")

        controller.toggle_simulation_mode()
        overlays = controller.model_overlays([base], registry.models, parameter_id)
        adjusted = {model_id: float(series[0]) for model_id, series in overlays.items()}
        format_simulation_table(base, adjusted, controller.parameters, console)

        if save:
            await store.save_scenario(save, controller.snapshot())
            console.print(f"[green]Saved scenario '{save}'[/green]")

    asyncio.run(_run())


@app.command()
def scenarios() -> None:
    """List saved simulation scenarios."""

    async def _run() -> None:
        names = await _store().list_scenarios()
        if not names:
            console.print("[yellow]No saved scenarios.[/yellow]")
            return
        for name in names:
            console.print(f"  {name}")

    asyncio.run(_run())


if __name__ == "__main__":
    app()
