"""What-if simulation parameters and the simulation mode gate."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import asdict, dataclass, replace

import numpy as np

from market_pulse.common.types import JsonDict, clamp
from market_pulse.forecasting.models import Model

logger = logging.getLogger(__name__)


@dataclass
class SimulationParameter:
    """A bounded numeric knob. ``min <= value <= max`` always holds."""

    id: str
    name: str
    value: float
    min: float
    max: float
    step: float = 1.0
    unit: str = ""

    def __post_init__(self) -> None:
        if self.min > self.max:
            raise ValueError(f"Parameter {self.id}: min {self.min} > max {self.max}")
        self.value = clamp(self.value, self.min, self.max)

    def to_dict(self) -> JsonDict:
        return asdict(self)


def default_parameters() -> list[SimulationParameter]:
    return [
        SimulationParameter("trend", "Market Trend", 0, -50, 50, 1, "%"),
        SimulationParameter("volatility", "Volatility", 50, 0, 100, 1, "%"),
        SimulationParameter("seasonality", "Seasonality", 50, 0, 100, 1, "%"),
        SimulationParameter("market_sentiment", "Market Sentiment", 50, 0, 100, 1, "%"),
    ]


class SimulationController:
    """Owns simulation parameter values and the Off/On mode.

    Session-local only: nothing here is persisted, and parameters return to
    their defaults only through reset().
    """

    def __init__(self, parameters: Iterable[SimulationParameter] | None = None) -> None:
        seed = list(parameters) if parameters is not None else default_parameters()
        self._defaults = {p.id: replace(p) for p in seed}
        self._parameters = {p.id: replace(p) for p in seed}
        self._enabled = False

    @property
    def simulation_mode(self) -> bool:
        return self._enabled

    def toggle_simulation_mode(self) -> bool:
        """Flip between Off and On. Returns the new mode."""
        self._enabled = not self._enabled
        logger.debug("Simulation mode %s", "on" if self._enabled else "off")
        return self._enabled

    @property
    def parameters(self) -> list[SimulationParameter]:
        return [replace(p) for p in self._parameters.values()]

    def get(self, parameter_id: str) -> SimulationParameter | None:
        param = self._parameters.get(parameter_id)
        return replace(param) if param is not None else None

    def value(self, parameter_id: str) -> float | None:
        param = self._parameters.get(parameter_id)
        return param.value if param is not None else None

    def update_parameter(self, parameter_id: str, value: float) -> float | None:
        """Set a parameter, clamped into its range.

        Unknown ids are ignored. Returns the stored value, or None when the
        id is unknown.
        """
        param = self._parameters.get(parameter_id)
        if param is None:
            logger.debug("update_parameter: unknown parameter %s ignored", parameter_id)
            return None
        param.value = clamp(float(value), param.min, param.max)
        return param.value

    def reset(self) -> None:
        self._parameters = {pid: replace(p) for pid, p in self._defaults.items()}

    def snapshot(self) -> dict[str, float]:
        """Current values keyed by parameter id, for saving as a scenario."""
        return {pid: p.value for pid, p in self._parameters.items()}

    def restore(self, values: Mapping[str, float]) -> None:
        """Apply saved values through update_parameter (clamped, unknown ids skipped)."""
        for parameter_id, value in values.items():
            self.update_parameter(parameter_id, value)

    # ---- adjustments read by chart consumers ----

    def adjust(self, base: float, weight: float, parameter_id: str) -> float:
        """adjusted = base * (1 + weight * parameter_value / 100).

        Unknown parameters leave *base* unchanged.
        """
        param_value = self.value(parameter_id)
        if param_value is None:
            return base
        return base * (1 + weight * param_value / 100)

    def adjust_series(
        self,
        series: Iterable[float],
        weight: float,
        parameter_id: str,
    ) -> np.ndarray:
        values = np.asarray(list(series), dtype=float)
        param_value = self.value(parameter_id)
        if param_value is None:
            return values
        return values * (1 + weight * param_value / 100)

    def model_overlays(
        self,
        series: Iterable[float],
        models: Iterable[Model],
        parameter_id: str,
    ) -> dict[str, np.ndarray]:
        """One adjusted series per enabled model.

        Empty while simulation mode is Off.
        """
        if not self._enabled:
            return {}
        base = np.asarray(list(series), dtype=float)
        return {
            model.id: self.adjust_series(base, model.weight, parameter_id)
            for model in models
            if model.enabled
        }

    def to_dict(self) -> JsonDict:
        return {
            "simulation_mode": self._enabled,
            "parameters": [p.to_dict() for p in self._parameters.values()],
        }
