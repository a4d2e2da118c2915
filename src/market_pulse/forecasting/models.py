"""Forecasting model roster and prediction data models."""

from __future__ import annotations

from dataclasses import asdict, dataclass

from market_pulse.common.types import JsonDict, ModelId


@dataclass
class Model:
    """A named, weighted, enable-able forecasting source.

    Attributes:
        id: unique identifier, immutable once the roster is built
        name: display label
        color: display hint carried through to contribution listings
        weight: relative weight, nominally 0-1 (the blender normalizes)
        enabled: disabled models stay in the roster but are not blended
    """

    id: ModelId
    name: str
    color: str = "#64748B"
    weight: float = 1.0
    enabled: bool = True

    def to_dict(self) -> JsonDict:
        return asdict(self)


@dataclass(frozen=True)
class ModelPrediction:
    """A model's raw forecast for the current metric and time window.

    Attributes:
        value: raw forecast value
        confidence: optional confidence (0-1)
    """

    value: float
    confidence: float | None = None


@dataclass(frozen=True)
class ModelContribution:
    """One roster model's share of a blended prediction."""

    id: ModelId
    name: str
    color: str
    value: float
    confidence: float | None
    weight: float
    enabled: bool
    has_prediction: bool
    contribution: float
    contribution_percentage: float  # share of the normalizing weight
    value_share_percentage: float  # share of the weighted sum

    def to_dict(self) -> JsonDict:
        return asdict(self)


@dataclass(frozen=True)
class BlendedPrediction:
    """Weight-normalized combination of the enabled models' predictions.

    Derived on every read from (roster, predictions); never stored.
    """

    value: float
    weighted_sum: float
    total_weight: float
    contributions: tuple[ModelContribution, ...] = ()

    @property
    def is_degenerate(self) -> bool:
        """True when no enabled model had a prediction to blend."""
        return self.total_weight == 0

    def contribution_for(self, model_id: ModelId) -> ModelContribution | None:
        for item in self.contributions:
            if item.id == model_id:
                return item
        return None

    def to_dict(self) -> JsonDict:
        return {
            "value": self.value,
            "weighted_sum": self.weighted_sum,
            "total_weight": self.total_weight,
            "contributions": [c.to_dict() for c in self.contributions],
        }


def default_models() -> list[Model]:
    """Seed roster shown on the dashboard's model comparison panel."""
    return [
        Model(id="primary", name="Base Model", color="#0EA5E9", weight=1.0, enabled=True),
        Model(id="optimistic", name="Optimistic", color="#10B981", weight=0.75, enabled=True),
        Model(id="pessimistic", name="Conservative", color="#F43F5E", weight=0.5, enabled=True),
        Model(id="seasonal", name="Seasonal", color="#8B5CF6", weight=0.65, enabled=False),
    ]
