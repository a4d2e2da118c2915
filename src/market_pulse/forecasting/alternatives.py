"""Alternative-model predictions derived from a base predicted change.

Data-fetch collaborators attach a handful of alternative model predictions
to every metric row by scaling the row's predicted change. Derived
confidence is capped at 1 regardless of the modifier.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from market_pulse.common.types import Dataset, ModelId
from market_pulse.forecasting.models import ModelPrediction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AlternativeModelConfig:
    """Scaling applied to the base prediction for one alternative model."""

    id: ModelId
    multiplier: float
    confidence_modifier: float


@dataclass(frozen=True)
class AlternativePrediction:
    """A derived prediction for one alternative model."""

    model: ModelId
    value: float
    confidence: float

    def as_prediction(self) -> ModelPrediction:
        return ModelPrediction(value=self.value, confidence=self.confidence)


_STATIC_CONFIGS: dict[Dataset, tuple[AlternativeModelConfig, ...]] = {
    Dataset.HOUSING: (
        AlternativeModelConfig("regional", 1.3, 0.75),
        AlternativeModelConfig("national", 0.7, 0.95),
    ),
    Dataset.MINING: (
        AlternativeModelConfig("resource-driven", 1.4, 0.8),
        AlternativeModelConfig("market-driven", 0.65, 0.9),
    ),
    Dataset.AGRICULTURE: (
        AlternativeModelConfig("weather-based", 1.25, 0.7),
        AlternativeModelConfig("market-based", 0.75, 0.92),
    ),
    Dataset.GREEN_HYDROGEN: (
        AlternativeModelConfig("tech-focused", 1.6, 0.65),
        AlternativeModelConfig("policy-driven", 0.85, 0.9),
    ),
}


def alternative_configs(
    dataset: Dataset,
    rng: np.random.Generator | None = None,
) -> list[AlternativeModelConfig]:
    """Alternative-model table for a dataset.

    The financial seasonal model swings either up (1.2) or down (0.8) per
    call; pass a seeded *rng* for reproducible output.
    """
    if dataset is Dataset.FINANCIAL:
        rng = rng or np.random.default_rng()
        seasonal = 1.2 if rng.random() > 0.5 else 0.8
        return [
            AlternativeModelConfig("optimistic", 1.5, 0.8),
            AlternativeModelConfig("pessimistic", 0.6, 0.9),
            AlternativeModelConfig("seasonal", seasonal, 0.85),
        ]
    return list(_STATIC_CONFIGS.get(dataset, ()))


def derive_alternatives(
    base_change: float | None,
    base_confidence: float,
    configs: list[AlternativeModelConfig],
) -> list[AlternativePrediction]:
    """Derive one prediction per config from a base predicted change.

    value = base_change * multiplier (a missing base change counts as 0)
    confidence = min(base_confidence * confidence_modifier, 1)

    Only the upper bound is enforced. A negative result is passed through
    and logged so the upstream data can be checked.
    """
    base = base_change or 0.0
    derived: list[AlternativePrediction] = []
    for config in configs:
        confidence = min(base_confidence * config.confidence_modifier, 1.0)
        if confidence < 0:
            logger.warning(
                "Negative derived confidence %.3f for model %s (base=%.3f, modifier=%.3f)",
                confidence, config.id, base_confidence, config.confidence_modifier,
            )
        derived.append(
            AlternativePrediction(
                model=config.id,
                value=base * config.multiplier,
                confidence=confidence,
            )
        )
    return derived


def alternatives_for_row(
    row: dict,
    dataset: Dataset,
    rng: np.random.Generator | None = None,
) -> list[AlternativePrediction]:
    """Derive alternative predictions for a raw metric row.

    Reads ``predicted_change`` and ``prediction_confidence`` from the row,
    the columns the market tables carry.
    """
    return derive_alternatives(
        row.get("predicted_change"),
        float(row.get("prediction_confidence") or 0.0),
        alternative_configs(dataset, rng),
    )
