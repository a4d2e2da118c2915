"""Weighted blending of per-model predictions.

The blended value is the weight-normalized average of the enabled models
that have a prediction this cycle:

    value = sum(prediction * weight) / sum(weight)

Weights are relative and need not sum to 1. An enabled model without a
prediction is left out of the denominator exactly as if it were disabled.
When nothing is left to blend the value is 0.0.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from market_pulse.common.types import ModelId
from market_pulse.forecasting.models import (
    BlendedPrediction,
    Model,
    ModelContribution,
    ModelPrediction,
)

PredictionInput = Mapping[ModelId, ModelPrediction | float]


def _lookup(predictions: PredictionInput, model_id: ModelId) -> ModelPrediction | None:
    """Return the model's prediction, or None when its key is absent.

    A bare number is accepted in place of a ModelPrediction. A present
    value of 0.0 is a real prediction, not a missing one.
    """
    if model_id not in predictions:
        return None
    raw = predictions[model_id]
    if raw is None:
        return None
    if isinstance(raw, ModelPrediction):
        return raw
    return ModelPrediction(value=float(raw))


def blend(predictions: PredictionInput, models: Iterable[Model]) -> BlendedPrediction:
    """Blend per-model predictions against the roster's weights.

    Args:
        predictions: Current cycle's predictions keyed by model id; may be partial
        models: The full roster, disabled models included

    Returns:
        BlendedPrediction with one contribution per roster model. Disabled
        and unpredicted models report zero contribution and 0%.
    """
    roster = list(models)

    weighted_sum = 0.0
    total_weight = 0.0
    resolved: dict[ModelId, ModelPrediction] = {}

    for model in roster:
        if not model.enabled:
            continue
        prediction = _lookup(predictions, model.id)
        if prediction is None:
            continue
        resolved[model.id] = prediction
        weighted_sum += prediction.value * model.weight
        total_weight += model.weight

    value = weighted_sum / total_weight if total_weight != 0 else 0.0

    contributions: list[ModelContribution] = []
    for model in roster:
        prediction = resolved.get(model.id)
        if prediction is None:
            # Disabled, or enabled with no data: shown, but contributes nothing
            shown = _lookup(predictions, model.id)
            contributions.append(
                ModelContribution(
                    id=model.id,
                    name=model.name,
                    color=model.color,
                    value=shown.value if shown is not None else 0.0,
                    confidence=shown.confidence if shown is not None else None,
                    weight=model.weight,
                    enabled=model.enabled,
                    has_prediction=shown is not None,
                    contribution=0.0,
                    contribution_percentage=0.0,
                    value_share_percentage=0.0,
                )
            )
            continue

        contribution = prediction.value * model.weight
        contributions.append(
            ModelContribution(
                id=model.id,
                name=model.name,
                color=model.color,
                value=prediction.value,
                confidence=prediction.confidence,
                weight=model.weight,
                enabled=True,
                has_prediction=True,
                contribution=contribution,
                contribution_percentage=(
                    model.weight / total_weight * 100 if total_weight > 0 else 0.0
                ),
                value_share_percentage=(
                    contribution / weighted_sum * 100 if weighted_sum != 0 else 0.0
                ),
            )
        )

    return BlendedPrediction(
        value=value,
        weighted_sum=weighted_sum,
        total_weight=total_weight,
        contributions=tuple(contributions),
    )


def weighted_prediction(predictions: PredictionInput, models: Iterable[Model]) -> float:
    """Shortcut for ``blend(...).value``."""
    return blend(predictions, models).value
