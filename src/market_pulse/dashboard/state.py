"""Single state surface consumed by the dashboard's presentation layer.

Composes the model registry, the blender, the simulation controller and
the annotation board, and keeps the small amount of glue state (dataset,
metric and time-range selection, layout, model comparison) next to them.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

import httpx

from market_pulse.annotations.board import Annotation, AnnotationBoard
from market_pulse.common.types import Dataset, JsonDict, Layout, ModelId, TimeRange
from market_pulse.config import get_settings
from market_pulse.forecasting.blender import PredictionInput, blend
from market_pulse.forecasting.models import BlendedPrediction, ModelContribution, ModelPrediction
from market_pulse.forecasting.registry import ModelRegistry
from market_pulse.notifications.base import NoticeLog, Notifier, error_notice
from market_pulse.simulation.controller import SimulationController
from market_pulse.sources.predictions import PredictionSource

logger = logging.getLogger(__name__)


def _as_prediction(raw: ModelPrediction | float) -> ModelPrediction:
    if isinstance(raw, ModelPrediction):
        return raw
    return ModelPrediction(value=float(raw))


class ChartStateCoordinator:
    """Entry point for user actions and the read model for presentation.

    Model commands are async because they wait on persistence; their local
    effect is visible as soon as the call starts. Everything else is
    synchronous.
    """

    def __init__(
        self,
        registry: ModelRegistry | None = None,
        simulation: SimulationController | None = None,
        annotations: AnnotationBoard | None = None,
        notices: NoticeLog | None = None,
        notifier: Notifier | None = None,
        dataset: Dataset | None = None,
        metric: str | None = None,
    ) -> None:
        settings = get_settings()
        self.notices = notices or NoticeLog()
        self._notifier: Notifier = notifier or self.notices
        self.registry = registry or ModelRegistry(notifier=self._notifier)
        self.simulation = simulation or SimulationController()
        self.annotations = annotations or AnnotationBoard()

        self.dataset = dataset or Dataset(settings.default_dataset)
        self.selected_metric = metric or settings.default_metric
        self.time_range = TimeRange.ONE_MONTH
        self.layout = Layout.LINE
        self.selected_metrics: list[str] = []
        self.comparison_mode = False
        self.selected_models: list[ModelId] = ["primary"]

        self._predictions: dict[ModelId, ModelPrediction] = {}
        self._predictions_revision = 0
        self._blend_cache: tuple[tuple[int, int], BlendedPrediction] | None = None
        self.is_loading = False

    # ---- predictions and blending ----

    @property
    def predictions(self) -> dict[ModelId, ModelPrediction]:
        return dict(self._predictions)

    def set_predictions(self, predictions: PredictionInput) -> None:
        """Replace the current cycle's prediction map."""
        self._predictions = {
            model_id: _as_prediction(raw)
            for model_id, raw in predictions.items()
            if raw is not None
        }
        self._predictions_revision += 1

    async def refresh_predictions(self, source: PredictionSource) -> bool:
        """Pull a new prediction map for the current dataset and metric.

        On failure the previous map is kept and a notice is posted. A result
        that arrives after the dataset or metric changed is discarded.
        """
        dataset, metric = self.dataset, self.selected_metric
        self.is_loading = True
        try:
            predictions = await source.fetch(dataset, metric)
        except (httpx.HTTPError, ValueError, KeyError):
            logger.warning(
                "Failed to fetch predictions for %s/%s",
                dataset.value, metric, exc_info=True,
            )
            await self._notify_error("Failed to load model predictions.")
            return False
        finally:
            self.is_loading = False
        if (dataset, metric) != (self.dataset, self.selected_metric):
            logger.debug(
                "Discarding predictions for %s/%s; selection is now %s/%s",
                dataset.value, metric, self.dataset.value, self.selected_metric,
            )
            return False
        self.set_predictions(predictions)
        return True

    def blended_prediction(self) -> BlendedPrediction:
        """Blend against the current roster, memoized on both inputs' revisions."""
        key = (self.registry.revision, self._predictions_revision)
        if self._blend_cache is not None and self._blend_cache[0] == key:
            return self._blend_cache[1]
        result = blend(self._predictions, self.registry.models)
        self._blend_cache = (key, result)
        return result

    @property
    def blended_value(self) -> float:
        return self.blended_prediction().value

    def contributions(self) -> list[ModelContribution]:
        """Per-model contributions; available whether or not simulation is on."""
        return list(self.blended_prediction().contributions)

    # ---- model commands ----

    async def toggle_model(self, model_id: ModelId) -> bool:
        return await self.registry.toggle_enabled(model_id)

    async def update_model_weight(self, model_id: ModelId, weight: float) -> bool:
        return await self.registry.update_weight(model_id, weight)

    def toggle_comparison_mode(self) -> bool:
        self.comparison_mode = not self.comparison_mode
        return self.comparison_mode

    def toggle_model_selection(self, model_id: ModelId) -> None:
        if model_id in self.selected_models:
            self.selected_models.remove(model_id)
        else:
            self.selected_models.append(model_id)

    # ---- simulation ----

    def toggle_simulation_mode(self) -> bool:
        return self.simulation.toggle_simulation_mode()

    def update_simulation_parameter(self, parameter_id: str, value: float) -> float | None:
        return self.simulation.update_parameter(parameter_id, value)

    def reset_simulation(self) -> None:
        self.simulation.reset()

    # ---- annotations ----

    def add_annotation(self, chart_id: str, x: float, y: float, content: str, author: str) -> str:
        return self.annotations.add_annotation(chart_id, x, y, content, author)

    def add_reply(self, annotation_id: str, content: str, author: str) -> str | None:
        return self.annotations.add_reply(annotation_id, content, author)

    def update_annotation(self, annotation_id: str, content: str) -> bool:
        return self.annotations.update_annotation(annotation_id, content)

    def delete_annotation(self, annotation_id: str) -> bool:
        return self.annotations.delete_annotation(annotation_id)

    def select_annotation(self, annotation_id: str | None) -> None:
        self.annotations.select(annotation_id)

    @property
    def selected_annotation(self) -> Annotation | None:
        return self.annotations.selected_annotation

    # ---- glue selection ----

    def select_dataset(self, dataset: Dataset | str) -> None:
        """Switch dataset. The old prediction map no longer applies and is cleared."""
        dataset = Dataset(dataset) if isinstance(dataset, str) else dataset
        if dataset is self.dataset:
            return
        self.dataset = dataset
        self.set_predictions({})

    def select_metric(self, metric_key: str) -> None:
        if metric_key == self.selected_metric:
            return
        self.selected_metric = metric_key
        self.set_predictions({})

    def set_time_range(self, time_range: TimeRange | str) -> None:
        self.time_range = TimeRange(time_range) if isinstance(time_range, str) else time_range

    def set_layout(self, layout: Layout | str) -> None:
        self.layout = Layout(layout) if isinstance(layout, str) else layout

    def toggle_metric(self, metric_key: str) -> None:
        if metric_key in self.selected_metrics:
            self.selected_metrics.remove(metric_key)
        else:
            self.selected_metrics.append(metric_key)

    # ---- read model ----

    def snapshot(self) -> JsonDict:
        """Everything presentation needs, as plain JSON-serializable data."""
        blended = self.blended_prediction()
        return {
            "dataset": self.dataset.value,
            "selected_metric": self.selected_metric,
            "selected_metrics": list(self.selected_metrics),
            "time_range": self.time_range.value,
            "layout": self.layout.value,
            "is_loading": self.is_loading,
            "blended_value": blended.value,
            "contributions": [c.to_dict() for c in blended.contributions],
            "models": [m.to_dict() for m in self.registry.models],
            "comparison_mode": self.comparison_mode,
            "selected_models": list(self.selected_models),
            **self.simulation.to_dict(),
            **self.annotations.to_dict(),
            "notices": [n.to_dict() for n in self.notices.notices],
        }

    async def _notify_error(self, description: str) -> None:
        try:
            await self._notifier.notify(error_notice(description))
        except Exception:
            logger.warning("Failed to deliver notice", exc_info=True)
