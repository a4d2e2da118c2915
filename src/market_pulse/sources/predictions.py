"""Per-model prediction source backed by the remote table store (read-only)."""

from __future__ import annotations

import logging
from typing import Protocol

from market_pulse.common.http import HttpClient
from market_pulse.common.types import Dataset, ModelId
from market_pulse.config import get_settings
from market_pulse.forecasting.models import ModelPrediction

logger = logging.getLogger(__name__)


class PredictionSource(Protocol):
    """Supplies the current cycle's predictions keyed by model id."""

    async def fetch(self, dataset: Dataset, metric_key: str) -> dict[ModelId, ModelPrediction]:
        ...


def latest_per_model(
    rows: list[dict],
    default_confidence: float = 0.5,
) -> dict[ModelId, ModelPrediction]:
    """Keep the first row seen for each model.

    Rows must already be ordered newest first. Rows without a model id or
    a numeric prediction value are skipped; a missing confidence becomes
    *default_confidence*.
    """
    latest: dict[ModelId, ModelPrediction] = {}
    for row in rows:
        model_id = row.get("model_id")
        if not model_id or model_id in latest:
            continue
        raw_value = row.get("prediction_value")
        try:
            value = float(raw_value)
        except (TypeError, ValueError):
            logger.debug("Skipping prediction row for %s with value %r", model_id, raw_value)
            continue
        confidence = row.get("confidence")
        latest[model_id] = ModelPrediction(
            value=value,
            confidence=float(confidence) if confidence else default_confidence,
        )
    return latest


class SupabasePredictionSource:
    """Reads the newest predictions per model from the ``model_predictions`` table."""

    def __init__(self, client: HttpClient | None = None) -> None:
        settings = get_settings()
        self._client = client
        self._table = settings.predictions_table
        self._limit = settings.prediction_fetch_limit
        self._default_confidence = settings.default_confidence

    async def fetch(self, dataset: Dataset, metric_key: str) -> dict[ModelId, ModelPrediction]:
        """Fetch and dedupe the latest predictions for a dataset/metric pair.

        Raises:
            httpx.HTTPError: on transport or status failure (after retries)
            ValueError: if the payload is not a list of rows
        """
        params = {
            "select": "model_id,prediction_value,confidence",
            "dataset": f"eq.{dataset.value}",
            "metric_key": f"eq.{metric_key}",
            "order": "timestamp.desc",
            "limit": self._limit,
        }
        if self._client is not None:
            resp = await self._client.get(f"/rest/v1/{self._table}", params=params)
        else:
            async with HttpClient.for_table_store() as client:
                resp = await client.get(f"/rest/v1/{self._table}", params=params)

        rows = resp.json()
        if not isinstance(rows, list):
            raise ValueError(f"Unexpected predictions payload: {type(rows).__name__}")

        predictions = latest_per_model(rows, self._default_confidence)
        logger.info(
            "Fetched %d row(s), %d model prediction(s) for %s/%s",
            len(rows), len(predictions), dataset.value, metric_key,
        )
        return predictions
