"""Tests for the table-store prediction source."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from market_pulse.common.types import Dataset
from market_pulse.sources.predictions import SupabasePredictionSource, latest_per_model


class TestLatestPerModel:
    def test_first_row_per_model_wins(self, prediction_rows):
        latest = latest_per_model(prediction_rows)
        assert set(latest) == {"primary", "optimistic", "pessimistic"}
        assert latest["primary"].value == 101.5
        assert latest["primary"].confidence == 0.82
        assert latest["optimistic"].value == 120.0

    def test_missing_confidence_defaults(self, prediction_rows):
        latest = latest_per_model(prediction_rows)
        assert latest["optimistic"].confidence == 0.5

    def test_custom_default_confidence(self, prediction_rows):
        latest = latest_per_model(prediction_rows, default_confidence=0.3)
        assert latest["optimistic"].confidence == 0.3

    def test_bad_rows_skipped(self):
        rows = [
            {"model_id": None, "prediction_value": 1.0},
            {"model_id": "a", "prediction_value": "not-a-number"},
            {"model_id": "a", "prediction_value": "2.5", "confidence": 0.9},
            {"model_id": "b"},
        ]
        latest = latest_per_model(rows)
        assert list(latest) == ["a"]
        assert latest["a"].value == 2.5

    def test_empty(self):
        assert latest_per_model([]) == {}


def _response(payload):
    resp = MagicMock()
    resp.json.return_value = payload
    resp.raise_for_status = MagicMock()
    return resp


@pytest.mark.asyncio
async def test_fetch_with_injected_client(prediction_rows):
    client = AsyncMock()
    client.get = AsyncMock(return_value=_response(prediction_rows))

    source = SupabasePredictionSource(client=client)
    predictions = await source.fetch(Dataset.HOUSING, "median_price")

    assert predictions["pessimistic"].value == 88.25
    url = client.get.call_args.args[0]
    params = client.get.call_args.kwargs["params"]
    assert url == "/rest/v1/model_predictions"
    assert params["dataset"] == "eq.housing"
    assert params["metric_key"] == "eq.median_price"
    assert params["order"] == "timestamp.desc"
    assert params["limit"] == 30


@pytest.mark.asyncio
async def test_fetch_opens_table_store_client(prediction_rows):
    with patch("market_pulse.sources.predictions.HttpClient") as MockClient:
        instance = AsyncMock()
        instance.get = AsyncMock(return_value=_response(prediction_rows))
        instance.__aenter__ = AsyncMock(return_value=instance)
        instance.__aexit__ = AsyncMock(return_value=False)
        MockClient.for_table_store.return_value = instance

        predictions = await SupabasePredictionSource().fetch(Dataset.FINANCIAL, "price")

    assert len(predictions) == 3
    instance.__aexit__.assert_awaited_once()


@pytest.mark.asyncio
async def test_fetch_rejects_non_list_payload():
    client = AsyncMock()
    client.get = AsyncMock(return_value=_response({"message": "permission denied"}))

    with pytest.raises(ValueError, match="Unexpected predictions payload"):
        await SupabasePredictionSource(client=client).fetch(Dataset.MINING, "output")


@pytest.mark.asyncio
async def test_fetch_propagates_http_errors():
    client = AsyncMock()
    client.get = AsyncMock(side_effect=httpx.ConnectError("down"))

    with pytest.raises(httpx.HTTPError):
        await SupabasePredictionSource(client=client).fetch(Dataset.MINING, "output")
