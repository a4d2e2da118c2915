"""Tests for alternative-model derivation."""

from __future__ import annotations

import logging
from unittest.mock import MagicMock

import numpy as np
import pytest

from market_pulse.common.types import Dataset
from market_pulse.forecasting.alternatives import (
    AlternativeModelConfig,
    alternative_configs,
    alternatives_for_row,
    derive_alternatives,
)


class TestDeriveAlternatives:
    def test_value_and_confidence(self):
        configs = [AlternativeModelConfig("optimistic", 1.5, 0.8)]
        (alt,) = derive_alternatives(4.0, 0.5, configs)
        assert alt.model == "optimistic"
        assert alt.value == pytest.approx(6.0)
        assert alt.confidence == pytest.approx(0.4)

    def test_confidence_capped_at_one(self):
        configs = [AlternativeModelConfig("hot", 1.0, 1.5)]
        (alt,) = derive_alternatives(2.0, 0.9, configs)
        assert alt.confidence == 1.0

    def test_missing_base_change_is_zero(self):
        configs = [AlternativeModelConfig("x", 2.0, 1.0)]
        (alt,) = derive_alternatives(None, 0.5, configs)
        assert alt.value == 0.0

    def test_negative_confidence_passed_through_and_logged(self, caplog):
        configs = [AlternativeModelConfig("x", 1.0, 0.5)]
        with caplog.at_level(logging.WARNING, logger="market_pulse.forecasting.alternatives"):
            (alt,) = derive_alternatives(1.0, -0.4, configs)
        assert alt.confidence == pytest.approx(-0.2)
        assert "Negative derived confidence" in caplog.text

    def test_as_prediction(self):
        (alt,) = derive_alternatives(1.0, 0.5, [AlternativeModelConfig("x", 3.0, 1.0)])
        prediction = alt.as_prediction()
        assert prediction.value == 3.0
        assert prediction.confidence == 0.5


class TestConfigs:
    def test_housing_table(self):
        configs = alternative_configs(Dataset.HOUSING)
        assert [(c.id, c.multiplier, c.confidence_modifier) for c in configs] == [
            ("regional", 1.3, 0.75),
            ("national", 0.7, 0.95),
        ]

    @pytest.mark.parametrize("dataset", list(Dataset))
    def test_every_dataset_has_configs(self, dataset):
        assert alternative_configs(dataset, np.random.default_rng(0))

    def test_financial_seasonal_swings_up(self):
        rng = MagicMock()
        rng.random.return_value = 0.9
        seasonal = alternative_configs(Dataset.FINANCIAL, rng)[-1]
        assert seasonal.id == "seasonal"
        assert seasonal.multiplier == 1.2

    def test_financial_seasonal_swings_down(self):
        rng = MagicMock()
        rng.random.return_value = 0.1
        assert alternative_configs(Dataset.FINANCIAL, rng)[-1].multiplier == 0.8

    def test_seeded_rng_reproducible(self):
        first = alternative_configs(Dataset.FINANCIAL, np.random.default_rng(7))
        second = alternative_configs(Dataset.FINANCIAL, np.random.default_rng(7))
        assert first == second


def test_alternatives_for_row():
    row = {"predicted_change": 2.0, "prediction_confidence": 0.8}
    alternatives = alternatives_for_row(row, Dataset.MINING)
    assert [a.model for a in alternatives] == ["resource-driven", "market-driven"]
    assert alternatives[0].value == pytest.approx(2.8)
    assert alternatives[1].confidence == pytest.approx(0.72)


def test_alternatives_for_row_missing_columns():
    alternatives = alternatives_for_row({}, Dataset.AGRICULTURE)
    assert all(a.value == 0.0 and a.confidence == 0.0 for a in alternatives)
