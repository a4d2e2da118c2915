"""Tests for weighted prediction blending."""

from __future__ import annotations

from dataclasses import replace

import pytest

from market_pulse.forecasting.blender import blend, weighted_prediction
from market_pulse.forecasting.models import Model, ModelPrediction, default_models


class TestBlendedValue:
    def test_reference_example(self, abc_models, abc_predictions):
        """A=100@0.5, B=200@0.5, C disabled -> 150."""
        result = blend(abc_predictions, abc_models)
        assert result.value == pytest.approx(150.0)
        assert result.weighted_sum == pytest.approx(150.0)
        assert result.total_weight == pytest.approx(1.0)

    def test_weights_need_not_sum_to_one(self):
        models = [Model("x", "X", weight=2.0), Model("y", "Y", weight=6.0)]
        result = blend({"x": 10.0, "y": 50.0}, models)
        assert result.value == pytest.approx((10 * 2 + 50 * 6) / 8)

    def test_all_disabled_is_zero(self, abc_models, abc_predictions):
        models = [replace(m, enabled=False) for m in abc_models]
        result = blend(abc_predictions, models)
        assert result.value == 0.0
        assert result.is_degenerate

    def test_no_predictions_is_zero(self, abc_models):
        result = blend({}, abc_models)
        assert result.value == 0.0
        assert result.total_weight == 0.0

    def test_predictions_only_for_disabled_model_is_zero(self, abc_models):
        result = blend({"C": 500.0}, abc_models)
        assert result.value == 0.0

    def test_empty_roster(self):
        result = blend({"A": 1.0}, [])
        assert result.value == 0.0
        assert result.contributions == ()

    def test_enabled_model_without_prediction_not_in_denominator(self, abc_models):
        """B is enabled but has no data: blend equals A's value alone."""
        result = blend({"A": 100.0}, abc_models)
        assert result.value == pytest.approx(100.0)
        assert result.total_weight == pytest.approx(0.5)

    def test_zero_prediction_is_a_real_prediction(self, abc_models):
        result = blend({"A": 0.0, "B": 200.0}, abc_models)
        assert result.value == pytest.approx(100.0)
        a = result.contribution_for("A")
        assert a.has_prediction
        assert a.contribution == 0.0

    def test_bare_numbers_accepted(self, abc_models):
        assert blend({"A": 100, "B": 200}, abc_models).value == pytest.approx(150.0)

    def test_mixed_numbers_and_predictions(self, abc_models):
        predictions = {"A": 100.0, "B": ModelPrediction(200.0, confidence=0.4)}
        assert blend(predictions, abc_models).value == pytest.approx(150.0)

    def test_none_entry_treated_as_absent(self, abc_models):
        result = blend({"A": 100.0, "B": None}, abc_models)
        assert result.value == pytest.approx(100.0)

    def test_negative_weight_propagates_linearly(self):
        models = [Model("x", "X", weight=1.0), Model("y", "Y", weight=-0.5)]
        result = blend({"x": 10.0, "y": 40.0}, models)
        assert result.value == pytest.approx((10 * 1.0 + 40 * -0.5) / 0.5)

    def test_weights_cancelling_to_zero_is_degenerate(self):
        models = [Model("x", "X", weight=1.0), Model("y", "Y", weight=-1.0)]
        result = blend({"x": 10.0, "y": 40.0}, models)
        assert result.value == 0.0

    def test_weighted_prediction_shortcut(self, abc_models, abc_predictions):
        assert weighted_prediction(abc_predictions, abc_models) == pytest.approx(150.0)

    def test_unknown_prediction_keys_ignored(self, abc_models):
        result = blend({"A": 100.0, "B": 200.0, "zzz": 1e9}, abc_models)
        assert result.value == pytest.approx(150.0)
        assert [c.id for c in result.contributions] == ["A", "B", "C"]


class TestContributions:
    def test_reference_example_contributions(self, abc_models, abc_predictions):
        result = blend(abc_predictions, abc_models)
        a = result.contribution_for("A")
        b = result.contribution_for("B")
        c = result.contribution_for("C")

        assert a.contribution == pytest.approx(50.0)
        assert b.contribution == pytest.approx(100.0)
        assert c.contribution == 0.0

        # Weight share
        assert a.contribution_percentage == pytest.approx(50.0)
        assert b.contribution_percentage == pytest.approx(50.0)
        assert c.contribution_percentage == 0.0

        # Share of the weighted sum
        assert a.value_share_percentage == pytest.approx(100 / 3)
        assert b.value_share_percentage == pytest.approx(200 / 3)
        assert c.value_share_percentage == 0.0

    def test_one_entry_per_roster_model_in_roster_order(self, abc_models, abc_predictions):
        result = blend(abc_predictions, abc_models)
        assert [c.id for c in result.contributions] == ["A", "B", "C"]

    def test_disabled_model_still_shows_its_prediction(self, abc_models, abc_predictions):
        c = blend(abc_predictions, abc_models).contribution_for("C")
        assert c.value == 300.0
        assert c.confidence == 0.9
        assert not c.enabled
        assert c.contribution == 0.0

    def test_percentages_sum_to_100(self):
        models = default_models()
        predictions = {"primary": 10.0, "optimistic": 15.0, "pessimistic": 5.0, "seasonal": 8.0}
        result = blend(predictions, models)
        total = sum(c.contribution_percentage for c in result.contributions if c.enabled)
        assert total == pytest.approx(100.0)

    def test_percentages_sum_to_100_with_missing_prediction(self, abc_models):
        models = abc_models + [Model("D", "Model D", weight=0.25, enabled=True)]
        result = blend({"A": 100.0, "B": 200.0}, models)
        d = result.contribution_for("D")
        assert d.contribution_percentage == 0.0
        assert not d.has_prediction
        total = sum(c.contribution_percentage for c in result.contributions)
        assert total == pytest.approx(100.0)

    def test_disabling_zeroes_only_that_model(self, abc_models, abc_predictions):
        before = blend(abc_predictions, abc_models)
        disabled = [replace(m, enabled=False) if m.id == "B" else m for m in abc_models]
        after = blend(abc_predictions, disabled)

        b = after.contribution_for("B")
        assert b.contribution == 0.0
        assert b.contribution_percentage == 0.0
        assert after.contribution_for("A").contribution == before.contribution_for("A").contribution
        assert after.contribution_for("A").contribution_percentage == pytest.approx(100.0)

    def test_negative_total_weight_gives_zero_percentages(self):
        models = [Model("A", "A", weight=-0.5), Model("B", "B", weight=-0.5)]
        result = blend({"A": 100.0, "B": 200.0}, models)
        assert result.total_weight == pytest.approx(-1.0)
        assert result.value == pytest.approx(150.0)
        assert [c.contribution_percentage for c in result.contributions] == [0.0, 0.0]

    def test_degenerate_contributions_all_zero(self, abc_models):
        result = blend({}, abc_models)
        assert all(c.contribution == 0.0 for c in result.contributions)
        assert all(c.contribution_percentage == 0.0 for c in result.contributions)

    def test_to_dict_is_plain_data(self, abc_models, abc_predictions):
        data = blend(abc_predictions, abc_models).to_dict()
        assert data["value"] == pytest.approx(150.0)
        assert data["contributions"][0]["id"] == "A"
        assert set(data["contributions"][0]) >= {
            "id", "name", "value", "weight", "contribution", "contribution_percentage",
        }
