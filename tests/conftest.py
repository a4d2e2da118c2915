"""Shared test fixtures."""

from __future__ import annotations

import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from market_pulse.forecasting.models import Model, ModelPrediction
from market_pulse.forecasting.registry import ModelRegistry
from market_pulse.notifications.base import NoticeLog


@pytest.fixture
def abc_models():
    """A(0.5, on), B(0.5, on), C(1.0, off)."""
    return [
        Model(id="A", name="Model A", color="#111111", weight=0.5, enabled=True),
        Model(id="B", name="Model B", color="#222222", weight=0.5, enabled=True),
        Model(id="C", name="Model C", color="#333333", weight=1.0, enabled=False),
    ]


@pytest.fixture
def abc_predictions():
    return {
        "A": ModelPrediction(value=100.0, confidence=0.8),
        "B": ModelPrediction(value=200.0, confidence=0.6),
        "C": ModelPrediction(value=300.0, confidence=0.9),
    }


@pytest.fixture
def notice_log():
    return NoticeLog()


@pytest.fixture
def persist_ok():
    """Persistence collaborator that always confirms."""
    return AsyncMock(return_value=None)


@pytest.fixture
def persist_fail():
    """Persistence collaborator that always rejects."""
    return AsyncMock(side_effect=RuntimeError("table store unavailable"))


@pytest.fixture
def registry(abc_models, persist_ok, notice_log):
    return ModelRegistry(abc_models, persist=persist_ok, notifier=notice_log)


@pytest.fixture
def tmp_db():
    """Temporary SQLite file path."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "test_state.db"


class StepClock:
    """Deterministic clock advancing one minute per call."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + timedelta(minutes=1)
        return value


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def prediction_rows():
    """Raw table-store rows, newest first, as returned by the REST endpoint."""
    return [
        {"model_id": "primary", "prediction_value": 101.5, "confidence": 0.82},
        {"model_id": "optimistic", "prediction_value": 120.0, "confidence": None},
        {"model_id": "primary", "prediction_value": 99.0, "confidence": 0.7},
        {"model_id": "pessimistic", "prediction_value": 88.25, "confidence": 0.9},
        {"model_id": "optimistic", "prediction_value": 118.0, "confidence": 0.6},
    ]
