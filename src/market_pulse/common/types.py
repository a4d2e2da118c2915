"""Shared type aliases and dashboard selection enums."""

from __future__ import annotations

from enum import Enum
from typing import TypeAlias

# Forecasting model identifier
ModelId: TypeAlias = str

# JSON-like dict
JsonDict: TypeAlias = dict[str, object]


class Dataset(Enum):
    """Market dataset shown on the dashboard."""

    FINANCIAL = "financial"
    HOUSING = "housing"
    MINING = "mining"
    AGRICULTURE = "agriculture"
    GREEN_HYDROGEN = "green_hydrogen"


class TimeRange(Enum):
    """Chart time window."""

    ONE_DAY = "1D"
    SEVEN_DAYS = "7D"
    ONE_WEEK = "1W"
    ONE_MONTH = "1M"
    THREE_MONTHS = "3M"
    SIX_MONTHS = "6M"
    ONE_YEAR = "1Y"
    ALL = "ALL"


class Layout(Enum):
    """Chart layout."""

    LINE = "line"
    BAR = "bar"
    SCATTER = "scatter"


def clamp(value: float, low: float, high: float) -> float:
    """Clamp *value* into [low, high]."""
    return max(low, min(high, value))
