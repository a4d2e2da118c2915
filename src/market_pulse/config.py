"""Application configuration via pydantic-settings."""

from __future__ import annotations

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # SQLite database path for model settings and saved scenarios
    db_path: Path = Path.home() / ".market-pulse" / "state.db"

    # Remote table store (PostgREST) base URL and anon/service key
    supabase_url: str = ""
    supabase_key: str = ""

    # Table holding per-model predictions
    predictions_table: str = "model_predictions"

    # Rows fetched per refresh (newest first, deduped per model)
    prediction_fetch_limit: int = 30

    # Confidence assumed when a prediction row has none
    default_confidence: float = 0.5

    # Initial dashboard selection
    default_dataset: str = "financial"
    default_metric: str = "price"

    # HTTP request timeout seconds
    http_timeout: float = 30.0

    # Telegram notifications for persistence failures
    telegram_bot_token: str = ""
    telegram_chat_id: str = ""

    @field_validator("prediction_fetch_limit")
    @classmethod
    def _fetch_limit_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"prediction_fetch_limit must be >= 1, got {v}")
        return v

    @field_validator("default_confidence")
    @classmethod
    def _default_confidence_in_range(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError(f"default_confidence must be in [0, 1], got {v}")
        return v

    @field_validator("http_timeout")
    @classmethod
    def _timeout_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"http_timeout must be > 0, got {v}")
        return v


def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
