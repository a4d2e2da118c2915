"""SQLite store for model settings and saved simulation scenarios."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiosqlite

from market_pulse.common.types import ModelId
from market_pulse.config import get_settings

logger = logging.getLogger(__name__)

_CREATE_MODEL_SETTINGS = """
CREATE TABLE IF NOT EXISTS model_settings (
    model_id TEXT PRIMARY KEY,
    enabled INTEGER,  -- NULL until first toggled
    weight REAL,      -- NULL until first reweighted
    updated_at TEXT NOT NULL
);
"""

_CREATE_SCENARIOS = """
CREATE TABLE IF NOT EXISTS scenarios (
    name TEXT PRIMARY KEY,
    data TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""

_PATCHABLE = ("enabled", "weight")


class ModelSettingsStore:
    """Model settings persistence backed by aiosqlite.

    Instances are callable with ``(model_id, patch)`` so they plug straight
    into ModelRegistry as its persistence collaborator.
    """

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path or get_settings().db_path

    @property
    def db_path(self) -> Path:
        return self._db_path

    async def _ensure_db(self) -> None:
        """Create database and tables if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_CREATE_MODEL_SETTINGS)
            await db.execute(_CREATE_SCENARIOS)
            await db.commit()

    async def __call__(self, model_id: ModelId, patch: dict[str, Any]) -> None:
        await self.persist(model_id, patch)

    async def persist(self, model_id: ModelId, patch: dict[str, Any]) -> None:
        """Upsert the patched fields for one model.

        Raises:
            ValueError: if the patch is empty or names an unknown field
            aiosqlite.Error: on database failure
        """
        unknown = set(patch) - set(_PATCHABLE)
        if not patch or unknown:
            raise ValueError(f"Invalid model settings patch for {model_id}: {patch!r}")

        await self._ensure_db()
        now = datetime.now(timezone.utc).isoformat()
        enabled = patch.get("enabled")
        weight = patch.get("weight")
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(
                """INSERT INTO model_settings (model_id, enabled, weight, updated_at)
                   VALUES (?, ?, ?, ?)
                   ON CONFLICT (model_id) DO UPDATE
                   SET enabled = COALESCE(excluded.enabled, model_settings.enabled),
                       weight = COALESCE(excluded.weight, model_settings.weight),
                       updated_at = excluded.updated_at""",
                (
                    model_id,
                    int(enabled) if enabled is not None else None,
                    float(weight) if weight is not None else None,
                    now,
                ),
            )
            await db.commit()
        logger.debug("Stored settings for %s: %r", model_id, patch)

    async def load_all(self) -> dict[ModelId, dict[str, Any]]:
        """Read every persisted model row.

        Returns:
            Mapping of model_id to {"enabled": bool | None, "weight": float | None}
        """
        await self._ensure_db()
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT model_id, enabled, weight FROM model_settings ORDER BY model_id"
            )
            rows = await cursor.fetchall()
            return {
                row["model_id"]: {
                    "enabled": bool(row["enabled"]) if row["enabled"] is not None else None,
                    "weight": row["weight"],
                }
                for row in rows
            }

    async def save_scenario(self, name: str, values: dict[str, float]) -> None:
        """Upsert a named simulation scenario (parameter id -> value)."""
        now = datetime.now(timezone.utc).isoformat()
        await self._ensure_db()
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(
                """INSERT INTO scenarios (name, data, updated_at)
                   VALUES (?, ?, ?)
                   ON CONFLICT (name) DO UPDATE
                   SET data = excluded.data, updated_at = excluded.updated_at""",
                (name, json.dumps(values), now),
            )
            await db.commit()

    async def load_scenario(self, name: str) -> dict[str, float] | None:
        """Read a named scenario. Returns None if not found."""
        await self._ensure_db()
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                "SELECT data FROM scenarios WHERE name = ?", (name,),
            )
            row = await cursor.fetchone()
            return json.loads(row[0]) if row else None

    async def list_scenarios(self) -> list[str]:
        await self._ensure_db()
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute("SELECT name FROM scenarios ORDER BY name")
            rows = await cursor.fetchall()
            return [row[0] for row in rows]
