"""Model roster with optimistic, rollback-on-failure mutation.

Every change is applied to the local roster first so readers see it
immediately, then handed to the persistence collaborator. If persistence
fails, the value held just before that call is applied again as a
compensating change. A rollback is skipped when a later command has since
overwritten the same field, so it never erases a newer mutation.

Persistence calls for one model run one at a time in issue order; calls for
different models do not wait on each other.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Protocol

from market_pulse.common.types import ModelId
from market_pulse.forecasting.models import Model, default_models
from market_pulse.notifications.base import Notifier, error_notice

logger = logging.getLogger(__name__)

_MUTABLE_FIELDS = ("enabled", "weight")


class PersistModel(Protocol):
    """Persistence collaborator. Raises on failure."""

    async def __call__(self, model_id: ModelId, patch: dict[str, Any]) -> None:
        ...


@dataclass(frozen=True)
class StateTransition:
    """One applied change to a model field.

    Attributes:
        model_id: model that changed
        field: "enabled" or "weight"
        old: value before the change
        new: value after the change
        reason: "optimistic", "rollback" or "hydrate"
        revision: roster revision after the change
        timestamp: when the change was applied
    """

    model_id: ModelId
    field: str
    old: Any
    new: Any
    reason: str
    revision: int
    timestamp: datetime


class ModelRegistry:
    """Owns the forecasting model roster.

    The roster's size is fixed at construction. All mutation goes through
    the command methods; readers get copies.
    """

    def __init__(
        self,
        models: Iterable[Model] | None = None,
        persist: PersistModel | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self._models: dict[ModelId, Model] = {}
        for model in models if models is not None else default_models():
            if model.id in self._models:
                raise ValueError(f"Duplicate model id: {model.id!r}")
            self._models[model.id] = replace(model)

        self._persist = persist
        self._notifier = notifier
        self._locks: dict[ModelId, asyncio.Lock] = {
            model_id: asyncio.Lock() for model_id in self._models
        }
        # Revision of the last change per (model, field); guards rollbacks
        self._field_revisions: dict[tuple[ModelId, str], int] = {}
        self._revision = 0
        self._transitions: list[StateTransition] = []

    # ---- reads ----

    @property
    def revision(self) -> int:
        """Monotonic counter bumped by every applied change."""
        return self._revision

    @property
    def models(self) -> list[Model]:
        return [replace(m) for m in self._models.values()]

    def get(self, model_id: ModelId) -> Model | None:
        model = self._models.get(model_id)
        return replace(model) if model is not None else None

    def enabled_models(self) -> list[Model]:
        return [replace(m) for m in self._models.values() if m.enabled]

    @property
    def transitions(self) -> list[StateTransition]:
        return list(self._transitions)

    def __len__(self) -> int:
        return len(self._models)

    def __contains__(self, model_id: object) -> bool:
        return model_id in self._models

    def __iter__(self) -> Iterator[Model]:
        return iter(self.models)

    # ---- commands ----

    async def toggle_enabled(self, model_id: ModelId) -> bool:
        """Flip a model's enabled flag.

        Returns True if the change stands, False if the model is unknown or
        the change was rolled back after a persistence failure.
        """
        model = self._models.get(model_id)
        if model is None:
            logger.debug("toggle_enabled: unknown model %s ignored", model_id)
            return False
        return await self._mutate(model_id, "enabled", not model.enabled)

    async def update_weight(self, model_id: ModelId, weight: float) -> bool:
        """Set a model's weight. No range clamp; the blender normalizes.

        Returns True if the change stands, False if the model is unknown or
        the change was rolled back after a persistence failure.
        """
        if model_id not in self._models:
            logger.debug("update_weight: unknown model %s ignored", model_id)
            return False
        return await self._mutate(model_id, "weight", float(weight))

    def hydrate(self, saved: Mapping[ModelId, Mapping[str, Any]]) -> int:
        """Apply previously persisted settings to known models.

        Unknown ids and unknown fields are ignored. Returns the number of
        fields changed.
        """
        changed = 0
        for model_id, row in saved.items():
            if model_id not in self._models:
                logger.debug("hydrate: no model %s in roster, skipping", model_id)
                continue
            for field_name in _MUTABLE_FIELDS:
                if field_name not in row or row[field_name] is None:
                    continue
                value = bool(row[field_name]) if field_name == "enabled" else float(row[field_name])
                if getattr(self._models[model_id], field_name) != value:
                    self._apply(model_id, field_name, value, reason="hydrate")
                    changed += 1
        return changed

    # ---- internals ----

    def _apply(self, model_id: ModelId, field_name: str, value: Any, reason: str) -> StateTransition:
        model = self._models[model_id]
        old = getattr(model, field_name)
        setattr(model, field_name, value)
        self._revision += 1
        self._field_revisions[(model_id, field_name)] = self._revision
        transition = StateTransition(
            model_id=model_id,
            field=field_name,
            old=old,
            new=value,
            reason=reason,
            revision=self._revision,
            timestamp=datetime.now(timezone.utc),
        )
        self._transitions.append(transition)
        return transition

    async def _mutate(self, model_id: ModelId, field_name: str, value: Any) -> bool:
        # Local state changes before any await so it is atomic per event
        change = self._apply(model_id, field_name, value, reason="optimistic")
        if self._persist is None:
            return True

        async with self._locks[model_id]:
            try:
                await self._persist(model_id, {field_name: value})
            except Exception as exc:
                self._rollback(change, exc)
                await self._report_failure(change)
                return False

        logger.debug("Persisted %s.%s = %r", model_id, field_name, value)
        return True

    def _rollback(self, change: StateTransition, exc: Exception) -> None:
        latest = self._field_revisions.get((change.model_id, change.field))
        if latest != change.revision:
            logger.warning(
                "Persisting %s.%s = %r failed; a later change superseded it, keeping current value",
                change.model_id, change.field, change.new,
                exc_info=exc,
            )
            return
        self._apply(change.model_id, change.field, change.old, reason="rollback")
        logger.warning(
            "Persisting %s.%s = %r failed; rolled back to %r",
            change.model_id, change.field, change.new, change.old,
            exc_info=exc,
        )

    async def _report_failure(self, change: StateTransition) -> None:
        if self._notifier is None:
            return
        name = self._models[change.model_id].name
        what = "enable state" if change.field == "enabled" else "weight"
        try:
            await self._notifier.notify(error_notice(f"Failed to save {what} for {name}."))
        except Exception:
            logger.warning("Failed to deliver persistence notice", exc_info=True)
