"""User-facing notices and the notifier protocol."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Protocol

from market_pulse.common.types import JsonDict

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notice:
    """An informational notice shown to the user (a toast, in the dashboard).

    Attributes:
        title: short heading, e.g. "Error"
        description: one-line explanation
        variant: "default" or "destructive"
        timestamp: when the notice was raised
    """

    title: str
    description: str
    variant: str = "default"
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> JsonDict:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data


def error_notice(description: str) -> Notice:
    return Notice(title="Error", description=description, variant="destructive")


class Notifier(Protocol):
    """Delivers notices. Implementations log failures and never raise."""

    async def notify(self, notice: Notice) -> bool:
        """Deliver *notice*. Returns True when it was delivered."""
        ...


class NoticeLog:
    """In-memory notice queue read by the presentation layer."""

    def __init__(self, max_notices: int = 50) -> None:
        self._max = max_notices
        self._notices: list[Notice] = []

    async def notify(self, notice: Notice) -> bool:
        self._notices.append(notice)
        if len(self._notices) > self._max:
            del self._notices[: len(self._notices) - self._max]
        return True

    @property
    def notices(self) -> list[Notice]:
        return list(self._notices)

    def clear(self) -> None:
        self._notices.clear()


class CompositeNotifier:
    """Fan a notice out to several notifiers."""

    def __init__(self, notifiers: Iterable[Notifier]) -> None:
        self._notifiers = list(notifiers)

    async def notify(self, notice: Notice) -> bool:
        delivered = False
        for notifier in self._notifiers:
            try:
                delivered = await notifier.notify(notice) or delivered
            except Exception:
                logger.warning("Notifier %r failed", notifier, exc_info=True)
        return delivered
