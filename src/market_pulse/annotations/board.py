"""Chart-anchored discussion threads."""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from datetime import datetime, timezone

from market_pulse.common.types import JsonDict

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Reply:
    """A single message in an annotation's thread."""

    id: str
    author: str
    content: str
    timestamp: datetime

    def to_dict(self) -> JsonDict:
        return {
            "id": self.id,
            "author": self.author,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class Annotation:
    """A discussion thread pinned to a point on one chart.

    Attributes:
        id: board-unique identifier, never reused
        chart_id: chart or dataset context the note belongs to
        x: anchor x coordinate (opaque to the board)
        y: anchor y coordinate (opaque to the board)
        content: the note itself
        author: who wrote it
        timestamp: creation time
        updated_at: last edit time, None if never edited
        replies: thread in insertion order
    """

    id: str
    chart_id: str
    x: float
    y: float
    content: str
    author: str
    timestamp: datetime
    updated_at: datetime | None = None
    replies: list[Reply] = field(default_factory=list)

    def to_dict(self) -> JsonDict:
        return {
            "id": self.id,
            "chart_id": self.chart_id,
            "x": self.x,
            "y": self.y,
            "content": self.content,
            "author": self.author,
            "timestamp": self.timestamp.isoformat(),
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "replies": [r.to_dict() for r in self.replies],
        }


class AnnotationBoard:
    """Owns annotations and their replies, plus the single selection.

    Unknown ids are no-ops everywhere; nothing here raises on them.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or _utcnow
        self._annotations: dict[str, Annotation] = {}
        self._annotation_ids = itertools.count(1)
        self._reply_ids = itertools.count(1)
        self._selected: str | None = None

    def __len__(self) -> int:
        return len(self._annotations)

    def __iter__(self) -> Iterator[Annotation]:
        return iter(list(self._annotations.values()))

    def __contains__(self, annotation_id: object) -> bool:
        return annotation_id in self._annotations

    @property
    def annotations(self) -> list[Annotation]:
        return list(self._annotations.values())

    def get(self, annotation_id: str) -> Annotation | None:
        return self._annotations.get(annotation_id)

    def for_chart(self, chart_id: str) -> list[Annotation]:
        return [a for a in self._annotations.values() if a.chart_id == chart_id]

    def add_annotation(self, chart_id: str, x: float, y: float, content: str, author: str) -> str:
        """Create an annotation with an empty thread. Returns its id."""
        annotation_id = f"annotation-{next(self._annotation_ids)}"
        self._annotations[annotation_id] = Annotation(
            id=annotation_id,
            chart_id=chart_id,
            x=x,
            y=y,
            content=content,
            author=author,
            timestamp=self._clock(),
        )
        return annotation_id

    def add_reply(self, annotation_id: str, content: str, author: str) -> str | None:
        """Append a reply. Returns its id, or None if the annotation is gone."""
        annotation = self._annotations.get(annotation_id)
        if annotation is None:
            logger.debug("add_reply: unknown annotation %s ignored", annotation_id)
            return None
        reply = Reply(
            id=f"reply-{next(self._reply_ids)}",
            author=author,
            content=content,
            timestamp=self._clock(),
        )
        annotation.replies.append(reply)
        return reply.id

    def update_annotation(self, annotation_id: str, content: str) -> bool:
        annotation = self._annotations.get(annotation_id)
        if annotation is None:
            logger.debug("update_annotation: unknown annotation %s ignored", annotation_id)
            return False
        annotation.content = content
        annotation.updated_at = self._clock()
        return True

    def delete_annotation(self, annotation_id: str) -> bool:
        """Remove an annotation together with its whole thread."""
        if self._annotations.pop(annotation_id, None) is None:
            logger.debug("delete_annotation: unknown annotation %s ignored", annotation_id)
            return False
        if self._selected == annotation_id:
            self._selected = None
        return True

    # ---- selection ----

    @property
    def selected_id(self) -> str | None:
        return self._selected

    @property
    def selected_annotation(self) -> Annotation | None:
        if self._selected is None:
            return None
        return self._annotations.get(self._selected)

    def select(self, annotation_id: str | None) -> None:
        """Focus one annotation (or none). Unknown ids simply display nothing."""
        self._selected = annotation_id

    def to_dict(self) -> JsonDict:
        selected = self.selected_annotation
        return {
            "annotations": [a.to_dict() for a in self._annotations.values()],
            "selected_annotation": selected.id if selected else None,
        }
