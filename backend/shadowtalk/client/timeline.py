"""
Client-side optimistic rendering of room messages and DMs.

A write is shown immediately under a temporary id, then reconciled with the
confirmed entity, which arrives twice: once as the REST write response and
once as the realtime broadcast, in either order. Confirmed entities are
camelCase dicts carrying at least ``id``, ``senderId`` and ``content``.

Broadcasts are matched to pending writes by (sender, content). Two identical
messages sent in quick succession therefore resolve in submission order,
which is indistinguishable to the reader.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Union

logger = logging.getLogger(__name__)


def _temp_id() -> str:
    return f"temp-{uuid.uuid4()}"


@dataclass
class PendingEvent:
    sender_id: int
    content: str
    payload: dict[str, Any] = field(default_factory=dict)
    temp_id: str = field(default_factory=_temp_id)
    submitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    pending: bool = True

    def matches(self, entity: dict[str, Any]) -> bool:
        return entity.get("senderId") == self.sender_id and entity.get("content") == self.content


Entry = Union[PendingEvent, dict]


class OptimisticTimeline:
    def __init__(self) -> None:
        self._entries: list[Entry] = []
        self._confirmed_ids: set[int] = set()

    @property
    def entries(self) -> list[Entry]:
        return list(self._entries)

    @property
    def pending(self) -> list[PendingEvent]:
        return [e for e in self._entries if isinstance(e, PendingEvent)]

    @property
    def confirmed_ids(self) -> set[int]:
        return set(self._confirmed_ids)

    def submit(self, sender_id: int, content: str, **payload: Any) -> PendingEvent:
        event = PendingEvent(sender_id=sender_id, content=content, payload=payload)
        self._entries.append(event)
        return event

    def confirm(self, temp_id: str, entity: dict[str, Any]) -> bool:
        """Apply a write response. Returns True if the entity was newly rendered."""
        index = self._index_of(temp_id)
        if index is None:
            if entity["id"] in self._confirmed_ids:
                return False
            # A broadcast for an identical message took this entry
            self._entries.append(entity)
            self._confirmed_ids.add(entity["id"])
            return True
        if entity["id"] in self._confirmed_ids:
            del self._entries[index]
            logger.debug("timeline: %s dropped, %s already rendered", temp_id, entity["id"])
            return False
        self._entries[index] = entity
        self._confirmed_ids.add(entity["id"])
        return True

    def receive(self, entity: dict[str, Any]) -> bool:
        """Apply a broadcast. Returns False if the entity was already rendered."""
        if entity["id"] in self._confirmed_ids:
            return False
        self._confirmed_ids.add(entity["id"])
        for i, entry in enumerate(self._entries):
            if isinstance(entry, PendingEvent) and entry.matches(entity):
                self._entries[i] = entity
                return True
        self._entries.append(entity)
        return True

    def fail(self, temp_id: str) -> str | None:
        """Discard a pending write and return its content for a retry."""
        index = self._index_of(temp_id)
        if index is None:
            return None
        event = self._entries.pop(index)
        return event.content

    def _index_of(self, temp_id: str) -> int | None:
        for i, entry in enumerate(self._entries):
            if isinstance(entry, PendingEvent) and entry.temp_id == temp_id:
                return i
        return None
