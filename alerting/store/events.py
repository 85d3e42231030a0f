"""Event storage — raw alert events plus their processed flag."""

from __future__ import annotations

import abc

from alerting.core.types import AlertEvent, EventType
from alerting.store.locks import KeyedLocks


class EventStore(abc.ABC):
    """Keyed storage for alert events.

    Lookups return ``None`` / empty lists for unknown keys; absence is never
    an error. Writes are last-write-wins on ``event.id``.
    """

    @abc.abstractmethod
    async def store(self, event: AlertEvent) -> None:
        """Insert or replace an event."""

    @abc.abstractmethod
    async def get(self, event_id: str) -> AlertEvent | None:
        """Return the event with *event_id*, if any."""

    @abc.abstractmethod
    async def get_by_type(self, event_type: EventType) -> list[AlertEvent]:
        """Return all events of *event_type*."""

    @abc.abstractmethod
    async def get_by_user(self, user_id: str) -> list[AlertEvent]:
        """Return all events owned by *user_id*."""

    @abc.abstractmethod
    async def mark_processed(self, event_id: str) -> AlertEvent | None:
        """Flip the processed flag. Returns the updated event, or None if unknown."""


class InMemoryEventStore(EventStore):
    """Process-local event store. Events are copied on the way in and out."""

    def __init__(self) -> None:
        self._events: dict[str, AlertEvent] = {}
        self._locks = KeyedLocks()

    async def store(self, event: AlertEvent) -> None:
        async with self._locks.hold(event.id):
            self._events[event.id] = event.model_copy(deep=True)

    async def get(self, event_id: str) -> AlertEvent | None:
        event = self._events.get(event_id)
        return event.model_copy(deep=True) if event is not None else None

    async def get_by_type(self, event_type: EventType) -> list[AlertEvent]:
        return [
            e.model_copy(deep=True)
            for e in list(self._events.values())
            if e.type == event_type
        ]

    async def get_by_user(self, user_id: str) -> list[AlertEvent]:
        return [
            e.model_copy(deep=True)
            for e in list(self._events.values())
            if e.user_id == user_id
        ]

    async def mark_processed(self, event_id: str) -> AlertEvent | None:
        async with self._locks.hold(event_id):
            event = self._events.get(event_id)
            if event is None:
                return None
            updated = event.model_copy(update={"processed": True}, deep=True)
            self._events[event_id] = updated
            return updated.model_copy(deep=True)

    def __len__(self) -> int:
        return len(self._events)
