"""Storage capabilities for events and preferences."""

from alerting.store.events import EventStore, InMemoryEventStore
from alerting.store.locks import KeyedLocks
from alerting.store.preferences import InMemoryPreferenceStore, PreferenceStore

__all__ = [
    "EventStore",
    "InMemoryEventStore",
    "InMemoryPreferenceStore",
    "KeyedLocks",
    "PreferenceStore",
]
