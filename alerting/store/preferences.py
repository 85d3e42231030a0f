"""User notification preference storage."""

from __future__ import annotations

import abc

from alerting.core.types import UserNotificationPreference
from alerting.store.locks import KeyedLocks


class PreferenceStore(abc.ABC):
    """Keyed storage for per-user notification preferences."""

    @abc.abstractmethod
    async def get(self, user_id: str) -> UserNotificationPreference | None:
        """Return the preference for *user_id*, if any."""

    @abc.abstractmethod
    async def put(self, preference: UserNotificationPreference) -> None:
        """Replace the whole preference record for ``preference.user_id``."""

    @abc.abstractmethod
    async def delete(self, user_id: str) -> bool:
        """Remove a preference. Returns True if one existed."""

    @abc.abstractmethod
    async def all(self) -> list[UserNotificationPreference]:
        """Return every stored preference."""


class InMemoryPreferenceStore(PreferenceStore):
    def __init__(
        self, seed: list[UserNotificationPreference] | None = None
    ) -> None:
        self._prefs: dict[str, UserNotificationPreference] = {
            p.user_id: p.model_copy(deep=True) for p in seed or []
        }
        self._locks = KeyedLocks()

    async def get(self, user_id: str) -> UserNotificationPreference | None:
        pref = self._prefs.get(user_id)
        return pref.model_copy(deep=True) if pref is not None else None

    async def put(self, preference: UserNotificationPreference) -> None:
        async with self._locks.hold(preference.user_id):
            self._prefs[preference.user_id] = preference.model_copy(deep=True)

    async def delete(self, user_id: str) -> bool:
        async with self._locks.hold(user_id):
            return self._prefs.pop(user_id, None) is not None

    async def all(self) -> list[UserNotificationPreference]:
        return [p.model_copy(deep=True) for p in list(self._prefs.values())]
