"""Participant ID to callsign resolution.

Names are fetched once per participant and cached for the lifetime of the
resolver. Renames made by other participants are therefore not picked up
until a fresh resolver (a new session) is created.
"""

from __future__ import annotations

import asyncio
import logging
from types import MappingProxyType
from typing import Callable, Iterable, Mapping

from flight_roster.models import fallback_display_name
from flight_roster.store.base import ProfileStore

logger = logging.getLogger(__name__)

CacheListener = Callable[[Mapping[str, str]], None]


class IdentityResolver:
    """Lazily populated, never-invalidated identity cache."""

    def __init__(self, profile_store: ProfileStore):
        self.profile_store = profile_store
        self._cache: dict[str, str] = {}
        self._in_flight: dict[str, asyncio.Task] = {}
        self._listeners: list[CacheListener] = []

    @property
    def cache(self) -> Mapping[str, str]:
        """Read-only view of the current cache."""
        return MappingProxyType(self._cache)

    def add_listener(self, listener: CacheListener) -> None:
        self._listeners.append(listener)

    def display_name(self, participant_id: str) -> str:
        return self._cache.get(participant_id) or fallback_display_name(participant_id)

    def remember(self, participant_id: str, display_name: str) -> None:
        """Merge a locally known name, e.g. after saving one's own callsign."""
        self._publish({**self._cache, participant_id: display_name})

    async def resolve(self, participant_ids: Iterable[str]) -> Mapping[str, str]:
        """Fetch names for every ID not already cached.

        Fetches run concurrently; the cache is updated once, after all of
        them have finished. A failed fetch is logged and leaves its ID
        uncached so a later pass can try again.
        """
        unseen = sorted({pid for pid in participant_ids if pid and pid not in self._cache})
        if not unseen:
            return self.cache

        tasks = [self._fetch_task(pid) for pid in unseen]
        names = await asyncio.gather(*tasks, return_exceptions=True)

        resolved: dict[str, str] = {}
        for participant_id, name in zip(unseen, names):
            if isinstance(name, BaseException):
                logger.warning("Failed to load profile for %s: %s", participant_id, name)
                continue
            resolved[participant_id] = name

        if resolved:
            # Entries merged by overlapping passes in the meantime are kept.
            self._publish({**resolved, **self._cache})
        return self.cache

    def _fetch_task(self, participant_id: str) -> asyncio.Task:
        task = self._in_flight.get(participant_id)
        if task is None:
            task = asyncio.ensure_future(self._fetch(participant_id))
            self._in_flight[participant_id] = task
            task.add_done_callback(lambda _t, pid=participant_id: self._in_flight.pop(pid, None))
        return task

    async def _fetch(self, participant_id: str) -> str:
        profile = await self.profile_store.get(participant_id)
        if profile is not None and profile.display_name:
            return profile.display_name
        return fallback_display_name(participant_id)

    def _publish(self, cache: dict[str, str]) -> None:
        self._cache = cache
        for listener in list(self._listeners):
            listener(self.cache)
