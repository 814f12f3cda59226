"""In-process document store with realtime subscriptions.

Behaves like the hosted document service as far as the roster client can
tell: inserts get store-assigned IDs, writes overwrite or merge documents,
and every change pushes the full collection to each live subscriber.
Several ``RosterClient`` instances sharing one store simulate several
browsers connected to the same deployment.
"""

from __future__ import annotations

import copy
import logging
import uuid
from typing import Any, Optional

from flight_roster.errors import AuthenticationError, StoreError
from flight_roster.models import Profile

from .base import Document, ErrorHandler, SnapshotHandler

logger = logging.getLogger(__name__)


class InMemorySubscription:
    """Subscription handle returned by InMemoryRosterStore.subscribe()."""

    def __init__(self, store: "InMemoryDocumentStore", on_change: SnapshotHandler, on_error: ErrorHandler):
        self._store = store
        self.on_change = on_change
        self.on_error = on_error
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    async def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        self._store._subscriptions.remove(self)


class InMemoryDocumentStore:
    """Shared backing state for the flight collection and profiles."""

    def __init__(self) -> None:
        self._flights: dict[str, dict[str, Any]] = {}
        self._profiles: dict[str, dict[str, Any]] = {}
        self._subscriptions: list[InMemorySubscription] = []

    # ── Views ─────────────────────────────────────────────────────

    def roster_store(self) -> "InMemoryRosterStore":
        return InMemoryRosterStore(self)

    def profile_store(self) -> "InMemoryProfileStore":
        return InMemoryProfileStore(self)

    # ── Inspection (tests, demos) ─────────────────────────────────

    def snapshot(self) -> list[Document]:
        # Insertion order, like an unordered collection query would return.
        return [Document(doc_id, copy.deepcopy(data)) for doc_id, data in self._flights.items()]

    def flight(self, doc_id: str) -> Optional[dict[str, Any]]:
        data = self._flights.get(doc_id)
        return copy.deepcopy(data) if data is not None else None

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    # ── Change propagation ────────────────────────────────────────

    async def publish(self) -> None:
        """Push the current collection to every live subscriber."""
        for subscription in list(self._subscriptions):
            if subscription.active:
                await subscription.on_change(self.snapshot())

    async def broadcast_error(self, exc: Exception) -> None:
        """Report a transport failure to every live subscriber."""
        for subscription in list(self._subscriptions):
            if subscription.active:
                await subscription.on_error(exc)

    def put_raw(self, doc_id: str, data: dict[str, Any]) -> None:
        """Write a flight document without validation or notification."""
        self._flights[doc_id] = copy.deepcopy(data)


class InMemoryRosterStore:
    """RosterStore view over an InMemoryDocumentStore."""

    def __init__(self, backend: InMemoryDocumentStore):
        self.backend = backend

    async def subscribe(self, on_change: SnapshotHandler, on_error: ErrorHandler) -> InMemorySubscription:
        subscription = InMemorySubscription(self.backend, on_change, on_error)
        self.backend._subscriptions.append(subscription)
        # Listeners receive the current state immediately on attach.
        await on_change(self.backend.snapshot())
        return subscription

    async def insert(self, fields: dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex[:20]
        self.backend._flights[doc_id] = copy.deepcopy(fields)
        logger.debug("Inserted flight %s", doc_id)
        await self.backend.publish()
        return doc_id

    async def update(self, doc_id: str, partial_fields: dict[str, Any]) -> None:
        current = self.backend._flights.get(doc_id)
        if current is None:
            raise StoreError(f"No document to update: {doc_id}", status_code=404)
        current.update(copy.deepcopy(partial_fields))
        await self.backend.publish()

    async def delete(self, doc_id: str) -> None:
        # Deleting a missing document is not an error, matching the hosted store.
        self.backend._flights.pop(doc_id, None)
        await self.backend.publish()


class InMemoryProfileStore:
    """ProfileStore view over an InMemoryDocumentStore."""

    def __init__(self, backend: InMemoryDocumentStore):
        self.backend = backend

    async def get(self, participant_id: str) -> Optional[Profile]:
        data = self.backend._profiles.get(participant_id)
        if data is None:
            return None
        return Profile(participant_id=participant_id, display_name=data.get("displayName") or "")

    async def set(self, participant_id: str, profile: Profile) -> None:
        self.backend._profiles[participant_id] = profile.to_document()


class StaticIdentityProvider:
    """Identity provider with a fixed, locally generated participant ID."""

    def __init__(self, participant_id: Optional[str] = None, fail: bool = False):
        self._participant_id = participant_id or uuid.uuid4().hex
        self._fail = fail

    async def current_participant_id(self) -> str:
        if self._fail:
            raise AuthenticationError("Identity provider unavailable")
        return self._participant_id


__all__ = [
    "InMemoryDocumentStore",
    "InMemoryProfileStore",
    "InMemoryRosterStore",
    "InMemorySubscription",
    "StaticIdentityProvider",
]
