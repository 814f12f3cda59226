"""Interfaces of the external identity provider and document stores.

The roster client never talks to a backend directly; it is handed
objects satisfying these protocols. ``memory`` provides an in-process
implementation, ``remote`` an HTTP/WebSocket one.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Protocol, Sequence

from flight_roster.models import Profile


@dataclass(frozen=True)
class Document:
    """A stored document: store-assigned ID plus its body."""

    id: str
    data: dict[str, Any] = field(default_factory=dict)


# Full-collection snapshot delivered by a realtime subscription.
Snapshot = Sequence[Document]
SnapshotHandler = Callable[[Snapshot], Awaitable[None]]
ErrorHandler = Callable[[Exception], Awaitable[None]]


class Subscription(Protocol):
    """Handle for a standing collection subscription."""

    @property
    def active(self) -> bool: ...

    async def unsubscribe(self) -> None: ...


class IdentityProvider(Protocol):
    async def current_participant_id(self) -> str:
        """Return the stable participant ID, signing in on first use.

        Raises:
            AuthenticationError: If sign-in fails
        """
        ...


class ProfileStore(Protocol):
    async def get(self, participant_id: str) -> Profile | None: ...

    async def set(self, participant_id: str, profile: Profile) -> None: ...


class RosterStore(Protocol):
    async def subscribe(
        self, on_change: SnapshotHandler, on_error: ErrorHandler
    ) -> Subscription: ...

    async def insert(self, fields: dict[str, Any]) -> str: ...

    async def update(self, doc_id: str, partial_fields: dict[str, Any]) -> None: ...

    async def delete(self, doc_id: str) -> None: ...


def flights_collection(app_id: str) -> str:
    return f"artifacts/{app_id}/public/data/flights"


def profiles_collection(app_id: str) -> str:
    return f"artifacts/{app_id}/public/data/userProfiles"
