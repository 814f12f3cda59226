"""Shared fixtures for roster client tests."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from flight_roster.models import FlightFields
from flight_roster.notifications import RecordingNotifier
from flight_roster.session import SessionContext
from flight_roster.store.memory import (
    InMemoryDocumentStore,
    InMemoryProfileStore,
    InMemoryRosterStore,
    InMemorySubscription,
)
from flight_roster.sync.gate import ADMIN_PIN, AccessControlGate


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep config and credentials out of the real ~/.flight-roster/."""
    monkeypatch.setenv("HOME", str(tmp_path))
    for name in ("FLIGHT_ROSTER_SERVER_URL", "FLIGHT_ROSTER_APP_ID", "FLIGHT_ROSTER_AUTH_TOKEN"):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


@pytest.fixture
def backend() -> InMemoryDocumentStore:
    """Fresh in-process document store."""
    return InMemoryDocumentStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def guest_session(notifier: RecordingNotifier) -> SessionContext:
    """Session for participant u1 in GUEST state."""
    return SessionContext(participant_id="u1", display_name="u1", gate=AccessControlGate(notifier))


@pytest.fixture
def admin_session(guest_session: SessionContext, notifier: RecordingNotifier) -> SessionContext:
    """Session for participant u1 after a correct PIN."""
    guest_session.gate.submit_pin(ADMIN_PIN)
    notifier.clear()
    return guest_session


@pytest.fixture
def mock_roster_store() -> MagicMock:
    """RosterStore double recording every call."""
    store = MagicMock()
    store.insert = AsyncMock(return_value="flight-1")
    store.update = AsyncMock(return_value=None)
    store.delete = AsyncMock(return_value=None)
    store.subscribe = AsyncMock()
    return store


@pytest.fixture
def aa123() -> FlightFields:
    return FlightFields(
        flight_number="AA123",
        departure="JFK",
        arrival="LAX",
        departure_time="08:00 AM",
    )


class PushingRosterStore(InMemoryRosterStore):
    """Delivers the initial snapshot from a background task, as the WebSocket adapter does."""

    async def subscribe(self, on_change, on_error) -> InMemorySubscription:
        subscription = InMemorySubscription(self.backend, on_change, on_error)
        self.backend._subscriptions.append(subscription)
        self.initial_push = asyncio.create_task(on_change(self.backend.snapshot()))
        return subscription


class SlowProfileStore(InMemoryProfileStore):
    """Profile lookups that take a network round trip."""

    async def get(self, participant_id: str):
        await asyncio.sleep(0.05)
        return await super().get(participant_id)


@pytest.fixture
def remote_like_stores(backend: InMemoryDocumentStore) -> tuple[SlowProfileStore, PushingRosterStore]:
    """(profile store, roster store) over ``backend`` with network-like timing."""
    return SlowProfileStore(backend), PushingRosterStore(backend)
