"""RosterClient: one connected participant's view of the shared roster.

Wires the session, identity cache, realtime view and mutation coordinator
together for a presentation layer.

Usage:
    async with RosterClient(identity_provider, profile_store, roster_store,
                            notifier, confirmer) as client:
        await client.engine.wait_for_snapshot()
        for record in client.view:
            ...
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional

from flight_roster.config import RosterConfig
from flight_roster.errors import StoreError
from flight_roster.models import FlightFields, FlightRecord, Profile
from flight_roster.notifications import Confirmer, Notifier, error, never_confirm, success
from flight_roster.session import SessionContext, open_session
from flight_roster.store.base import IdentityProvider, ProfileStore, RosterStore
from flight_roster.sync.coordinator import MutationCoordinator, MutationResult
from flight_roster.sync.engine import RealtimeSyncEngine, RosterView
from flight_roster.sync.gate import AccessControlGate
from flight_roster.sync.identity import IdentityResolver

logger = logging.getLogger(__name__)


class RosterClient:
    def __init__(
        self,
        identity_provider: IdentityProvider,
        profile_store: ProfileStore,
        roster_store: RosterStore,
        notifier: Notifier,
        confirmer: Confirmer = never_confirm,
    ):
        self.identity_provider = identity_provider
        self.profile_store = profile_store
        self.roster_store = roster_store
        self.notifier = notifier
        self.confirmer = confirmer
        self.session: Optional[SessionContext] = None
        self.resolver: Optional[IdentityResolver] = None
        self.engine: Optional[RealtimeSyncEngine] = None
        self.coordinator: Optional[MutationCoordinator] = None
        self._service = None

    @classmethod
    def from_config(
        cls,
        config: RosterConfig,
        notifier: Notifier,
        confirmer: Confirmer = never_confirm,
    ) -> "RosterClient":
        """Build a client talking to the configured document service.

        Raises:
            ConfigurationError: If the configuration is malformed
        """
        from flight_roster.store.remote import (
            DocumentServiceClient,
            RemoteIdentityProvider,
            RemoteProfileStore,
            RemoteRosterStore,
        )

        config.validate()
        service = DocumentServiceClient.from_config(config)
        app_id = config.get_app_id()
        client = cls(
            identity_provider=RemoteIdentityProvider(service, auth_token=config.get_auth_token()),
            profile_store=RemoteProfileStore(service, app_id),
            roster_store=RemoteRosterStore(service, app_id),
            notifier=notifier,
            confirmer=confirmer,
        )
        client._service = service
        return client

    # ── Lifecycle ─────────────────────────────────────────────────

    async def start(self) -> None:
        """Sign in and start following the roster.

        Raises:
            AuthenticationError: If sign-in fails (already reported)
        """
        if self.session is not None:
            return
        self.session = await open_session(self.identity_provider, self.profile_store, self.notifier)
        self.resolver = IdentityResolver(self.profile_store)
        self.resolver.remember(self.session.participant_id, self.session.display_name)
        self.coordinator = MutationCoordinator(self.session, self.roster_store, self.notifier, self.confirmer)
        self.engine = RealtimeSyncEngine(self.roster_store, self.resolver, self.notifier)
        await self.engine.start()
        logger.debug("Roster client started for %s", self.session.participant_id)

    async def close(self) -> None:
        if self.engine is not None:
            await self.engine.stop()
        if self.session is not None:
            self.session.close()
        if self._service is not None:
            await self._service.close()
            self._service = None

    async def __aenter__(self) -> "RosterClient":
        try:
            await self.start()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False

    def _require_started(self) -> None:
        if self.session is None:
            raise RuntimeError("RosterClient.start() has not been called")

    # ── State for the presentation layer ──────────────────────────

    @property
    def participant_id(self) -> str:
        self._require_started()
        return self.session.participant_id

    @property
    def display_name(self) -> str:
        self._require_started()
        return self.session.display_name

    @property
    def gate(self) -> AccessControlGate:
        self._require_started()
        return self.session.gate

    @property
    def view(self) -> RosterView:
        return self.engine.view if self.engine is not None else ()

    @property
    def identities(self) -> Mapping[str, str]:
        return self.resolver.cache if self.resolver is not None else {}

    def signup_names(self, record: FlightRecord) -> list[str]:
        self._require_started()
        return [self.resolver.display_name(pid) for pid in record.signed_up_users]

    # ── User actions ──────────────────────────────────────────────

    def submit_pin(self, pin: str) -> bool:
        return self.gate.submit_pin(pin)

    def logout_admin(self) -> None:
        self.gate.logout()

    async def create_flight(self, fields: FlightFields) -> MutationResult:
        self._require_started()
        return await self.coordinator.create_flight(fields)

    async def update_flight(self, record: FlightRecord, fields: FlightFields) -> MutationResult:
        """Edit a record, carrying its signups over from the given snapshot."""
        self._require_started()
        return await self.coordinator.update_flight(record.id, fields, record.signed_up_users)

    async def delete_flight(self, flight_id: str) -> MutationResult:
        self._require_started()
        return await self.coordinator.delete_flight(flight_id)

    async def toggle_signup(self, record: FlightRecord) -> MutationResult:
        self._require_started()
        return await self.coordinator.toggle_signup(
            record.id, self.session.participant_id, record.signed_up_users
        )

    async def save_own_display_name(self, name: str) -> MutationResult:
        """Overwrite this participant's profile with a new callsign."""
        self._require_started()
        name = name.strip()
        if not name:
            message = "Callsign cannot be empty."
            error(self.notifier, message)
            return MutationResult(ok=False, message=message)
        if not self.session.participant_id or self.session.closed:
            message = "User not authenticated. Please wait."
            error(self.notifier, message)
            return MutationResult(ok=False, message=message)

        profile = Profile(participant_id=self.session.participant_id, display_name=name)
        try:
            await self.profile_store.set(self.session.participant_id, profile)
        except StoreError as exc:
            logger.warning("Error saving display name: %s", exc)
            message = f"Failed to save callsign: {exc}"
            error(self.notifier, message)
            return MutationResult(ok=False, message=message)

        self.session.display_name = name
        self.resolver.remember(self.session.participant_id, name)
        message = "Callsign saved successfully!"
        success(self.notifier, message)
        return MutationResult(ok=True, message=message)
