"""Explicit per-session state.

A SessionContext is created once sign-in succeeds and closed when the
client shuts down. Administrator status lives on its gate and is never
persisted, so every new session starts as a guest.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from flight_roster.errors import AuthenticationError, StoreError
from flight_roster.models import fallback_display_name
from flight_roster.notifications import Notifier, error
from flight_roster.store.base import IdentityProvider, ProfileStore
from flight_roster.sync.gate import AccessControlGate

logger = logging.getLogger(__name__)


@dataclass
class SessionContext:
    participant_id: str
    display_name: str
    gate: AccessControlGate = field(default_factory=AccessControlGate)
    closed: bool = False

    @property
    def is_admin(self) -> bool:
        return not self.closed and self.gate.is_admin

    def close(self) -> None:
        if self.closed:
            return
        self.gate.logout()
        self.closed = True
        logger.debug("Session for %s closed", self.participant_id)


async def open_session(
    identity_provider: IdentityProvider,
    profile_store: ProfileStore,
    notifier: Notifier,
) -> SessionContext:
    """Sign in and load the participant's own callsign.

    Raises:
        AuthenticationError: If sign-in fails (already reported to the user)
    """
    try:
        participant_id = await identity_provider.current_participant_id()
    except AuthenticationError as exc:
        logger.error("Authentication error: %s", exc)
        error(notifier, "Authentication failed. Please try again.")
        raise
    if not participant_id:
        error(notifier, "Authentication failed. Please try again.")
        raise AuthenticationError("Identity provider returned an empty participant ID")

    display_name = fallback_display_name(participant_id)
    try:
        profile = await profile_store.get(participant_id)
    except StoreError as exc:
        logger.warning("Error fetching user profile: %s", exc)
        error(notifier, "Failed to load user profile.")
    else:
        if profile is not None and profile.display_name:
            display_name = profile.display_name

    return SessionContext(
        participant_id=participant_id,
        display_name=display_name,
        gate=AccessControlGate(notifier),
    )
