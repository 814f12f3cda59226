"""MutationCoordinator: validated, gated writes to the roster.

Permission checks happen here, locally, before any store round trip.
The backing store does not enforce them.

Signup toggles are read-modify-write over the caller's snapshot. Two
participants toggling the same flight from the same stale snapshot race,
and the store keeps whichever write lands last.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Sequence

from flight_roster.errors import StoreError
from flight_roster.models import FlightFields, FlightRecord, normalize_signups
from flight_roster.notifications import Confirmer, Notifier, error, success
from flight_roster.store.base import RosterStore

if TYPE_CHECKING:
    from flight_roster.session import SessionContext

logger = logging.getLogger(__name__)

ADD_OR_EDIT_DENIED = "Only administrators can add or edit flights. Please log in as admin."
EDIT_DENIED = "Only administrators can edit flights. Please log in as admin."
DELETE_DENIED = "Only administrators can delete flights. Please log in as admin."
FIELDS_REQUIRED = "All fields are required."
AUTH_NOT_READY = "Please wait, authentication is not ready yet."
OWN_SIGNUP_ONLY = "You can only change your own signup."
DELETE_PROMPT = "Are you sure you want to delete this flight?"


@dataclass(frozen=True)
class MutationResult:
    """Outcome of one coordinator operation, as shown to the user."""

    ok: bool
    message: str
    flight_id: Optional[str] = None
    signed_up_users: Optional[tuple[str, ...]] = None
    cancelled: bool = False


def toggled_signups(current: Sequence[str], participant_id: str) -> tuple[tuple[str, ...], bool]:
    """Remove the participant if present, append if absent.

    Returns the new sequence and whether the participant is now signed up.
    """
    current = normalize_signups(current)
    if participant_id in current:
        return tuple(pid for pid in current if pid != participant_id), False
    return current + (participant_id,), True


class MutationCoordinator:
    def __init__(
        self,
        session: SessionContext,
        roster_store: RosterStore,
        notifier: Notifier,
        confirmer: Confirmer,
    ):
        self.session = session
        self.roster_store = roster_store
        self.notifier = notifier
        self.confirmer = confirmer

    def _reject(self, message: str) -> MutationResult:
        error(self.notifier, message)
        return MutationResult(ok=False, message=message)

    def _failed(self, prefix: str, exc: StoreError) -> MutationResult:
        logger.warning("%s: %s", prefix, exc)
        return self._reject(f"{prefix}: {exc}")

    def _done(self, message: str, **kwargs) -> MutationResult:
        success(self.notifier, message)
        return MutationResult(ok=True, message=message, **kwargs)

    def _validate_admin_write(self, fields: FlightFields) -> Optional[MutationResult]:
        if not self.session.is_admin:
            return self._reject(ADD_OR_EDIT_DENIED)
        if fields.missing_fields():
            return self._reject(FIELDS_REQUIRED)
        return None

    def begin_edit(self, record: FlightRecord) -> Optional[FlightFields]:
        """Return the editable fields of a record, or None for guests."""
        if not self.session.is_admin:
            self._reject(EDIT_DENIED)
            return None
        return record.fields

    async def create_flight(self, fields: FlightFields) -> MutationResult:
        rejection = self._validate_admin_write(fields)
        if rejection:
            return rejection

        document = {**fields.to_document(), "signedUpUsers": []}
        try:
            flight_id = await self.roster_store.insert(document)
        except StoreError as exc:
            return self._failed("Failed to save flight", exc)
        logger.info("Created flight %s (%s)", flight_id, fields.flight_number)
        return self._done("Flight added successfully!", flight_id=flight_id, signed_up_users=())

    async def update_flight(
        self,
        flight_id: str,
        fields: FlightFields,
        signed_up_users: Sequence[str],
    ) -> MutationResult:
        """Replace the editable fields; carry signups over from the pre-edit snapshot."""
        rejection = self._validate_admin_write(fields)
        if rejection:
            return rejection

        carried = normalize_signups(signed_up_users)
        document = {**fields.to_document(), "signedUpUsers": list(carried)}
        try:
            await self.roster_store.update(flight_id, document)
        except StoreError as exc:
            return self._failed("Failed to save flight", exc)
        logger.info("Updated flight %s", flight_id)
        return self._done("Flight updated successfully!", flight_id=flight_id, signed_up_users=carried)

    async def delete_flight(self, flight_id: str) -> MutationResult:
        """Delete after an explicit confirmation; a declined prompt is a no-op."""
        if not self.session.is_admin:
            return self._reject(DELETE_DENIED)

        if not await self.confirmer(DELETE_PROMPT):
            logger.debug("Deletion of %s cancelled", flight_id)
            return MutationResult(ok=False, message="Deletion cancelled.", flight_id=flight_id, cancelled=True)

        try:
            await self.roster_store.delete(flight_id)
        except StoreError as exc:
            return self._failed("Failed to delete flight", exc)
        logger.info("Deleted flight %s", flight_id)
        return self._done("Flight deleted successfully!", flight_id=flight_id)

    async def toggle_signup(
        self,
        flight_id: str,
        participant_id: str,
        current_signed_up_users: Sequence[str],
    ) -> MutationResult:
        if not participant_id or self.session.closed:
            return self._reject(AUTH_NOT_READY)
        if participant_id != self.session.participant_id:
            return self._reject(OWN_SIGNUP_ONLY)

        updated, signed_up = toggled_signups(current_signed_up_users, participant_id)
        try:
            await self.roster_store.update(flight_id, {"signedUpUsers": list(updated)})
        except StoreError as exc:
            return self._failed("Failed to update signup status", exc)

        action = "signed up for" if signed_up else "unsigned up from"
        return self._done(
            f"You have successfully {action} this flight!",
            flight_id=flight_id,
            signed_up_users=updated,
        )


__all__ = [
    "MutationCoordinator",
    "MutationResult",
    "toggled_signups",
]
