"""RealtimeSyncEngine: local materialization of the shared roster.

Every change notification carries the whole flight collection. The engine
rebuilds its view from scratch each time instead of patching it.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError

from flight_roster.errors import StoreError
from flight_roster.models import FlightRecord
from flight_roster.notifications import Notifier, error
from flight_roster.store.base import RosterStore, Snapshot, Subscription

from .identity import IdentityResolver

logger = logging.getLogger(__name__)

LOAD_FAILED_MESSAGE = "Failed to load flights. Please try refreshing."

RosterView = tuple[FlightRecord, ...]
ViewListener = Callable[[RosterView], None]


def materialize(snapshot: Snapshot) -> RosterView:
    """Parse a snapshot and sort it by flight number.

    Raises pydantic.ValidationError if any document is malformed; the
    snapshot is then rejected as a whole.
    """
    records = [FlightRecord.from_document(doc.id, doc.data) for doc in snapshot]
    return tuple(sorted(records, key=lambda record: record.flight_number))


def referenced_participants(view: Sequence[FlightRecord]) -> set[str]:
    return {pid for record in view for pid in record.signed_up_users}


class RealtimeSyncEngine:
    """Keeps a sorted local view of the roster in step with the store."""

    def __init__(
        self,
        roster_store: RosterStore,
        resolver: IdentityResolver,
        notifier: Notifier,
    ):
        self.roster_store = roster_store
        self.resolver = resolver
        self.notifier = notifier
        self._view: RosterView = ()
        self._subscription: Optional[Subscription] = None
        self._listeners: list[ViewListener] = []
        self._first_snapshot = asyncio.Event()
        self._stopped = False
        self._resolutions: set[asyncio.Task] = set()

    @property
    def view(self) -> RosterView:
        return self._view

    @property
    def running(self) -> bool:
        return self._subscription is not None and not self._stopped

    def add_listener(self, listener: ViewListener) -> None:
        self._listeners.append(listener)

    def find(self, flight_id: str) -> Optional[FlightRecord]:
        for record in self._view:
            if record.id == flight_id:
                return record
        return None

    async def start(self) -> bool:
        """Subscribe to roster changes.

        Returns False (after notifying) if the subscription could not be
        opened; there is no automatic retry.
        """
        if self._subscription is not None:
            return True
        if self._stopped:
            raise RuntimeError("RealtimeSyncEngine cannot be restarted after stop()")
        try:
            subscription = await self.roster_store.subscribe(self._on_snapshot, self._on_error)
        except StoreError as exc:
            logger.warning("Roster subscription failed: %s", exc)
            error(self.notifier, LOAD_FAILED_MESSAGE)
            return False
        if self._stopped:
            # stop() ran while the subscription was being opened.
            await subscription.unsubscribe()
            return False
        self._subscription = subscription
        logger.debug("Roster subscription started")
        return True

    async def stop(self) -> None:
        """Tear down the subscription; safe to call more than once."""
        if self._stopped:
            return
        self._stopped = True
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            await subscription.unsubscribe()
            logger.debug("Roster subscription stopped")

        pending = list(self._resolutions)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def wait_for_snapshot(self, timeout: Optional[float] = None) -> bool:
        """Wait until the first snapshot has been applied."""
        try:
            await asyncio.wait_for(self._first_snapshot.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True

    async def wait_for_identities(self, timeout: Optional[float] = None) -> bool:
        """Wait for callsign lookups started by applied snapshots.

        Returns False if some lookups are still running when the timeout
        expires; they keep running in the background.
        """
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout
        while True:
            pending = {task for task in self._resolutions if not task.done()}
            if not pending:
                return True
            remaining = None if deadline is None else deadline - loop.time()
            if remaining is not None and remaining <= 0:
                return False
            await asyncio.wait(pending, timeout=remaining)

    async def _on_snapshot(self, snapshot: Snapshot) -> None:
        if self._stopped:
            return
        try:
            view = materialize(snapshot)
        except PydanticValidationError as exc:
            logger.warning("Rejected malformed roster snapshot: %s", exc)
            error(self.notifier, LOAD_FAILED_MESSAGE)
            return

        self._view = view
        for listener in list(self._listeners):
            listener(view)
        self._first_snapshot.set()

        # Lookups must not hold back the next snapshot.
        task = asyncio.create_task(self.resolver.resolve(referenced_participants(view)))
        self._resolutions.add(task)
        task.add_done_callback(self._resolution_done)

    def _resolution_done(self, task: asyncio.Task) -> None:
        self._resolutions.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Callsign lookup failed: %s", exc)

    async def _on_error(self, exc: Exception) -> None:
        logger.warning("Roster subscription error: %s", exc)
        error(self.notifier, LOAD_FAILED_MESSAGE)
