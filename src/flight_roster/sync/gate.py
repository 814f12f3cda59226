"""Client-side administrator gate.

The gate decides which mutations this client will *attempt*; it does not
change what the backing store accepts. Anyone holding store credentials
can still write directly, so treat it as a usability control only.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Optional

from flight_roster.notifications import Notifier, error, success

logger = logging.getLogger(__name__)

ADMIN_PIN = "54321"


class GateState(str, Enum):
    GUEST = "guest"
    ADMINISTRATOR = "administrator"


class AccessControlGate:
    """Two-state gate: GUEST until the shared PIN is submitted."""

    def __init__(self, notifier: Optional[Notifier] = None):
        self.notifier = notifier
        self.state = GateState.GUEST
        self.pin_input = ""
        self._listeners: list[Callable[[GateState], None]] = []

    @property
    def is_admin(self) -> bool:
        return self.state is GateState.ADMINISTRATOR

    def add_listener(self, listener: Callable[[GateState], None]) -> None:
        self._listeners.append(listener)

    def _set_state(self, state: GateState) -> None:
        if state is self.state:
            return
        self.state = state
        logger.debug("Access gate is now %s", state.value)
        for listener in list(self._listeners):
            listener(state)

    def enter_pin(self, value: str) -> None:
        """Buffer PIN input as typed, before submission."""
        self.pin_input = value

    def submit_pin(self, pin: Optional[str] = None) -> bool:
        """Compare the PIN (or buffered input) with the shared secret.

        The input buffer is cleared on every attempt. Returns True when
        the session is now an administrator session.
        """
        candidate = self.pin_input if pin is None else pin
        self.pin_input = ""

        if candidate == ADMIN_PIN:
            self._set_state(GateState.ADMINISTRATOR)
            if self.notifier:
                success(self.notifier, "Administrator access granted!")
            return True

        if self.notifier:
            error(self.notifier, "Incorrect PIN. Please try again.")
        return self.is_admin

    def logout(self) -> None:
        self.pin_input = ""
        self._set_state(GateState.GUEST)
