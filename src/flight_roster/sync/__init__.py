"""Realtime roster synchronization.

- RealtimeSyncEngine: sorted local view rebuilt from each store snapshot
- IdentityResolver: lazily filled participant ID -> callsign cache
- AccessControlGate: client-side administrator PIN gate
- MutationCoordinator: validated, gated writes to the roster
"""

from .coordinator import MutationCoordinator, MutationResult, toggled_signups
from .engine import RealtimeSyncEngine, materialize, referenced_participants
from .gate import ADMIN_PIN, AccessControlGate, GateState
from .identity import IdentityResolver

__all__ = [
    "ADMIN_PIN",
    "AccessControlGate",
    "GateState",
    "IdentityResolver",
    "MutationCoordinator",
    "MutationResult",
    "RealtimeSyncEngine",
    "materialize",
    "referenced_participants",
    "toggled_signups",
]
