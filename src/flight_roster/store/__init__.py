"""Identity provider and document store adapters.

The remote adapter pulls in httpx and websockets; it is lazily imported
via __getattr__ so that the in-memory store stays importable on its own.
"""

from .base import (
    Document,
    IdentityProvider,
    ProfileStore,
    RosterStore,
    Snapshot,
    Subscription,
    flights_collection,
    profiles_collection,
)
from .memory import InMemoryDocumentStore, StaticIdentityProvider

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "DocumentServiceClient": (".remote", "DocumentServiceClient"),
    "RemoteIdentityProvider": (".remote", "RemoteIdentityProvider"),
    "RemoteProfileStore": (".remote", "RemoteProfileStore"),
    "RemoteRosterStore": (".remote", "RemoteRosterStore"),
    "ParticipantCredentialStore": (".credentials", "ParticipantCredentialStore"),
}


def __getattr__(name: str):
    if name in _LAZY_IMPORTS:
        module_path, attr = _LAZY_IMPORTS[name]
        import importlib

        mod = importlib.import_module(module_path, __name__)
        return getattr(mod, attr)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "Document",
    "DocumentServiceClient",
    "IdentityProvider",
    "InMemoryDocumentStore",
    "ParticipantCredentialStore",
    "ProfileStore",
    "RemoteIdentityProvider",
    "RemoteProfileStore",
    "RemoteRosterStore",
    "RosterStore",
    "Snapshot",
    "StaticIdentityProvider",
    "Subscription",
    "flights_collection",
    "profiles_collection",
]
