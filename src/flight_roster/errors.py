"""Exception hierarchy for the roster client."""

from __future__ import annotations


class RosterError(Exception):
    """Base exception for roster client errors."""
    pass


class ConfigurationError(RosterError):
    """Raised when the backend configuration cannot be parsed.

    Fatal: surfaced once to the user, never retried.
    """


class AuthenticationError(RosterError):
    """Raised when sign-in with the identity provider fails."""


class StoreError(RosterError):
    """Raised when a profile or roster round trip fails.

    Recoverable: the caller reports it and leaves local state unchanged.
    """

    def __init__(self, message: str, *, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)
