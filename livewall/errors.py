"""
Error types raised by the services and adapters.

They carry no transport details; the app factory maps them to HTTP
responses.
"""

from __future__ import annotations


class LivewallError(Exception):
    """Base class for expected failures."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LivewallError):
    """Missing or malformed input."""


class NotFoundError(LivewallError):
    pass


class ConflictError(LivewallError):
    """A uniqueness constraint would be violated."""


class UnauthorizedError(LivewallError):
    pass


class ForbiddenError(LivewallError):
    pass


class StorageError(LivewallError):
    """The object store rejected a request or could not be reached."""
