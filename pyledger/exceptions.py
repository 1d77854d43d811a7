"""Exceptions raised by the ledger command client."""

from typing import Any


class LedgerAPIError(Exception):
    """Base exception for ledger command errors."""


class LedgerConfigError(LedgerAPIError):
    """Raised when the client is missing required configuration."""


class LedgerNetworkError(LedgerAPIError):
    """Raised when the command endpoint cannot be reached."""


class LedgerAuthenticationError(LedgerAPIError):
    """Raised when the command endpoint rejects the session (HTTP 401)."""


class LedgerPermissionError(LedgerAPIError):
    """Raised when the command endpoint forbids the request (HTTP 403)."""


class LedgerNotFoundError(LedgerAPIError):
    """Raised when the command endpoint does not exist (HTTP 404)."""


class LedgerInvalidResponseError(LedgerAPIError):
    """Raised when the command endpoint returns an undecodable response."""


class LedgerCommandError(LedgerAPIError):
    """Raised when a command ran and reported a failure.

    The ledger backend reports failures as data. ``payload`` holds what it
    sent: usually a plain message string, sometimes a structured object.
    """

    def __init__(self, payload: Any, command: str = ""):
        self.payload = payload
        self.command = command
        message = payload if isinstance(payload, str) else repr(payload)
        super().__init__(message)
