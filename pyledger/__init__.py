"""pyledger - client for a password ledger with local/remote conflict resolution."""

from .api import CommandBoundary, LedgerClient
from .exceptions import (
    LedgerAPIError,
    LedgerAuthenticationError,
    LedgerCommandError,
    LedgerConfigError,
    LedgerInvalidResponseError,
    LedgerNetworkError,
    LedgerNotFoundError,
    LedgerPermissionError,
)
from .models import ConflictPair, Entry, PushResponse
from .result import CommandError, Err, Ok, Result, describe_error
from .session import LedgerSession

__all__ = [
    "CommandBoundary",
    "LedgerClient",
    "LedgerSession",
    "Entry",
    "ConflictPair",
    "PushResponse",
    "Ok",
    "Err",
    "Result",
    "CommandError",
    "describe_error",
    "LedgerAPIError",
    "LedgerAuthenticationError",
    "LedgerCommandError",
    "LedgerConfigError",
    "LedgerInvalidResponseError",
    "LedgerNetworkError",
    "LedgerNotFoundError",
    "LedgerPermissionError",
]
