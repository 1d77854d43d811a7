"""Result values for ledger commands.

Every operation that reaches the command boundary reports its outcome as
either ``Ok(value)`` or ``Err(CommandError)``. Exceptions raised by the
boundary are caught at one place, :func:`invoke_command`, and turned into a
descriptive message by :func:`describe_error`.
"""

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Generic, Optional, TypeVar, Union

from .exceptions import LedgerCommandError

if TYPE_CHECKING:
    from .api import CommandBoundary

logger = logging.getLogger(__name__)

T = TypeVar("T")

UNKNOWN_ERROR_PREFIX = "An unknown error occurred: "


@dataclass(frozen=True)
class CommandError:
    """A failed command, with the message shown to the user."""

    command: str
    """Name of the command that failed (empty for client-side rejections)"""

    message: str
    """Human-readable error message"""

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful result carrying the command's value."""

    value: T

    @property
    def is_ok(self) -> bool:
        return True

    @property
    def is_err(self) -> bool:
        return False


@dataclass(frozen=True)
class Err:
    """Failed result carrying a CommandError."""

    error: CommandError

    @property
    def is_ok(self) -> bool:
        return False

    @property
    def is_err(self) -> bool:
        return True

    @property
    def message(self) -> str:
        return self.error.message

    @classmethod
    def rejected(cls, message: str, command: str = "") -> "Err":
        """Build an Err for a request refused before reaching the boundary."""
        return cls(CommandError(command=command, message=message))


Result = Union[Ok[T], Err]


def describe_error(exc: BaseException) -> str:
    """Normalize a boundary failure into a message string.

    A command that failed with a plain message string keeps that message.
    Anything else is serialized and prefixed with "An unknown error occurred".

    Args:
        exc: Exception raised by a boundary call

    Returns:
        Message suitable for the error channel

    Examples:
        >>> describe_error(LedgerCommandError("network down"))
        'network down'
        >>> describe_error(LedgerCommandError({"code": 7}))
        'An unknown error occurred: {\\n  "code": 7\\n}'
    """
    if isinstance(exc, LedgerCommandError):
        if isinstance(exc.payload, str):
            return exc.payload
        payload: Any = exc.payload
    else:
        payload = {"type": type(exc).__name__, "message": str(exc)}

    return UNKNOWN_ERROR_PREFIX + json.dumps(payload, indent=2, default=str)


async def invoke_command(
    boundary: "CommandBoundary",
    command: str,
    args: Optional[dict[str, Any]] = None,
    decode: Optional[Callable[[Any], T]] = None,
) -> "Result[T]":
    """Run one command and wrap its outcome in a Result.

    Args:
        boundary: Command boundary to call
        command: Command name
        args: Argument bag (wire names)
        decode: Optional function turning the raw value into a model;
            errors it raises are reported like boundary errors

    Returns:
        Ok with the (decoded) value, or Err with the normalized message
    """
    try:
        value = await boundary.invoke(command, args)
        if decode is not None:
            value = decode(value)
    except Exception as e:
        message = describe_error(e)
        logger.debug(f"Command '{command}' failed: {message}")
        return Err(CommandError(command=command, message=message))
    return Ok(value)
