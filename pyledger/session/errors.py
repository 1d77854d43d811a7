"""Error channel shared by the session components."""

import logging
from typing import Callable, Optional

from ..result import Err

logger = logging.getLogger(__name__)


class ErrorChannel:
    """Single slot holding the most recent error message.

    Every write overwrites the previous message; there is no queue or
    history. Listeners are called after each write, which lets a UI or the
    CLI react without polling.
    """

    def __init__(self) -> None:
        self._message: Optional[str] = None
        self._writes = 0
        self._listeners: list[Callable[[str], None]] = []

    @property
    def message(self) -> Optional[str]:
        """Last error written, or None if nothing failed yet."""
        return self._message

    @property
    def writes(self) -> int:
        """Number of errors written since creation."""
        return self._writes

    def write(self, message: str) -> None:
        """Overwrite the slot with a new error message.

        A listener that raises is logged and skipped; the remaining
        listeners are still called.
        """
        self._message = message
        self._writes += 1
        logger.info(f"Error channel: {message}")
        for listener in list(self._listeners):
            try:
                listener(message)
            except Exception:
                logger.exception(f"Error listener {listener!r} failed")

    def report(self, result: Err) -> Err:
        """Write an Err's message and hand the Err back."""
        self.write(result.message)
        return result

    def clear(self) -> None:
        """Empty the slot, e.g. after the message has been shown."""
        self._message = None

    def subscribe(self, listener: Callable[[str], None]) -> Callable[[], None]:
        """Register a callback for new errors.

        Args:
            listener: Called with each new message

        Returns:
            Function removing the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
