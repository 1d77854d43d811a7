"""Ledger session: the owned state shared by all components."""

from __future__ import annotations

import logging
from typing import Any, Optional

from ..api import CommandBoundary, LedgerClient
from ..config import config
from ..result import Err, Result, invoke_command
from .cache import MetadataCache
from .coordinator import SyncCoordinator
from .entries import EntryService
from .errors import ErrorChannel
from .registry import ConflictRegistry
from .resolution import ConflictResolutionFlow

logger = logging.getLogger(__name__)


class LedgerSession:
    """One open ledger and the client-side state built around it.

    The session owns the error channel, the metadata cache, the conflict
    registry, the resolution flow, the sync coordinator and the entry
    operations. They all share the same command boundary. Consumers receive
    the session (or one of its parts) instead of reaching for globals.

    Example:
        >>> async with LedgerSession() as session:
        ...     await session.open("master password")
        ...     session.cache.load()
        ...     await session.cache.wait()
        ...     print(session.registry.conflicted_labels())
    """

    def __init__(self, boundary: Optional[CommandBoundary] = None):
        """Initialize the session.

        Args:
            boundary: Command boundary to use; a LedgerClient built from
                config if omitted
        """
        self.boundary: CommandBoundary = boundary or LedgerClient()
        self.errors = ErrorChannel()
        self.cache = MetadataCache(self.boundary, self.errors)
        self.registry = ConflictRegistry(self.cache)
        self.resolution = ConflictResolutionFlow(self.boundary, self.cache, self.errors)
        self.sync = SyncCoordinator(self.boundary, self.cache, self.errors)
        self.entries = EntryService(self.boundary, self.cache, self.registry, self.errors)
        self.ledger_name: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.ledger_name is not None

    async def open(
        self, master_password: str, ledger_name: Optional[str] = None
    ) -> Result[None]:
        """Start the session by unlocking the ledger.

        Args:
            master_password: Master password of the ledger
            ledger_name: Ledger collection name (uses config if not provided)

        Returns:
            Ok(None), or Err if the ledger could not be opened
        """
        name = ledger_name or config.ledger_name
        if not master_password:
            return Err.rejected(
                "A master password is required", command="open_collection"
            )

        result: Result[None] = await invoke_command(
            self.boundary,
            "open_collection",
            {"ledgerName": name, "masterPw": master_password},
        )
        if result.is_err:
            return self.errors.report(result)

        self.ledger_name = name
        logger.info(f"Opened ledger '{name}'")
        return result

    async def close(self) -> None:
        """End the session and release the boundary's resources.

        Every fetch still in flight is awaited first, superseded ones
        included, since the boundary must stay usable until they settle.
        """
        await self.resolution.drain()
        await self.cache.drain()
        close = getattr(self.boundary, "close", None)
        if close is not None:
            await close()
        self.ledger_name = None

    async def __aenter__(self) -> LedgerSession:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
