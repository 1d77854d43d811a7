"""Lazily loaded cache of ledger entry metadata."""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..api import CommandBoundary
from ..models import Entry, parse_entries
from ..result import invoke_command
from .errors import ErrorChannel

logger = logging.getLogger(__name__)


class CacheStatus(str, Enum):
    """Lifecycle of the metadata cache."""

    UNLOADED = "unloaded"
    """No fetch was ever requested"""

    LOADING = "loading"
    """A list-fetch is in flight"""

    LOADED = "loaded"
    """The latest fetch settled (possibly as an empty, failed load)"""


@dataclass(frozen=True)
class CacheState:
    """Immutable snapshot of the cache.

    While a fetch is in flight ``entries`` still holds the previous loaded
    snapshot, so consumers keep a consistent view until the new one lands.
    """

    status: CacheStatus
    entries: tuple[Entry, ...] = ()
    error: Optional[str] = None
    """Message of the failed fetch this snapshot settled from, if any"""

    generation: int = 0
    """Number of the fetch that produced (or is producing) this state"""

    @property
    def is_loaded(self) -> bool:
        return self.status == CacheStatus.LOADED

    @property
    def labels(self) -> list[str]:
        return [entry.label for entry in self.entries]


def _unique_entries(entries: list[Entry]) -> tuple[Entry, ...]:
    """Drop repeated labels, keeping the first occurrence and the order."""
    seen: set[str] = set()
    unique = []
    for entry in entries:
        if entry.label in seen:
            logger.warning(f"Duplicate label '{entry.label}' in list response, ignoring")
            continue
        seen.add(entry.label)
        unique.append(entry)
    return tuple(unique)


class MetadataCache:
    """Holds the current entry list and fetches it on first demand.

    ``load()`` and ``refresh()`` never block: they start a fetch as a task on
    the running event loop and return the current state right away. A newer
    fetch supersedes older ones; late responses of superseded fetches are
    ignored rather than cancelled.
    """

    def __init__(self, boundary: CommandBoundary, errors: ErrorChannel):
        """Initialize the cache.

        Args:
            boundary: Command boundary used for ``list``
            errors: Channel receiving fetch failures
        """
        self.boundary = boundary
        self.errors = errors
        self._state = CacheState(CacheStatus.UNLOADED)
        self._requested = False
        self._generation = 0
        self._latest: Optional[asyncio.Task] = None
        self._tasks: set[asyncio.Task] = set()

    def read(self) -> CacheState:
        """Get the current snapshot."""
        return self._state

    def load(self) -> CacheState:
        """Fetch the entry list unless a fetch was already requested.

        Must be called from within a running event loop.

        Returns:
            The current state (LOADING right after the first call)
        """
        if not self._requested:
            self._start_fetch()
        return self._state

    def refresh(self) -> CacheState:
        """Fetch the entry list again, superseding any fetch in flight.

        Must be called from within a running event loop.

        Returns:
            The current state (always LOADING)
        """
        self._start_fetch()
        return self._state

    async def wait(self) -> CacheState:
        """Wait until the newest requested fetch has settled.

        Returns:
            The settled state (unchanged if nothing was ever requested)
        """
        while self._latest is not None and not self._latest.done():
            await self._latest
        return self._state

    async def drain(self) -> None:
        """Wait until every fetch still in flight has finished.

        Unlike ``wait()`` this includes superseded fetches, whose responses
        are ignored but which still use the boundary.
        """
        while self._tasks:
            await asyncio.gather(*self._tasks)

    def _start_fetch(self) -> None:
        self._requested = True
        self._generation += 1
        generation = self._generation
        self._state = CacheState(
            CacheStatus.LOADING,
            entries=self._state.entries,
            generation=generation,
        )
        logger.debug(f"Starting list fetch #{generation}")

        task = asyncio.get_running_loop().create_task(self._fetch(generation))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        self._latest = task

    async def _fetch(self, generation: int) -> None:
        result = await invoke_command(self.boundary, "list", decode=parse_entries)

        if generation != self._generation:
            logger.debug(
                f"Ignoring list fetch #{generation}, superseded by #{self._generation}"
            )
            return

        if result.is_err:
            # Fail soft: settle as an empty list, then surface the error
            self._state = CacheState(
                CacheStatus.LOADED,
                entries=(),
                error=result.message,
                generation=generation,
            )
            self.errors.report(result)
            return

        entries = _unique_entries(result.value)
        logger.debug(f"Loaded {len(entries)} entries (fetch #{generation})")
        self._state = CacheState(
            CacheStatus.LOADED, entries=entries, generation=generation
        )
