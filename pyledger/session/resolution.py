"""Interactive resolution of a single conflicting entry.

The flow reveals the local/remote pair of one label at a time, lets the user
pick one of the two values, and commits that choice::

    IDLE --reveal(label)--> REVEALED(label, pair=None)
    REVEALED --pair fetched--> REVEALED(label, pair)
    REVEALED/SELECTING --select(value)--> SELECTING(label, pair, choice)
    SELECTING --resolve()--> RESOLVING(label, choice)
    RESOLVING --success--> IDLE  (cache refreshed)
    RESOLVING --failure--> REVEALED(label, pair)

Each reveal bumps a generation counter. Pair-fetch and commit responses
carry the generation they were issued under and are ignored once a later
reveal has happened.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..api import CommandBoundary
from ..models import ConflictPair
from ..result import Result, invoke_command
from .cache import MetadataCache
from .errors import ErrorChannel

logger = logging.getLogger(__name__)


class ResolutionPhase(str, Enum):
    """Phases of the resolution flow."""

    IDLE = "idle"
    REVEALED = "revealed"
    SELECTING = "selecting"
    RESOLVING = "resolving"


@dataclass(frozen=True)
class ResolutionState:
    """Snapshot of the resolution flow."""

    phase: ResolutionPhase = ResolutionPhase.IDLE
    label: Optional[str] = None
    pair: Optional[ConflictPair] = None
    """Candidate values; None until the pair-fetch succeeded"""

    choice: Optional[str] = None
    """Selected value (SELECTING and RESOLVING only)"""

    @property
    def ambiguous(self) -> bool:
        """True when both candidates are the same value."""
        return self.pair is not None and self.pair.is_ambiguous

    @property
    def keep_original(self) -> Optional[bool]:
        """Whether the current choice keeps the local value."""
        if self.pair is None or self.choice is None:
            return None
        return self.choice == self.pair.local_value


IDLE = ResolutionState()


class ConflictResolutionFlow:
    """Single-slot state machine resolving one conflict at a time."""

    def __init__(
        self,
        boundary: CommandBoundary,
        cache: MetadataCache,
        errors: ErrorChannel,
    ):
        """Initialize the resolution flow.

        Args:
            boundary: Command boundary used for get_conf_pair/resolve_conflict
            cache: Cache refreshed after a successful resolution
            errors: Channel receiving failures
        """
        self.boundary = boundary
        self.cache = cache
        self.errors = errors
        self._state = IDLE
        self._generation = 0
        self._pending: Optional[asyncio.Task] = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def state(self) -> ResolutionState:
        return self._state

    @property
    def generation(self) -> int:
        """Fencing token of the current reveal."""
        return self._generation

    def reveal(self, label: str) -> ResolutionState:
        """Reveal the conflict pair of a label.

        Replaces whatever was revealed before. The pair is fetched in the
        background; an empty label does nothing.

        Args:
            label: Conflicting entry label

        Returns:
            The new state (REVEALED without pair while fetching)
        """
        if not label:
            return self._state

        self._generation += 1
        token = self._generation
        self._state = ResolutionState(ResolutionPhase.REVEALED, label=label)
        logger.debug(f"Revealing conflict for '{label}' (token {token})")

        task = asyncio.get_running_loop().create_task(self._fetch_pair(token, label))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        self._pending = task
        return self._state

    async def wait(self) -> ResolutionState:
        """Wait for the pair-fetch of the current reveal to settle."""
        while self._pending is not None and not self._pending.done():
            await self._pending
        return self._state

    async def drain(self) -> None:
        """Wait for every pair-fetch still in flight, stale ones included."""
        while self._tasks:
            await asyncio.gather(*self._tasks)

    async def _fetch_pair(self, token: int, label: str) -> None:
        result = await invoke_command(
            self.boundary,
            "get_conf_pair",
            {"entryName": label},
            decode=ConflictPair.from_dict,
        )

        if token != self._generation:
            logger.debug(f"Discarding stale conflict pair for '{label}' (token {token})")
            return

        if result.is_err:
            self.errors.report(result)
            return

        pair = result.value
        if pair.is_ambiguous:
            logger.warning(
                f"Local and remote values of '{label}' are identical; "
                "either choice commits the same value"
            )
        self._state = ResolutionState(ResolutionPhase.REVEALED, label=label, pair=pair)

    def select(self, value: str) -> bool:
        """Choose one of the two revealed values.

        Args:
            value: Must equal the local or the remote value

        Returns:
            True if the choice was accepted, False if it was rejected
        """
        state = self._state
        if state.phase not in (ResolutionPhase.REVEALED, ResolutionPhase.SELECTING):
            return False
        if state.pair is None or not state.pair.contains(value):
            logger.debug(f"Rejected selection for '{state.label}'")
            return False

        self._state = ResolutionState(
            ResolutionPhase.SELECTING,
            label=state.label,
            pair=state.pair,
            choice=value,
        )
        return True

    async def resolve(self) -> Optional[Result[None]]:
        """Commit the selected value.

        Does nothing unless a value was selected. On success the flow
        returns to IDLE and the cache is refreshed; on failure it goes back
        to REVEALED so the user can select and resolve again.

        Returns:
            Result of the commit, or None if nothing was selected
        """
        state = self._state
        if state.phase != ResolutionPhase.SELECTING:
            return None

        label = state.label
        keep_original = state.keep_original
        token = self._generation
        self._state = ResolutionState(
            ResolutionPhase.RESOLVING,
            label=label,
            pair=state.pair,
            choice=state.choice,
        )
        logger.info(f"Resolving '{label}', keep_original={keep_original}")

        result: Result[None] = await invoke_command(
            self.boundary,
            "resolve_conflict",
            {"entryName": label, "keepOriginal": keep_original},
        )

        if result.is_err:
            if token == self._generation:
                self._state = ResolutionState(
                    ResolutionPhase.REVEALED, label=label, pair=state.pair
                )
            return self.errors.report(result)

        if token == self._generation:
            self._state = IDLE
        self.cache.refresh()
        return result

    def reset(self) -> None:
        """Return to IDLE; any pair-fetch in flight becomes stale."""
        self._generation += 1
        self._state = IDLE
