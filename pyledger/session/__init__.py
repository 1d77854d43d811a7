"""Client-side session state: cache, conflicts, resolution and sync."""

from .cache import CacheState, CacheStatus, MetadataCache
from .context import LedgerSession
from .coordinator import SyncCoordinator, SyncState
from .entries import EntryService
from .errors import ErrorChannel
from .registry import ConflictRegistry
from .resolution import (
    ConflictResolutionFlow,
    ResolutionPhase,
    ResolutionState,
)

__all__ = [
    "LedgerSession",
    "ErrorChannel",
    "MetadataCache",
    "CacheState",
    "CacheStatus",
    "ConflictRegistry",
    "ConflictResolutionFlow",
    "ResolutionPhase",
    "ResolutionState",
    "SyncCoordinator",
    "SyncState",
    "EntryService",
]
