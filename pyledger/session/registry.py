"""Conflict registry derived from the metadata cache."""

from .cache import MetadataCache


class ConflictRegistry:
    """Labels currently flagged as conflicting.

    Holds no state of its own: every read is recomputed from the cache's
    latest loaded snapshot, so repeated reads never accumulate and a refresh
    that clears a conflict is reflected immediately.
    """

    def __init__(self, cache: MetadataCache):
        self.cache = cache

    def conflicted_labels(self) -> frozenset[str]:
        """Get the labels with ``has_conflict`` set."""
        return frozenset(
            entry.label for entry in self.cache.read().entries if entry.has_conflict
        )

    def ordered_labels(self) -> list[str]:
        """Get the conflicting labels in cache order, for display."""
        return [entry.label for entry in self.cache.read().entries if entry.has_conflict]

    def is_conflicted(self, label: str) -> bool:
        """Check whether a label is currently conflicting."""
        return label in self.conflicted_labels()

    def __len__(self) -> int:
        return len(self.conflicted_labels())

    def __contains__(self, label: object) -> bool:
        return isinstance(label, str) and self.is_conflicted(label)
