"""Data models for ledger command responses."""

from dataclasses import dataclass
from typing import Any

from .exceptions import LedgerInvalidResponseError


@dataclass(frozen=True)
class Entry:
    """Metadata for one ledger entry, as returned by the ``list`` command."""

    label: str
    """Unique entry name"""

    has_conflict: bool = False
    """True when the local and remote copies disagree"""

    @classmethod
    def from_dict(cls, data: Any) -> "Entry":
        """Create an Entry from a ``list`` item.

        Args:
            data: Dictionary with ``label`` and ``has_conflict`` keys

        Returns:
            Entry instance

        Raises:
            LedgerInvalidResponseError: If the item has no usable label
        """
        if not isinstance(data, dict) or not isinstance(data.get("label"), str):
            raise LedgerInvalidResponseError(f"Invalid entry in list response: {data!r}")
        return cls(label=data["label"], has_conflict=bool(data.get("has_conflict")))


@dataclass(frozen=True)
class ConflictPair:
    """The two candidate values of a conflicting entry."""

    local_value: str
    """Value held by the local copy"""

    remote_value: str
    """Value received from the remote copy"""

    @property
    def is_ambiguous(self) -> bool:
        """True when both candidates are identical."""
        return self.local_value == self.remote_value

    def contains(self, value: str) -> bool:
        """Check whether a value is one of the two candidates."""
        return value in (self.local_value, self.remote_value)

    @classmethod
    def from_dict(cls, data: Any) -> "ConflictPair":
        """Create a ConflictPair from a ``get_conf_pair`` response.

        Args:
            data: Dictionary with ``local_pw`` and ``remote_pw`` keys

        Returns:
            ConflictPair instance

        Raises:
            LedgerInvalidResponseError: If either value is missing
        """
        if not isinstance(data, dict):
            raise LedgerInvalidResponseError(f"Invalid conflict pair: {data!r}")
        local_pw = data.get("local_pw")
        remote_pw = data.get("remote_pw")
        if not isinstance(local_pw, str) or not isinstance(remote_pw, str):
            raise LedgerInvalidResponseError(f"Invalid conflict pair: {data!r}")
        return cls(local_value=local_pw, remote_value=remote_pw)


@dataclass(frozen=True)
class PushResponse:
    """Response of an upload to the sync server."""

    pin: str
    """Short code needed, with the temporary password, to download"""

    @classmethod
    def from_dict(cls, data: Any) -> "PushResponse":
        """Create a PushResponse from a ``push_s`` response."""
        if not isinstance(data, dict) or data.get("pin") in (None, ""):
            raise LedgerInvalidResponseError(f"Invalid push response: {data!r}")
        return cls(pin=str(data["pin"]))


def parse_entries(data: Any) -> list[Entry]:
    """Parse a ``list`` response into entries.

    Args:
        data: List of entry dictionaries

    Returns:
        List of Entry objects, in response order

    Raises:
        LedgerInvalidResponseError: If the response is not a list
    """
    if not isinstance(data, list):
        raise LedgerInvalidResponseError(
            f"Expected a list of entries, got {type(data).__name__}"
        )
    return [Entry.from_dict(item) for item in data]
