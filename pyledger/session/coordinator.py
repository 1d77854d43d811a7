"""Mutually exclusive upload/download to the sync server."""

import logging
from enum import Enum
from typing import Any

from ..api import CommandBoundary
from ..models import PushResponse
from ..result import Err, Result, invoke_command
from .cache import MetadataCache
from .errors import ErrorChannel

logger = logging.getLogger(__name__)

SYNC_BUSY_MESSAGE = "Sync already in progress"


class SyncState(str, Enum):
    """Whether a sync round trip is running."""

    IDLE = "idle"
    IN_PROGRESS = "in_progress"


class SyncCoordinator:
    """Gate admitting at most one upload or download at a time.

    A call made while another is running is refused without reaching the
    boundary. The gate always reopens when the round trip ends, whether it
    succeeded or not.
    """

    def __init__(
        self,
        boundary: CommandBoundary,
        cache: MetadataCache,
        errors: ErrorChannel,
    ):
        """Initialize the coordinator.

        Args:
            boundary: Command boundary used for push_s/pull
            cache: Cache refreshed after a successful download
            errors: Channel receiving sync failures
        """
        self.boundary = boundary
        self.cache = cache
        self.errors = errors
        self._state = SyncState.IDLE

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def in_progress(self) -> bool:
        return self._state == SyncState.IN_PROGRESS

    async def upload(self, temp_password: str) -> Result[PushResponse]:
        """Upload the ledger, protected by a temporary password.

        Args:
            temp_password: Password the server encrypts the upload with

        Returns:
            Ok with the PushResponse holding the download pin, or Err
        """
        if self.in_progress:
            return Err.rejected(SYNC_BUSY_MESSAGE, command="push_s")
        if not temp_password:
            return Err.rejected("A temporary password is required", command="push_s")

        self._state = SyncState.IN_PROGRESS
        try:
            result: Result[PushResponse] = await invoke_command(
                self.boundary,
                "push_s",
                {"tempPw": temp_password},
                decode=PushResponse.from_dict,
            )
        finally:
            self._state = SyncState.IDLE

        if result.is_err:
            return self.errors.report(result)
        logger.info("Upload finished, pin issued")
        return result

    async def download(self, temp_password: str, pin: str) -> Result[Any]:
        """Download and merge a ledger previously uploaded.

        Args:
            temp_password: Temporary password used for the upload
            pin: Pin returned by the upload

        Returns:
            Ok with the backend's payload, or Err
        """
        if self.in_progress:
            return Err.rejected(SYNC_BUSY_MESSAGE, command="pull")
        if not temp_password or not pin:
            return Err.rejected(
                "A pin and a temporary password are required", command="pull"
            )

        self._state = SyncState.IN_PROGRESS
        try:
            result: Result[Any] = await invoke_command(
                self.boundary, "pull", {"tempPw": temp_password, "pin": pin}
            )
        finally:
            self._state = SyncState.IDLE

        if result.is_err:
            return self.errors.report(result)
        logger.info("Download merged, refreshing entries")
        self.cache.refresh()
        return result
