"""Read and edit operations on ledger entries."""

import logging
from typing import Optional

from ..api import CommandBoundary
from ..result import Err, Result, invoke_command
from .cache import MetadataCache
from .errors import ErrorChannel
from .registry import ConflictRegistry

logger = logging.getLogger(__name__)


class EntryService:
    """Entry operations that go through the command boundary.

    Mutations refresh the metadata cache afterwards. Failures are written to
    the error channel and returned as Err.
    """

    def __init__(
        self,
        boundary: CommandBoundary,
        cache: MetadataCache,
        registry: ConflictRegistry,
        errors: ErrorChannel,
    ):
        self.boundary = boundary
        self.cache = cache
        self.registry = registry
        self.errors = errors

    def _report(self, result: Result) -> Result:
        if result.is_err:
            self.errors.report(result)
        return result

    async def read_secret(self, label: str) -> Result[str]:
        """Read an entry's secret.

        Conflicting entries are refused: their value is only reachable by
        resolving the conflict first. When the entry list could not be
        fetched the read is refused too, since conflicts are then unknown.

        Args:
            label: Entry label

        Returns:
            Ok with the secret, or Err
        """
        if not label:
            return Err.rejected("An entry label is required", command="read_entry")

        # The conflict check needs a settled snapshot
        if not self.cache.read().is_loaded:
            self.cache.load()
            await self.cache.wait()

        # An empty snapshot from a failed list says nothing about conflicts
        error = self.cache.read().error
        if error is not None:
            return self.errors.report(
                Err.rejected(
                    f"Cannot read '{label}': conflict status unknown ({error})",
                    command="read_entry",
                )
            )

        if self.registry.is_conflicted(label):
            return self.errors.report(
                Err.rejected(
                    f"'{label}' has a conflict; resolve it before reading",
                    command="read_entry",
                )
            )
        return self._report(
            await invoke_command(
                self.boundary, "read_entry", {"entryName": label}, decode=str
            )
        )

    async def generate(self) -> Result[str]:
        """Generate a password without storing it."""
        return self._report(
            await invoke_command(self.boundary, "generate_pw", decode=str)
        )

    async def create(self, label: str, value: Optional[str] = None) -> Result[None]:
        """Add an entry, generating its value when none is given.

        The cache is refreshed afterwards, also when the add failed, so the
        list reflects whatever the backend ended up storing.

        Args:
            label: New entry label
            value: Secret to store; generated by the backend if omitted

        Returns:
            Ok(None), or Err from generation or storage
        """
        if not label:
            return Err.rejected("An entry label is required", command="add_entry")

        if value is None:
            generated = await self.generate()
            if generated.is_err:
                return generated
            value = generated.value

        result: Result[None] = await invoke_command(
            self.boundary, "add_entry", {"entryName": label, "val": value}
        )
        self._report(result)
        self.cache.refresh()
        if result.is_ok:
            logger.info(f"Added entry '{label}'")
        return result

    async def regenerate(self, label: str) -> Result[None]:
        """Replace an entry's secret with a generated one."""
        if not label:
            return Err.rejected("An entry label is required", command="regen_pw")

        result: Result[None] = self._report(
            await invoke_command(self.boundary, "regen_pw", {"entryName": label})
        )
        self.cache.refresh()
        return result

    async def remove(self, label: str) -> Result[None]:
        """Delete an entry."""
        if not label:
            return Err.rejected("An entry label is required", command="remove_entry")

        result: Result[None] = self._report(
            await invoke_command(self.boundary, "remove_entry", {"entryName": label})
        )
        self.cache.refresh()
        if result.is_ok:
            logger.info(f"Removed entry '{label}'")
        return result

    async def export(self) -> Result[None]:
        """Export the ledger to an archive on the backend host."""
        return self._report(await invoke_command(self.boundary, "export_ledger"))
