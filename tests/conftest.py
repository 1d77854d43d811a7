"""Shared test fixtures for pyledger."""

import asyncio
from typing import Any, Optional

import pytest

from pyledger.session import LedgerSession


class FakeBoundary:
    """Scripted command boundary that records every call.

    ``responses`` maps a command to its value, to an exception instance that
    is raised, or to a callable receiving the argument bag. Commands passed
    to ``hold()`` wait until the test completes them with ``complete()``,
    which lets tests control the order in which responses arrive.
    """

    def __init__(self, responses: Optional[dict[str, Any]] = None):
        self.responses: dict[str, Any] = dict(responses or {})
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.held: set[str] = set()
        self.waiting: dict[str, list[asyncio.Future]] = {}
        self.closed = False

    async def invoke(self, command: str, args: Optional[dict[str, Any]] = None) -> Any:
        args = dict(args or {})
        self.calls.append((command, args))

        if command in self.held:
            future = asyncio.get_running_loop().create_future()
            self.waiting.setdefault(command, []).append(future)
            value = await future
        else:
            value = self.responses.get(command)
            if callable(value) and not isinstance(value, BaseException):
                value = value(args)

        if isinstance(value, BaseException):
            raise value
        return value

    def hold(self, command: str) -> None:
        self.held.add(command)

    def complete(self, command: str, value: Any, index: int = 0) -> None:
        """Deliver the response of the index-th held call of a command."""
        self.waiting[command][index].set_result(value)

    def count(self, command: str) -> int:
        return sum(1 for name, _ in self.calls if name == command)

    def args_of(self, command: str, index: int = -1) -> dict[str, Any]:
        matching = [args for name, args in self.calls if name == command]
        return matching[index]

    async def close(self) -> None:
        self.closed = True


async def settle(rounds: int = 10) -> None:
    """Let pending tasks on the event loop run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def boundary():
    """Provide a FakeBoundary with a small ledger."""
    return FakeBoundary(
        {
            "open_collection": None,
            "list": [
                {"label": "A", "has_conflict": False},
                {"label": "B", "has_conflict": True},
                {"label": "C", "has_conflict": True},
            ],
            "get_conf_pair": {"local_pw": "local-secret", "remote_pw": "remote-secret"},
            "resolve_conflict": None,
            "read_entry": "s3cret",
            "generate_pw": "Gen3rated!",
            "add_entry": None,
            "regen_pw": None,
            "remove_entry": None,
            "export_ledger": None,
            "push_s": {"pin": "4711"},
            "pull": {"merged": 3},
        }
    )


@pytest.fixture
def session(boundary):
    """Provide a LedgerSession on top of the fake boundary."""
    return LedgerSession(boundary)
