"""Tests for the lazily loaded metadata cache."""

import asyncio

import pytest

from conftest import FakeBoundary, settle
from pyledger.exceptions import LedgerCommandError, LedgerNetworkError
from pyledger.models import Entry
from pyledger.session.cache import CacheStatus, MetadataCache
from pyledger.session.errors import ErrorChannel


def _cache(boundary):
    return MetadataCache(boundary, ErrorChannel())


class TestMetadataCacheInit:
    """Tests for the initial state."""

    def test_starts_unloaded(self, boundary):
        """A new cache has fetched nothing."""
        cache = _cache(boundary)

        assert cache.read().status == CacheStatus.UNLOADED
        assert cache.read().entries == ()
        assert boundary.calls == []

    @pytest.mark.asyncio
    async def test_wait_without_request_returns_immediately(self, boundary):
        """wait() on an unrequested cache does not fetch."""
        cache = _cache(boundary)

        state = await cache.wait()

        assert state.status == CacheStatus.UNLOADED
        assert boundary.count("list") == 0


class TestLoad:
    """Tests for load()."""

    @pytest.mark.asyncio
    async def test_load_returns_loading_without_blocking(self, boundary):
        """load() hands back the LOADING state before the fetch finished."""
        boundary.hold("list")
        cache = _cache(boundary)

        state = cache.load()

        assert state.status == CacheStatus.LOADING
        await settle()
        assert cache.read().status == CacheStatus.LOADING

        boundary.complete("list", [{"label": "A", "has_conflict": False}])
        state = await cache.wait()
        assert state.status == CacheStatus.LOADED
        assert state.entries == (Entry("A", False),)

    @pytest.mark.asyncio
    async def test_repeated_load_fetches_once(self, boundary):
        """Any number of load() calls issue exactly one list-fetch."""
        cache = _cache(boundary)

        for _ in range(5):
            cache.load()
        await cache.wait()
        for _ in range(5):
            cache.load()
        await cache.wait()

        assert boundary.count("list") == 1

    @pytest.mark.asyncio
    async def test_entries_follow_response_order(self, boundary):
        """Entries keep the order of the list response."""
        cache = _cache(boundary)

        cache.load()
        state = await cache.wait()

        assert state.labels == ["A", "B", "C"]
        assert state.entries[1] == Entry("B", True)

    @pytest.mark.asyncio
    async def test_duplicate_labels_keep_first(self):
        """A label repeated in the response only appears once."""
        boundary = FakeBoundary(
            {
                "list": [
                    {"label": "A", "has_conflict": False},
                    {"label": "A", "has_conflict": True},
                    {"label": "B", "has_conflict": False},
                ]
            }
        )
        cache = _cache(boundary)

        cache.load()
        state = await cache.wait()

        assert state.entries == (Entry("A", False), Entry("B", False))


class TestRefresh:
    """Tests for refresh()."""

    @pytest.mark.asyncio
    async def test_refresh_always_fetches(self, boundary):
        """Each refresh() issues a new list-fetch."""
        cache = _cache(boundary)

        cache.load()
        await cache.wait()
        cache.refresh()
        await cache.wait()
        cache.refresh()
        await cache.wait()

        assert boundary.count("list") == 3

    @pytest.mark.asyncio
    async def test_refresh_supersedes_in_flight_fetch(self, boundary):
        """A late response of a superseded fetch is ignored."""
        boundary.hold("list")
        cache = _cache(boundary)

        cache.load()
        await settle()
        cache.refresh()
        await settle()

        boundary.complete("list", [{"label": "new", "has_conflict": False}], index=1)
        await settle()
        assert cache.read().labels == ["new"]

        boundary.complete("list", [{"label": "old", "has_conflict": True}], index=0)
        await settle()
        assert cache.read().labels == ["new"]
        assert cache.read().status == CacheStatus.LOADED

    @pytest.mark.asyncio
    async def test_loading_keeps_previous_snapshot(self, boundary):
        """While refreshing, the last loaded entries stay readable."""
        cache = _cache(boundary)
        cache.load()
        await cache.wait()

        boundary.hold("list")
        state = cache.refresh()

        assert state.status == CacheStatus.LOADING
        assert state.labels == ["A", "B", "C"]

        await settle()
        boundary.complete("list", [])
        assert (await cache.wait()).entries == ()


class TestFailure:
    """Tests for the fail-soft policy."""

    @pytest.mark.asyncio
    async def test_list_failure_settles_empty(self):
        """A failing list writes the error and settles as an empty load."""
        boundary = FakeBoundary({"list": LedgerCommandError("network down")})
        errors = ErrorChannel()
        cache = MetadataCache(boundary, errors)

        cache.load()
        state = await cache.wait()

        assert errors.message == "network down"
        assert state.status == CacheStatus.LOADED
        assert state.entries == ()
        assert state.error == "network down"

    @pytest.mark.asyncio
    async def test_unknown_error_is_wrapped(self):
        """Errors without a message string are serialized."""
        boundary = FakeBoundary({"list": LedgerNetworkError("boom")})
        errors = ErrorChannel()
        cache = MetadataCache(boundary, errors)

        cache.load()
        await cache.wait()

        assert errors.message.startswith("An unknown error occurred: ")
        assert "LedgerNetworkError" in errors.message

    @pytest.mark.asyncio
    async def test_malformed_response_settles_empty(self):
        """A list response that is not a list is reported, not raised."""
        boundary = FakeBoundary({"list": {"unexpected": True}})
        errors = ErrorChannel()
        cache = MetadataCache(boundary, errors)

        cache.load()
        state = await cache.wait()

        assert state.status == CacheStatus.LOADED
        assert state.entries == ()
        assert errors.writes == 1

    @pytest.mark.asyncio
    async def test_refresh_recovers_after_failure(self):
        """A later refresh replaces the failed snapshot."""
        responses = [LedgerCommandError("network down"), [{"label": "A"}]]
        boundary = FakeBoundary({"list": lambda args: responses.pop(0)})
        cache = _cache(boundary)

        cache.load()
        await cache.wait()
        cache.refresh()
        state = await cache.wait()

        assert state.error is None
        assert state.labels == ["A"]

    @pytest.mark.asyncio
    async def test_raising_listener_does_not_block_settling(self):
        """A failing error listener still lets the cache settle."""
        boundary = FakeBoundary({"list": LedgerCommandError("network down")})
        errors = ErrorChannel()

        def broken_listener(message):
            raise RuntimeError("ui broke")

        errors.subscribe(broken_listener)
        cache = MetadataCache(boundary, errors)

        cache.load()
        state = await cache.wait()

        assert state.status == CacheStatus.LOADED
        assert state.error == "network down"
        assert errors.message == "network down"


class TestDrain:
    """Tests for drain()."""

    @pytest.mark.asyncio
    async def test_drain_waits_for_superseded_fetch(self, boundary):
        """drain() also waits for fetches whose response will be ignored."""
        boundary.hold("list")
        cache = _cache(boundary)

        cache.load()
        await settle()
        cache.refresh()
        await settle()
        boundary.complete("list", [], index=1)
        await cache.wait()

        draining = asyncio.ensure_future(cache.drain())
        await settle()
        assert not draining.done()

        boundary.complete("list", [{"label": "old"}], index=0)
        await draining
        assert cache.read().entries == ()
