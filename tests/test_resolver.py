"""Tests for PathResolver: reuse, creation, single-flight and race recovery."""

from __future__ import annotations

import asyncio
import uuid

import pytest

from stowage.exceptions import (
    FolderCreationRaceError,
    NameCollisionError,
    ParentNotFoundError,
    TransportError,
)
from stowage.ingest.resolver import PathResolver
from stowage.tree.types import FolderInfo

# =========================================================================
# Helpers
# =========================================================================


class _Abort(BaseException):
    """Non-Exception failure, like KeyboardInterrupt, raised mid-resolution."""


class _FakeFolderStore:
    """In-memory folder tree that yields to the loop on every call.

    Only the methods the resolver uses are implemented.  ``hidden``
    names are invisible to lookups while still colliding on create,
    which simulates a folder created by another session.
    """

    def __init__(self) -> None:
        self.folders: dict[str, FolderInfo] = {}
        self.hidden: set[tuple[str | None, str]] = set()
        self.lookup_calls: list[tuple[str | None, str]] = []
        self.create_calls: list[tuple[str | None, str]] = []
        self.fail_create: Exception | None = None

    def _find(self, parent_id: str | None, name: str) -> FolderInfo | None:
        for folder in self.folders.values():
            if folder.parent_id == parent_id and folder.name == name:
                return folder
        return None

    def add(self, parent_id: str | None, name: str) -> FolderInfo:
        folder = FolderInfo(id=str(uuid.uuid4()), name=name, parent_id=parent_id)
        self.folders[folder.id] = folder
        return folder

    async def find_child_folder_by_name(
        self, parent_id: str | None, name: str
    ) -> FolderInfo | None:
        self.lookup_calls.append((parent_id, name))
        await asyncio.sleep(0)
        if (parent_id, name) in self.hidden:
            return None
        return self._find(parent_id, name)

    async def create_folder(self, parent_id: str | None, name: str) -> FolderInfo:
        self.create_calls.append((parent_id, name))
        await asyncio.sleep(0)
        if self.fail_create is not None:
            raise self.fail_create
        if parent_id is not None and parent_id not in self.folders:
            raise ParentNotFoundError("folder", parent_id, "create folder")
        if self._find(parent_id, name) is not None:
            raise NameCollisionError("folder", parent_id, name, "create folder")
        return self.add(parent_id, name)


# =========================================================================
# Sequential resolution
# =========================================================================


class TestResolve:
    async def test_empty_segments_returns_basis(self) -> None:
        store = _FakeFolderStore()
        resolver = PathResolver(store)  # type: ignore[arg-type]
        assert await resolver.resolve("basis", []) == "basis"
        assert await resolver.resolve(None, []) is None
        assert store.lookup_calls == []

    async def test_creates_missing_segments(self) -> None:
        store = _FakeFolderStore()
        resolver = PathResolver(store)  # type: ignore[arg-type]
        leaf_id = await resolver.resolve(None, ["A", "B", "C"])
        leaf = store.folders[leaf_id]
        b = store.folders[leaf.parent_id]
        a = store.folders[b.parent_id]
        assert (a.name, b.name, leaf.name) == ("A", "B", "C")
        assert a.parent_id is None
        assert resolver.creations == 3
        assert [f.name for f in resolver.created] == ["A", "B", "C"]

    async def test_reuses_existing(self) -> None:
        store = _FakeFolderStore()
        a = store.add(None, "A")
        resolver = PathResolver(store)  # type: ignore[arg-type]
        b_id = await resolver.resolve(None, ["A", "B"])
        assert store.folders[b_id].parent_id == a.id
        assert store.create_calls == [(a.id, "B")]

    async def test_cache_hit_skips_store(self) -> None:
        store = _FakeFolderStore()
        resolver = PathResolver(store)  # type: ignore[arg-type]
        first = await resolver.resolve(None, ["A", "B"])
        second = await resolver.resolve(None, ["A", "B"])
        assert first == second
        assert resolver.lookups == 2
        assert len(store.lookup_calls) == 2

    async def test_case_sensitive_keys(self) -> None:
        store = _FakeFolderStore()
        resolver = PathResolver(store)  # type: ignore[arg-type]
        upper = await resolver.resolve(None, ["Docs"])
        lower = await resolver.resolve(None, ["docs"])
        assert upper != lower
        assert resolver.creations == 2

    async def test_fresh_resolver_has_empty_cache(self) -> None:
        store = _FakeFolderStore()
        await PathResolver(store).resolve(None, ["A"])  # type: ignore[arg-type]
        second = PathResolver(store)  # type: ignore[arg-type]
        await second.resolve(None, ["A"])
        assert second.lookups == 1
        assert second.creations == 0


# =========================================================================
# Single flight
# =========================================================================


class TestSingleFlight:
    async def test_concurrent_identical_paths(self) -> None:
        store = _FakeFolderStore()
        resolver = PathResolver(store)  # type: ignore[arg-type]
        results = await asyncio.gather(
            *(resolver.resolve(None, ["A", "B"]) for _ in range(10))
        )
        assert len(set(results)) == 1
        assert store.create_calls.count((None, "A")) == 1
        assert len(store.create_calls) == 2
        assert len(store.lookup_calls) == 2

    async def test_concurrent_shared_prefix(self) -> None:
        store = _FakeFolderStore()
        resolver = PathResolver(store)  # type: ignore[arg-type]
        paths = [["A"], ["A", "B"], ["A", "B"], ["A", "C"], ["A", "B", "D"]]
        await asyncio.gather(*(resolver.resolve(None, p) for p in paths))
        names = sorted(name for _, name in store.create_calls)
        assert names == ["A", "B", "C", "D"]
        assert len(store.folders) == 4

    async def test_failure_shared_with_waiters(self) -> None:
        store = _FakeFolderStore()
        store.fail_create = TransportError("boom", status=503)
        resolver = PathResolver(store)  # type: ignore[arg-type]
        results = await asyncio.gather(
            *(resolver.resolve(None, ["A", "B"]) for _ in range(3)),
            return_exceptions=True,
        )
        assert all(isinstance(r, TransportError) for r in results)
        assert len(store.create_calls) == 1

    async def test_base_exception_cancels_waiters(self) -> None:
        store = _FakeFolderStore()
        store.fail_create = _Abort()  # type: ignore[assignment]
        resolver = PathResolver(store)  # type: ignore[arg-type]
        leader = asyncio.create_task(resolver.resolve_child(None, "A"))
        await asyncio.sleep(0)
        waiter = asyncio.create_task(resolver.resolve_child(None, "A"))

        with pytest.raises(_Abort):
            await leader
        done, _ = await asyncio.wait([waiter], timeout=1)
        assert waiter in done
        assert waiter.cancelled()
        assert resolver._inflight == {}

    async def test_resolves_again_after_cancellation(self) -> None:
        store = _FakeFolderStore()
        resolver = PathResolver(store)  # type: ignore[arg-type]
        task = asyncio.create_task(resolver.resolve_child(None, "A"))
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        folder_id = await resolver.resolve_child(None, "A")
        assert store.folders[folder_id].name == "A"


# =========================================================================
# Race recovery
# =========================================================================


class TestRaceRecovery:
    async def test_collision_then_lookup_reuses(self) -> None:
        store = _FakeFolderStore()
        existing = store.add(None, "A")
        store.hidden.add((None, "A"))

        original = store.find_child_folder_by_name
        calls = 0

        async def find_once_hidden(parent_id: str | None, name: str) -> FolderInfo | None:
            nonlocal calls
            calls += 1
            if calls > 1:
                store.hidden.clear()
            return await original(parent_id, name)

        store.find_child_folder_by_name = find_once_hidden  # type: ignore[method-assign]
        resolver = PathResolver(store)  # type: ignore[arg-type]

        assert await resolver.resolve(None, ["A"]) == existing.id
        assert resolver.lookups == 2
        assert resolver.creations == 1
        assert resolver.created == []

    async def test_collision_and_still_missing(self) -> None:
        store = _FakeFolderStore()
        store.add(None, "A")
        store.hidden.add((None, "A"))
        resolver = PathResolver(store)  # type: ignore[arg-type]

        with pytest.raises(FolderCreationRaceError):
            await resolver.resolve(None, ["A", "B"])

    async def test_failure_memoized_for_batch(self) -> None:
        store = _FakeFolderStore()
        store.add(None, "A")
        store.hidden.add((None, "A"))
        resolver = PathResolver(store)  # type: ignore[arg-type]

        with pytest.raises(FolderCreationRaceError):
            await resolver.resolve(None, ["A"])
        calls_before = len(store.lookup_calls) + len(store.create_calls)
        with pytest.raises(FolderCreationRaceError):
            await resolver.resolve(None, ["A", "B"])
        assert len(store.lookup_calls) + len(store.create_calls) == calls_before

    async def test_other_errors_propagate(self) -> None:
        store = _FakeFolderStore()
        resolver = PathResolver(store)  # type: ignore[arg-type]
        with pytest.raises(ParentNotFoundError):
            await resolver.resolve("gone", ["A"])
