"""Tests for LocalContentStore."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from stowage.exceptions import TransportError
from stowage.tree.content import ContentStore, LocalContentStore

if TYPE_CHECKING:
    from pathlib import Path


class TestLocalContentStore:
    def test_satisfies_protocol(self, content: LocalContentStore) -> None:
        assert isinstance(content, ContentStore)

    async def test_put_and_read(self, content: LocalContentStore) -> None:
        ref = await content.put(b"hello", name="a.txt", mime="text/plain")
        assert await content.read(ref) == b"hello"

    async def test_refs_are_unique(self, content: LocalContentStore) -> None:
        a = await content.put(b"same", name="a.txt", mime="text/plain")
        b = await content.put(b"same", name="a.txt", mime="text/plain")
        assert a != b

    async def test_sharded_layout(self, content: LocalContentStore) -> None:
        ref = await content.put(b"x", name="../../etc/passwd", mime="text/plain")
        assert (content.root / ref[:2] / ref).is_file()

    async def test_release(self, content: LocalContentStore) -> None:
        ref = await content.put(b"x", name="a", mime="text/plain")
        await content.release(ref)
        with pytest.raises(TransportError):
            await content.read(ref)

    async def test_release_unknown_is_ignored(self, content: LocalContentStore) -> None:
        await content.release("ab" * 16)

    async def test_malformed_ref(self, content: LocalContentStore) -> None:
        with pytest.raises(TransportError, match="Malformed"):
            await content.release("../escape")

    async def test_file_url(self, content: LocalContentStore) -> None:
        ref = await content.put(b"x", name="a", mime="text/plain")
        url = await content.url(ref)
        assert url.startswith("file://")
        assert url.endswith(ref)

    async def test_url_base(self, tmp_path: Path) -> None:
        store = LocalContentStore(tmp_path, url_base="https://cdn.example.com/blobs/")
        ref = await store.put(b"x", name="a", mime="text/plain")
        assert await store.url(ref) == f"https://cdn.example.com/blobs/{ref}"

    async def test_url_missing_content(self, content: LocalContentStore) -> None:
        with pytest.raises(TransportError, match="missing"):
            await content.url("cd" * 16)
