"""ContentStore protocol and a directory-backed implementation.

The tree store never holds file bytes.  It hands them to a content
store and keeps only the returned ``content_ref``; durability is the
content store's concern.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from pathlib import Path
from typing import Protocol, runtime_checkable

from stowage.exceptions import TransportError

logger = logging.getLogger(__name__)


@runtime_checkable
class ContentStore(Protocol):
    """External object store holding file bytes."""

    async def put(self, data: bytes, *, name: str, mime: str) -> str:
        """Store *data* and return an opaque content reference."""
        ...

    async def release(self, content_ref: str) -> None:
        """Release the bytes behind *content_ref*.  Unknown refs are ignored."""
        ...

    async def url(self, content_ref: str) -> str:
        """Return a URL the caller can download the bytes from."""
        ...


class LocalContentStore:
    """Content store keeping one file per reference under *root*.

    References are random hex names, so no caller-supplied text ever
    reaches the host filesystem.  Disk I/O runs in worker threads.
    """

    def __init__(self, root: Path | str, url_base: str | None = None) -> None:
        self.root = Path(root).resolve()
        self.url_base = url_base.rstrip("/") if url_base else None
        self.root.mkdir(parents=True, exist_ok=True)

    def _path_for(self, content_ref: str) -> Path:
        if not content_ref or not all(c in "0123456789abcdef" for c in content_ref):
            raise TransportError(f"Malformed content reference: {content_ref!r}")
        return self.root / content_ref[:2] / content_ref

    async def put(self, data: bytes, *, name: str, mime: str) -> str:
        content_ref = uuid.uuid4().hex
        target = self._path_for(content_ref)

        def _do_write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)

        try:
            await asyncio.to_thread(_do_write)
        except OSError as e:
            raise TransportError(f"Failed to store content for {name}: {e}") from e
        logger.debug("Stored %d bytes for %s (%s) as %s", len(data), name, mime, content_ref)
        return content_ref

    async def release(self, content_ref: str) -> None:
        target = self._path_for(content_ref)
        try:
            await asyncio.to_thread(target.unlink, True)
        except OSError as e:
            raise TransportError(f"Failed to release content {content_ref}: {e}") from e

    async def url(self, content_ref: str) -> str:
        target = self._path_for(content_ref)
        exists = await asyncio.to_thread(target.is_file)
        if not exists:
            raise TransportError(f"Content missing from store: {content_ref}")
        if self.url_base:
            return f"{self.url_base}/{content_ref}"
        return target.as_uri()

    async def read(self, content_ref: str) -> bytes:
        """Return the stored bytes (used by tests and local tooling)."""
        target = self._path_for(content_ref)
        try:
            return await asyncio.to_thread(target.read_bytes)
        except OSError as e:
            raise TransportError(f"Failed to read content {content_ref}: {e}") from e
