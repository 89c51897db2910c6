"""PathResolver — batch-scoped, single-flight folder path materialization.

Maps ``(basis parent, [segment, ...])`` to a folder id, reusing existing
siblings by exact name and creating the ones that are missing.  Each
``(parent_id, name)`` key is resolved at most once per resolver:
concurrent requests for a key in flight await the same future, so
files sharing ancestor directories never race each other into
duplicate siblings.

One resolver serves one ingestion batch.  Its cache is dropped with it;
the tree store stays the source of truth for the next batch.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from stowage.exceptions import FolderCreationRaceError, NameCollisionError, StowageError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from stowage.tree.protocol import TreeStore
    from stowage.tree.types import FolderInfo

    CacheKey = tuple[str | None, str]

logger = logging.getLogger(__name__)


class PathResolver:
    """Resolve relative folder paths against a ``TreeStore``.

    Counters ``lookups`` and ``creations`` record the store calls issued;
    ``created`` lists the folders this resolver created.
    """

    def __init__(self, store: TreeStore) -> None:
        self._store = store
        self._resolved: dict[CacheKey, str] = {}
        self._failed: dict[CacheKey, StowageError] = {}
        self._inflight: dict[CacheKey, asyncio.Future[str]] = {}
        self.lookups = 0
        self.creations = 0
        self.created: list[FolderInfo] = []

    async def resolve(self, basis_parent_id: str | None, segments: Sequence[str]) -> str | None:
        """Walk *segments* under *basis_parent_id* and return the last folder id.

        Empty *segments* returns *basis_parent_id* unchanged.
        """
        current = basis_parent_id
        for name in segments:
            current = await self.resolve_child(current, name)
        return current

    async def resolve_child(self, parent_id: str | None, name: str) -> str:
        """Return the id of the live child *name* of *parent_id*, creating it if needed."""
        key: CacheKey = (parent_id, name)

        cached = self._resolved.get(key)
        if cached is not None:
            return cached
        failure = self._failed.get(key)
        if failure is not None:
            raise failure

        pending = self._inflight.get(key)
        if pending is not None:
            logger.debug("Awaiting in-flight resolution of %r under %s", name, parent_id or "root")
            return await asyncio.shield(pending)

        future: asyncio.Future[str] = asyncio.get_running_loop().create_future()
        self._inflight[key] = future
        try:
            folder_id = await self._lookup_or_create(parent_id, name)
        except Exception as e:
            if isinstance(e, StowageError):
                self._failed[key] = e
            future.set_exception(e)
            future.exception()  # waiters may not exist; mark as retrieved
            raise
        except BaseException:
            # Cancellation and interpreter exits; waiters are cancelled too.
            future.cancel()
            raise
        else:
            self._resolved[key] = folder_id
            future.set_result(folder_id)
            return folder_id
        finally:
            del self._inflight[key]

    async def _lookup_or_create(self, parent_id: str | None, name: str) -> str:
        self.lookups += 1
        existing = await self._store.find_child_folder_by_name(parent_id, name)
        if existing is not None:
            return existing.id

        self.creations += 1
        try:
            folder = await self._store.create_folder(parent_id, name)
        except NameCollisionError:
            # Another session created it between our lookup and create.
            logger.warning(
                "Folder %r under %s was created concurrently; looking it up again",
                name,
                parent_id or "root",
            )
            self.lookups += 1
            existing = await self._store.find_child_folder_by_name(parent_id, name)
            if existing is None:
                raise FolderCreationRaceError(parent_id, name) from None
            return existing.id

        logger.debug("Created folder %r (%s) under %s", name, folder.id, parent_id or "root")
        self.created.append(folder)
        return folder.id
