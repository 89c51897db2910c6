"""AncestryService — record lookup, ancestor walks, computed visibility.

Visibility is never stored: a folder is live when it and every folder
on its ``parent_id`` chain have a null ``deleted_at``.  Walk results may
be memoized inside one call through a caller-owned dict, never across
calls.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlmodel import select

from stowage.exceptions import ConsistencyError, NotFoundError

from .types import FileInfo, FolderInfo

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.ext.asyncio import AsyncSession

    from stowage.models.files import FileBase
    from stowage.models.folders import FolderBase

    LiveMemo = dict[str, bool]


class AncestryService:
    """Stateless helpers for owner-scoped lookups over the folder forest."""

    def __init__(
        self,
        folder_model: type[FolderBase],
        file_model: type[FileBase],
        owner: str,
    ) -> None:
        self._folder_model = folder_model
        self._file_model = file_model
        self.owner = owner

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    async def get_folder(
        self, session: AsyncSession, folder_id: str
    ) -> FolderBase | None:
        """Get a folder row by id, trashed or not."""
        model = self._folder_model
        result = await session.execute(
            select(model).where(model.id == folder_id, model.owner == self.owner)
        )
        return result.scalar_one_or_none()

    async def get_file(self, session: AsyncSession, file_id: str) -> FileBase | None:
        """Get a file row by id, trashed or not."""
        model = self._file_model
        result = await session.execute(
            select(model).where(model.id == file_id, model.owner == self.owner)
        )
        return result.scalar_one_or_none()

    async def require_folder(
        self, session: AsyncSession, folder_id: str, operation: str
    ) -> FolderBase:
        folder = await self.get_folder(session, folder_id)
        if folder is None:
            raise NotFoundError("folder", folder_id, operation)
        return folder

    async def require_file(
        self, session: AsyncSession, file_id: str, operation: str
    ) -> FileBase:
        file = await self.get_file(session, file_id)
        if file is None:
            raise NotFoundError("file", file_id, operation)
        return file

    # ------------------------------------------------------------------
    # Ancestor walks
    # ------------------------------------------------------------------

    async def ancestor_chain(
        self, session: AsyncSession, folder_id: str | None
    ) -> list[FolderBase]:
        """Return the folder at *folder_id* followed by its ancestors up to root.

        Stops early at a dangling ``parent_id``.  A revisited id means the
        forest invariant is broken, which is reported rather than looped on.
        """
        chain: list[FolderBase] = []
        seen: set[str] = set()
        current = folder_id
        while current is not None:
            if current in seen:
                msg = f"Folder cycle detected at {current}"
                raise ConsistencyError(msg)
            seen.add(current)
            folder = await self.get_folder(session, current)
            if folder is None:
                break
            chain.append(folder)
            current = folder.parent_id
        return chain

    async def is_live_folder(
        self,
        session: AsyncSession,
        folder_id: str | None,
        memo: LiveMemo | None = None,
    ) -> bool:
        """True when *folder_id* exists and neither it nor an ancestor is trashed.

        ``None`` (the root scope) is always live.
        """
        if folder_id is None:
            return True
        if memo is None:
            memo = {}
        if folder_id in memo:
            return memo[folder_id]

        walked: list[str] = []
        current: str | None = folder_id
        live = True
        while current is not None:
            if current in memo:
                live = memo[current]
                break
            if current in walked:
                msg = f"Folder cycle detected at {current}"
                raise ConsistencyError(msg)
            walked.append(current)
            folder = await self.get_folder(session, current)
            if folder is None or folder.deleted_at is not None:
                live = False
                break
            current = folder.parent_id

        for fid in walked:
            memo[fid] = live
        return live

    async def is_descendant_or_self(
        self, session: AsyncSession, candidate_id: str, ancestor_id: str
    ) -> bool:
        """True when walking up from *candidate_id* reaches *ancestor_id*."""
        chain = await self.ancestor_chain(session, candidate_id)
        return any(folder.id == ancestor_id for folder in chain)

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    @staticmethod
    def folder_to_info(f: FolderBase) -> FolderInfo:
        return FolderInfo(
            id=f.id,
            name=f.name,
            parent_id=f.parent_id,
            owner=f.owner,
            created_at=f.created_at,
            deleted_at=f.deleted_at,
        )

    @staticmethod
    def file_to_info(f: FileBase) -> FileInfo:
        return FileInfo(
            id=f.id,
            name=f.name,
            folder_id=f.folder_id,
            mime=f.mime,
            size=f.size,
            content_ref=f.content_ref,
            owner=f.owner,
            created_at=f.created_at,
            deleted_at=f.deleted_at,
        )


def chunked(ids: list[str], size: int = 500) -> Iterator[list[str]]:
    """Yield *ids* in slices small enough for an ``IN`` clause."""
    for start in range(0, len(ids), size):
        yield ids[start : start + size]
