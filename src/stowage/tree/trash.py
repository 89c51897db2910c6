"""TrashService — soft-delete, trash listing, restore, and hard delete."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy import delete as sa_delete
from sqlmodel import select

from stowage.exceptions import NameCollisionError, NotFoundError, NotTrashedError

from .ancestry import chunked
from .types import TrashListing
from .utils import sorted_by_name

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from stowage.models.files import FileBase
    from stowage.models.folders import FolderBase

    from .ancestry import AncestryService, LiveMemo
    from .folders import FolderService

logger = logging.getLogger(__name__)


class TrashService:
    """Trash lifecycle: ``Live -> Trashed -> {Live, gone}``.

    Soft delete touches only the entity itself; descendants disappear
    from browsing because visibility is computed from the ancestor
    chain.  Hard delete returns the content references it unlinked so
    the caller can release them once the deletion has committed.
    """

    def __init__(
        self,
        folder_model: type[FolderBase],
        file_model: type[FileBase],
        ancestry: AncestryService,
        folders: FolderService,
    ) -> None:
        self._folder_model = folder_model
        self._file_model = file_model
        self._ancestry = ancestry
        self._folders = folders

    @property
    def owner(self) -> str:
        return self._ancestry.owner

    # ------------------------------------------------------------------
    # Soft delete
    # ------------------------------------------------------------------

    async def trash_folder(self, session: AsyncSession, folder_id: str) -> FolderBase:
        folder = await self._ancestry.get_folder(session, folder_id)
        if folder is None or folder.deleted_at is not None:
            raise NotFoundError("folder", folder_id, "trash folder")
        folder.deleted_at = datetime.now(UTC)
        await session.flush()
        return folder

    async def trash_file(self, session: AsyncSession, file_id: str) -> FileBase:
        file = await self._ancestry.get_file(session, file_id)
        if file is None or file.deleted_at is not None:
            raise NotFoundError("file", file_id, "trash file")
        file.deleted_at = datetime.now(UTC)
        await session.flush()
        return file

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    async def list_trash(self, session: AsyncSession) -> TrashListing:
        """List only the roots of trashed subtrees.

        An entity inside an already-trashed folder is left out; it comes
        back or goes away together with that folder.
        """
        memo: LiveMemo = {}

        folder_model = self._folder_model
        result = await session.execute(
            select(folder_model).where(
                folder_model.owner == self.owner,
                folder_model.deleted_at.is_not(None),  # type: ignore[union-attr]
            )
        )
        folders = [
            f
            for f in result.scalars().all()
            if await self._ancestry.is_live_folder(session, f.parent_id, memo)
        ]

        file_model = self._file_model
        result = await session.execute(
            select(file_model).where(
                file_model.owner == self.owner,
                file_model.deleted_at.is_not(None),  # type: ignore[union-attr]
            )
        )
        files = [
            f
            for f in result.scalars().all()
            if await self._ancestry.is_live_folder(session, f.folder_id, memo)
        ]

        return TrashListing(
            folders=[self._ancestry.folder_to_info(f) for f in sorted_by_name(folders)],
            files=[self._ancestry.file_to_info(f) for f in sorted_by_name(files)],
        )

    # ------------------------------------------------------------------
    # Restore
    # ------------------------------------------------------------------

    async def restore_folder(self, session: AsyncSession, folder_id: str) -> FolderBase:
        """Clear the folder's own ``deleted_at``.

        Children trashed on their own before the folder stay trashed.
        """
        folder = await self._ancestry.require_folder(session, folder_id, "restore folder")
        if folder.deleted_at is None:
            raise NotTrashedError("folder", folder_id, "restore folder")

        clash = await self._folders.find_child(
            session, folder.parent_id, folder.name, exclude_id=folder.id
        )
        if clash is not None:
            raise NameCollisionError("folder", folder.parent_id, folder.name, "restore folder")

        folder.deleted_at = None
        folder.updated_at = datetime.now(UTC)
        await self._folders.flush_unique(session, folder.parent_id, folder.name, "restore folder")
        return folder

    async def restore_file(self, session: AsyncSession, file_id: str) -> FileBase:
        file = await self._ancestry.require_file(session, file_id, "restore file")
        if file.deleted_at is None:
            raise NotTrashedError("file", file_id, "restore file")
        file.deleted_at = None
        file.updated_at = datetime.now(UTC)
        await session.flush()
        return file

    # ------------------------------------------------------------------
    # Hard delete
    # ------------------------------------------------------------------

    async def purge_file(self, session: AsyncSession, file_id: str) -> list[str]:
        """Permanently delete a trashed file.  Returns its content reference."""
        file = await self._ancestry.require_file(session, file_id, "hard delete file")
        if file.deleted_at is None:
            raise NotTrashedError("file", file_id, "hard delete file")
        refs = [file.content_ref] if file.content_ref else []
        await session.delete(file)
        await session.flush()
        return refs

    async def purge_folder(self, session: AsyncSession, folder_id: str) -> list[str]:
        """Permanently delete a trashed folder and everything beneath it.

        Descendants are gathered level by level with an explicit
        worklist, whatever their own ``deleted_at``.  Returns the content
        references of every removed file.
        """
        folder = await self._ancestry.require_folder(session, folder_id, "hard delete folder")
        if folder.deleted_at is None:
            raise NotTrashedError("folder", folder_id, "hard delete folder")

        folder_model = self._folder_model
        file_model = self._file_model

        subtree: list[str] = [folder_id]
        seen: set[str] = {folder_id}
        frontier: list[str] = [folder_id]
        while frontier:
            next_frontier: list[str] = []
            for chunk in chunked(frontier):
                result = await session.execute(
                    select(folder_model.id).where(  # type: ignore[arg-type]
                        folder_model.owner == self.owner,
                        folder_model.parent_id.in_(chunk),  # type: ignore[union-attr]
                    )
                )
                for child_id in result.scalars().all():
                    if child_id not in seen:
                        seen.add(child_id)
                        next_frontier.append(child_id)
            subtree.extend(next_frontier)
            frontier = next_frontier

        refs: list[str] = []
        file_count = 0
        for chunk in chunked(subtree):
            result = await session.execute(
                select(file_model.content_ref).where(  # type: ignore[arg-type]
                    file_model.owner == self.owner,
                    file_model.folder_id.in_(chunk),  # type: ignore[union-attr]
                )
            )
            chunk_refs = list(result.scalars().all())
            file_count += len(chunk_refs)
            refs.extend(ref for ref in chunk_refs if ref)
            await session.execute(
                sa_delete(file_model).where(
                    file_model.owner == self.owner,
                    file_model.folder_id.in_(chunk),  # type: ignore[union-attr]
                )
            )

        for chunk in chunked(subtree):
            await session.execute(
                sa_delete(folder_model).where(
                    folder_model.owner == self.owner,
                    folder_model.id.in_(chunk),  # type: ignore[union-attr]
                )
            )
        await session.flush()

        logger.debug(
            "Hard-deleted folder %s: %d folders, %d files", folder_id, len(subtree), file_count
        )
        return refs
