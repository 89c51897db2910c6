"""DatabaseTreeStore — the authoritative folder/file tree in SQL."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from stowage.events import EventType, TreeEvent
from stowage.exceptions import TransportError

from .ancestry import AncestryService
from .files import FileService
from .folders import FolderService
from .moves import move_file, move_folder
from .trash import TrashService

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Callable

    from sqlalchemy.ext.asyncio import AsyncSession

    from stowage.events import EventBus
    from stowage.models.files import FileBase
    from stowage.models.folders import FolderBase

    from .content import ContentStore
    from .types import FileInfo, FolderInfo, TrashListing

logger = logging.getLogger(__name__)


class DatabaseTreeStore:
    """SQL-backed tree store scoped to one owner.

    Every public operation runs in its own session: commit on success,
    rollback on any exception.  Check-then-mutate steps therefore commit
    atomically, and the partial unique index on folders settles races
    between concurrent stores.  File bytes live in the ``ContentStore``.

    Implements the ``TreeStore`` protocol.
    """

    def __init__(
        self,
        session_factory: Callable[..., AsyncSession],
        content: ContentStore,
        owner: str,
        *,
        dialect: str = "sqlite",
        folder_model: type[FolderBase] | None = None,
        file_model: type[FileBase] | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        from stowage.models.files import File
        from stowage.models.folders import Folder

        fm: type[FolderBase] = folder_model or Folder
        flm: type[FileBase] = file_model or File

        self.dialect = dialect
        self.owner = owner
        self._session_factory = session_factory
        self._content = content
        self._event_bus = event_bus

        # Composed services
        self.ancestry = AncestryService(fm, flm, owner)
        self.folders = FolderService(fm, self.ancestry, dialect)
        self.files = FileService(flm, self.ancestry, content)
        self.trash = TrashService(fm, flm, self.ancestry, self.folders)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def open(self) -> None:
        """No-op — sessions are opened per operation."""

    async def close(self) -> None:
        """No-op — the engine belongs to the caller."""

    async def __aenter__(self) -> DatabaseTreeStore:
        await self.open()
        return self

    async def __aexit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Session / events
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _session(self) -> AsyncGenerator[AsyncSession]:
        session = self._session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def _emit(
        self,
        event_type: EventType,
        entity: str,
        entity_id: str,
        parent_id: str | None = None,
        name: str | None = None,
    ) -> None:
        if self._event_bus is not None:
            await self._event_bus.emit(
                TreeEvent(
                    event_type=event_type,
                    entity=entity,
                    entity_id=entity_id,
                    parent_id=parent_id,
                    name=name,
                    owner=self.owner,
                )
            )

    # ------------------------------------------------------------------
    # Browse
    # ------------------------------------------------------------------

    async def get_folder(self, folder_id: str) -> FolderInfo:
        """Return a folder, trashed or not.  Raises ``NotFoundError``."""
        async with self._session() as session:
            folder = await self.ancestry.require_folder(session, folder_id, "get folder")
            return self.ancestry.folder_to_info(folder)

    async def get_file(self, file_id: str) -> FileInfo:
        """Return a file, trashed or not.  Raises ``NotFoundError``."""
        async with self._session() as session:
            file = await self.ancestry.require_file(session, file_id, "get file")
            return self.ancestry.file_to_info(file)

    async def list_folders(self, parent_id: str | None = None) -> list[FolderInfo]:
        async with self._session() as session:
            children = await self.folders.list_children(session, parent_id)
            return [self.ancestry.folder_to_info(f) for f in children]

    async def list_files(self, folder_id: str | None = None) -> list[FileInfo]:
        async with self._session() as session:
            files = await self.files.list_in_folder(session, folder_id)
            return [self.ancestry.file_to_info(f) for f in files]

    async def find_child_folder_by_name(
        self, parent_id: str | None, name: str
    ) -> FolderInfo | None:
        async with self._session() as session:
            folder = await self.folders.find_child(session, parent_id, name)
            return self.ancestry.folder_to_info(folder) if folder is not None else None

    async def find_file_by_name(self, folder_id: str | None, name: str) -> FileInfo | None:
        """Return a live file in *folder_id* named exactly *name*."""
        async with self._session() as session:
            file = await self.files.find_in_folder(session, folder_id, name)
            return self.ancestry.file_to_info(file) if file is not None else None

    async def download_url(self, file_id: str) -> str:
        async with self._session() as session:
            return await self.files.download_url(session, file_id)

    # ------------------------------------------------------------------
    # Create / rename
    # ------------------------------------------------------------------

    async def create_folder(self, parent_id: str | None, name: str) -> FolderInfo:
        async with self._session() as session:
            folder = await self.folders.create(session, parent_id, name)
            info = self.ancestry.folder_to_info(folder)
        await self._emit(EventType.FOLDER_CREATED, "folder", info.id, info.parent_id, info.name)
        return info

    async def rename_folder(self, folder_id: str, name: str) -> FolderInfo:
        async with self._session() as session:
            folder = await self.folders.rename(session, folder_id, name)
            info = self.ancestry.folder_to_info(folder)
        await self._emit(EventType.RENAMED, "folder", info.id, info.parent_id, info.name)
        return info

    async def upload_file(
        self,
        folder_id: str | None,
        name: str,
        data: bytes,
        mime: str | None = None,
    ) -> FileInfo:
        info: FileInfo | None = None
        try:
            async with self._session() as session:
                file = await self.files.upload(session, folder_id, name, data, mime)
                info = self.ancestry.file_to_info(file)
        except Exception:
            # Flush failures are cleaned up by the service; this covers commit.
            if info is not None and info.content_ref:
                await self.files.discard_content(info.content_ref)
            raise
        await self._emit(EventType.FILE_UPLOADED, "file", info.id, info.folder_id, info.name)
        return info

    async def rename_file(self, file_id: str, name: str) -> FileInfo:
        async with self._session() as session:
            file = await self.files.rename(session, file_id, name)
            info = self.ancestry.file_to_info(file)
        await self._emit(EventType.RENAMED, "file", info.id, info.folder_id, info.name)
        return info

    # ------------------------------------------------------------------
    # Move
    # ------------------------------------------------------------------

    async def move_folder(self, folder_id: str, new_parent_id: str | None) -> FolderInfo:
        async with self._session() as session:
            folder = await move_folder(
                session,
                folder_id,
                new_parent_id,
                ancestry=self.ancestry,
                folders=self.folders,
            )
            info = self.ancestry.folder_to_info(folder)
        await self._emit(EventType.MOVED, "folder", info.id, info.parent_id, info.name)
        return info

    async def move_file(self, file_id: str, new_folder_id: str | None) -> FileInfo:
        async with self._session() as session:
            file = await move_file(
                session,
                file_id,
                new_folder_id,
                ancestry=self.ancestry,
                files=self.files,
            )
            info = self.ancestry.file_to_info(file)
        await self._emit(EventType.MOVED, "file", info.id, info.folder_id, info.name)
        return info

    # ------------------------------------------------------------------
    # Trash
    # ------------------------------------------------------------------

    async def soft_delete_folder(self, folder_id: str) -> None:
        async with self._session() as session:
            folder = await self.trash.trash_folder(session, folder_id)
            parent_id = folder.parent_id
        await self._emit(EventType.TRASHED, "folder", folder_id, parent_id)

    async def soft_delete_file(self, file_id: str) -> None:
        async with self._session() as session:
            file = await self.trash.trash_file(session, file_id)
            folder_id = file.folder_id
        await self._emit(EventType.TRASHED, "file", file_id, folder_id)

    async def list_trash(self) -> TrashListing:
        async with self._session() as session:
            return await self.trash.list_trash(session)

    async def restore_folder(self, folder_id: str) -> None:
        async with self._session() as session:
            folder = await self.trash.restore_folder(session, folder_id)
            parent_id = folder.parent_id
        await self._emit(EventType.RESTORED, "folder", folder_id, parent_id)

    async def restore_file(self, file_id: str) -> None:
        async with self._session() as session:
            file = await self.trash.restore_file(session, file_id)
            folder_id = file.folder_id
        await self._emit(EventType.RESTORED, "file", file_id, folder_id)

    async def hard_delete_folder(self, folder_id: str) -> None:
        async with self._session() as session:
            refs = await self.trash.purge_folder(session, folder_id)
        await self._release(refs)
        await self._emit(EventType.PURGED, "folder", folder_id)

    async def hard_delete_file(self, file_id: str) -> None:
        async with self._session() as session:
            refs = await self.trash.purge_file(session, file_id)
        await self._release(refs)
        await self._emit(EventType.PURGED, "file", file_id)

    async def _release(self, refs: list[str]) -> None:
        """Release content after the rows are gone.

        Every reference is attempted; failures are collected and raised
        together so none are silently lost.  Rows are already deleted, so
        a failure leaves orphaned bytes, never a dangling reference.
        """
        failed: list[str] = []
        for ref in refs:
            try:
                await self._content.release(ref)
            except TransportError:
                logger.warning("Failed to release content %s", ref, exc_info=True)
                failed.append(ref)
        if failed:
            msg = (
                f"Failed to release {len(failed)} of {len(refs)} content reference(s): "
                + ", ".join(failed)
            )
            raise TransportError(msg)
