"""FileService — upload, rename, listing and download links for file records."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlmodel import select

from stowage.exceptions import (
    NameCollisionError,
    NotFoundError,
    ParentNotFoundError,
    TransportError,
)

from .utils import guess_mime_type, sorted_by_name, validate_name

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from stowage.models.files import FileBase

    from .ancestry import AncestryService
    from .content import ContentStore

logger = logging.getLogger(__name__)


class FileService:
    """File record operations; bytes go through the composed ``ContentStore``."""

    def __init__(
        self,
        file_model: type[FileBase],
        ancestry: AncestryService,
        content: ContentStore,
    ) -> None:
        self._file_model = file_model
        self._ancestry = ancestry
        self._content = content

    @property
    def owner(self) -> str:
        return self._ancestry.owner

    async def find_in_folder(
        self,
        session: AsyncSession,
        folder_id: str | None,
        name: str,
        *,
        exclude_id: str | None = None,
    ) -> FileBase | None:
        """Return a live file in *folder_id* named exactly *name*."""
        model = self._file_model
        query = select(model).where(
            model.owner == self.owner,
            model.name == name,
            model.deleted_at.is_(None),  # type: ignore[union-attr]
        )
        if folder_id is None:
            query = query.where(model.folder_id.is_(None))  # type: ignore[union-attr]
        else:
            query = query.where(model.folder_id == folder_id)
        if exclude_id is not None:
            query = query.where(model.id != exclude_id)
        result = await session.execute(query)
        return result.scalars().first()

    async def list_in_folder(
        self, session: AsyncSession, folder_id: str | None
    ) -> list[FileBase]:
        """List live files in *folder_id*; empty when the folder is not live."""
        if folder_id is not None:
            await self._ancestry.require_folder(session, folder_id, "list files")
            if not await self._ancestry.is_live_folder(session, folder_id):
                return []

        model = self._file_model
        query = select(model).where(
            model.owner == self.owner,
            model.deleted_at.is_(None),  # type: ignore[union-attr]
        )
        if folder_id is None:
            query = query.where(model.folder_id.is_(None))  # type: ignore[union-attr]
        else:
            query = query.where(model.folder_id == folder_id)
        result = await session.execute(query)
        return sorted_by_name(result.scalars().all())

    async def upload(
        self,
        session: AsyncSession,
        folder_id: str | None,
        name: str,
        data: bytes,
        mime: str | None = None,
    ) -> FileBase:
        """Store *data* and record it as *name* in *folder_id*.

        Same-named files are allowed; uploads never replace.
        """
        validate_name(name)
        if folder_id is not None and not await self._ancestry.is_live_folder(
            session, folder_id
        ):
            raise ParentNotFoundError("folder", folder_id, "upload file")

        mime = mime or guess_mime_type(name)
        content_ref = await self._content.put(data, name=name, mime=mime)

        file = self._file_model(
            name=name,
            folder_id=folder_id,
            mime=mime,
            size=len(data),
            content_ref=content_ref,
            owner=self.owner,
        )
        session.add(file)
        try:
            await session.flush()
        except Exception:
            await self.discard_content(content_ref)
            raise
        logger.debug(
            "Uploaded %s (%r, %d bytes) into %s", file.id, name, len(data), folder_id or "root"
        )
        return file

    async def discard_content(self, content_ref: str) -> None:
        """Release bytes whose record never committed.

        Called while another error is propagating, so a release failure
        is logged and that original error wins.
        """
        try:
            await self._content.release(content_ref)
        except TransportError:
            logger.warning("Failed to discard orphaned content %s", content_ref, exc_info=True)

    async def rename(self, session: AsyncSession, file_id: str, name: str) -> FileBase:
        """Rename a non-trashed file, keeping its folder."""
        validate_name(name)

        file = await self._ancestry.get_file(session, file_id)
        if file is None or file.deleted_at is not None:
            raise NotFoundError("file", file_id, "rename file")
        if file.name == name:
            return file

        clash = await self.find_in_folder(session, file.folder_id, name, exclude_id=file.id)
        if clash is not None:
            raise NameCollisionError("file", file.folder_id, name, "rename file")

        file.name = name
        file.updated_at = datetime.now(UTC)
        await session.flush()
        return file

    async def download_url(self, session: AsyncSession, file_id: str) -> str:
        """Return the content store URL for a live file."""
        file = await self._ancestry.get_file(session, file_id)
        if (
            file is None
            or file.deleted_at is not None
            or file.content_ref is None
            or not await self._ancestry.is_live_folder(session, file.folder_id)
        ):
            raise NotFoundError("file", file_id, "download file")
        return await self._content.url(file.content_ref)
