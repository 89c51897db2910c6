"""FolderService — folder creation, rename, lookup by name, listing."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from stowage.exceptions import NameCollisionError, NotFoundError, ParentNotFoundError

from .dialect import is_unique_violation
from .utils import sorted_by_name, validate_name

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from stowage.models.folders import FolderBase

    from .ancestry import AncestryService

logger = logging.getLogger(__name__)


class FolderService:
    """Folder CRUD scoped to the owner of the composed ``AncestryService``.

    Sibling uniqueness is checked up front for a clear error, and again
    by the partial unique index when the insert is flushed, so two
    sessions racing on the same ``(parent, name)`` cannot both win.
    """

    def __init__(
        self,
        folder_model: type[FolderBase],
        ancestry: AncestryService,
        dialect: str = "sqlite",
    ) -> None:
        self._folder_model = folder_model
        self._ancestry = ancestry
        self.dialect = dialect

    @property
    def owner(self) -> str:
        return self._ancestry.owner

    async def find_child(
        self,
        session: AsyncSession,
        parent_id: str | None,
        name: str,
        *,
        exclude_id: str | None = None,
    ) -> FolderBase | None:
        """Return the live child folder of *parent_id* named exactly *name*."""
        model = self._folder_model
        query = select(model).where(
            model.owner == self.owner,
            model.name == name,
            model.deleted_at.is_(None),  # type: ignore[union-attr]
        )
        if parent_id is None:
            query = query.where(model.parent_id.is_(None))  # type: ignore[union-attr]
        else:
            query = query.where(model.parent_id == parent_id)
        if exclude_id is not None:
            query = query.where(model.id != exclude_id)
        result = await session.execute(query)
        return result.scalars().first()

    async def list_children(
        self, session: AsyncSession, parent_id: str | None
    ) -> list[FolderBase]:
        """List live child folders of *parent_id*.

        Raises ``NotFoundError`` for an unknown parent; a trashed parent
        (or one below a trashed ancestor) lists as empty.
        """
        if parent_id is not None:
            await self._ancestry.require_folder(session, parent_id, "list folders")
            if not await self._ancestry.is_live_folder(session, parent_id):
                return []

        model = self._folder_model
        query = select(model).where(
            model.owner == self.owner,
            model.deleted_at.is_(None),  # type: ignore[union-attr]
        )
        if parent_id is None:
            query = query.where(model.parent_id.is_(None))  # type: ignore[union-attr]
        else:
            query = query.where(model.parent_id == parent_id)
        result = await session.execute(query)
        return sorted_by_name(result.scalars().all())

    async def create(
        self, session: AsyncSession, parent_id: str | None, name: str
    ) -> FolderBase:
        """Create a folder named *name* under *parent_id* (``None`` = root)."""
        validate_name(name)

        if parent_id is not None and not await self._ancestry.is_live_folder(
            session, parent_id
        ):
            raise ParentNotFoundError("folder", parent_id, "create folder")

        if await self.find_child(session, parent_id, name) is not None:
            raise NameCollisionError("folder", parent_id, name, "create folder")

        folder = self._folder_model(name=name, parent_id=parent_id, owner=self.owner)
        session.add(folder)
        await self.flush_unique(session, parent_id, name, "create folder")
        logger.debug("Created folder %s (%r) under %s", folder.id, name, parent_id or "root")
        return folder

    async def rename(self, session: AsyncSession, folder_id: str, name: str) -> FolderBase:
        """Rename a non-trashed folder, keeping its parent."""
        validate_name(name)

        folder = await self._ancestry.get_folder(session, folder_id)
        if folder is None or folder.deleted_at is not None:
            raise NotFoundError("folder", folder_id, "rename folder")
        if folder.name == name:
            return folder

        clash = await self.find_child(session, folder.parent_id, name, exclude_id=folder.id)
        if clash is not None:
            raise NameCollisionError("folder", folder.parent_id, name, "rename folder")

        folder.name = name
        folder.updated_at = datetime.now(UTC)
        await self.flush_unique(session, folder.parent_id, name, "rename folder")
        return folder

    async def flush_unique(
        self,
        session: AsyncSession,
        parent_id: str | None,
        name: str,
        operation: str,
    ) -> None:
        """Flush pending changes, translating a uniqueness violation.

        Only unique-index failures (as recognised for ``self.dialect``)
        become ``NameCollisionError``; any other ``IntegrityError`` is
        re-raised unchanged.  The session is unusable after either; the
        caller's session scope rolls it back when the error propagates.
        """
        try:
            await session.flush()
        except IntegrityError as e:
            if not is_unique_violation(e, self.dialect):
                raise
            logger.debug("Unique index rejected %r under %s", name, parent_id or "root")
            raise NameCollisionError("folder", parent_id, name, operation) from e
