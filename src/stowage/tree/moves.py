"""Standalone move/reparent operations.

Each function takes the composed services as parameters and runs its
checks and the mutation inside the caller's session, so the check and
the update commit (or roll back) together.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from stowage.exceptions import (
    CyclicMoveError,
    DestinationTrashedError,
    NameCollisionError,
    NotFoundError,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from stowage.models.files import FileBase
    from stowage.models.folders import FolderBase

    from .ancestry import AncestryService
    from .files import FileService
    from .folders import FolderService

logger = logging.getLogger(__name__)


async def _check_destination(
    session: AsyncSession,
    ancestry: AncestryService,
    entity: str,
    entity_id: str,
    destination_id: str | None,
) -> None:
    """Raise unless *destination_id* is root or an existing live folder."""
    if destination_id is None:
        return
    operation = f"move {entity}"
    destination = await ancestry.get_folder(session, destination_id)
    if destination is None:
        raise NotFoundError("folder", destination_id, operation)
    if not await ancestry.is_live_folder(session, destination_id):
        raise DestinationTrashedError(entity, entity_id, destination_id)


async def move_file(
    session: AsyncSession,
    file_id: str,
    new_folder_id: str | None,
    *,
    ancestry: AncestryService,
    files: FileService,
) -> FileBase:
    """Move a file into *new_folder_id* (``None`` = root)."""
    file = await ancestry.get_file(session, file_id)
    if file is None or file.deleted_at is not None:
        raise NotFoundError("file", file_id, "move file")

    await _check_destination(session, ancestry, "file", file_id, new_folder_id)

    if file.folder_id == new_folder_id:
        return file

    clash = await files.find_in_folder(session, new_folder_id, file.name, exclude_id=file.id)
    if clash is not None:
        raise NameCollisionError("file", new_folder_id, file.name, "move file")

    file.folder_id = new_folder_id
    file.updated_at = datetime.now(UTC)
    await session.flush()
    logger.debug("Moved file %s into %s", file_id, new_folder_id or "root")
    return file


async def move_folder(
    session: AsyncSession,
    folder_id: str,
    new_parent_id: str | None,
    *,
    ancestry: AncestryService,
    folders: FolderService,
) -> FolderBase:
    """Reparent a folder under *new_parent_id* (``None`` = root).

    Only the moved folder's ``parent_id`` changes; descendants follow
    implicitly.  Rejects a destination equal to the folder or inside its
    subtree, found by walking the destination's ancestor chain.
    """
    folder = await ancestry.get_folder(session, folder_id)
    if folder is None or folder.deleted_at is not None:
        raise NotFoundError("folder", folder_id, "move folder")

    if new_parent_id is not None and await ancestry.is_descendant_or_self(
        session, new_parent_id, folder_id
    ):
        raise CyclicMoveError(folder_id, new_parent_id)

    await _check_destination(session, ancestry, "folder", folder_id, new_parent_id)

    if folder.parent_id == new_parent_id:
        return folder

    clash = await folders.find_child(session, new_parent_id, folder.name, exclude_id=folder.id)
    if clash is not None:
        raise NameCollisionError("folder", new_parent_id, folder.name, "move folder")

    folder.parent_id = new_parent_id
    folder.updated_at = datetime.now(UTC)
    await folders.flush_unique(session, new_parent_id, folder.name, "move folder")
    logger.debug("Moved folder %s under %s", folder_id, new_parent_id or "root")
    return folder
