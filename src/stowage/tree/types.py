"""Record types returned by tree stores."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime


@dataclass
class FolderInfo:
    """Folder metadata."""

    id: str
    name: str
    parent_id: str | None = None
    owner: str | None = None
    created_at: datetime | None = None
    deleted_at: datetime | None = None

    @property
    def is_trashed(self) -> bool:
        return self.deleted_at is not None


@dataclass
class FileInfo:
    """File metadata. ``content_ref`` is an opaque content store handle."""

    id: str
    name: str
    folder_id: str | None = None
    mime: str = "application/octet-stream"
    size: int = 0
    content_ref: str | None = None
    owner: str | None = None
    created_at: datetime | None = None
    deleted_at: datetime | None = None

    @property
    def is_trashed(self) -> bool:
        return self.deleted_at is not None


@dataclass
class TrashListing:
    """Roots of trashed subtrees, as shown in the trash view."""

    folders: list[FolderInfo] = field(default_factory=list)
    files: list[FileInfo] = field(default_factory=list)
