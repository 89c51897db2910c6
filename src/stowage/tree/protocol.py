"""TreeStore protocol — the interface the resolver and ingestion build on.

Implemented by ``DatabaseTreeStore`` (authoritative SQL tree) and
``HttpTreeStore`` (client for a remote deployment).  ``None`` as a
parent or folder id always means the root scope.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .types import FileInfo, FolderInfo, TrashListing


@runtime_checkable
class TreeStore(Protocol):
    """Folder/file hierarchy with a trash lifecycle."""

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def open(self) -> None:
        """Acquire resources.  No-op if not needed."""
        ...

    async def close(self) -> None:
        """Release resources."""
        ...

    # ------------------------------------------------------------------
    # Browse
    # ------------------------------------------------------------------

    async def list_folders(self, parent_id: str | None = None) -> list[FolderInfo]: ...

    async def list_files(self, folder_id: str | None = None) -> list[FileInfo]: ...

    async def find_child_folder_by_name(
        self, parent_id: str | None, name: str
    ) -> FolderInfo | None: ...

    async def download_url(self, file_id: str) -> str: ...

    # ------------------------------------------------------------------
    # Create / rename
    # ------------------------------------------------------------------

    async def create_folder(self, parent_id: str | None, name: str) -> FolderInfo: ...

    async def rename_folder(self, folder_id: str, name: str) -> FolderInfo: ...

    async def upload_file(
        self,
        folder_id: str | None,
        name: str,
        data: bytes,
        mime: str | None = None,
    ) -> FileInfo: ...

    async def rename_file(self, file_id: str, name: str) -> FileInfo: ...

    # ------------------------------------------------------------------
    # Move
    # ------------------------------------------------------------------

    async def move_folder(self, folder_id: str, new_parent_id: str | None) -> FolderInfo: ...

    async def move_file(self, file_id: str, new_folder_id: str | None) -> FileInfo: ...

    # ------------------------------------------------------------------
    # Trash
    # ------------------------------------------------------------------

    async def soft_delete_folder(self, folder_id: str) -> None: ...

    async def soft_delete_file(self, file_id: str) -> None: ...

    async def list_trash(self) -> TrashListing: ...

    async def restore_folder(self, folder_id: str) -> None: ...

    async def restore_file(self, file_id: str) -> None: ...

    async def hard_delete_folder(self, folder_id: str) -> None: ...

    async def hard_delete_file(self, file_id: str) -> None: ...
