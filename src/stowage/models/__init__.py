"""SQLModel database models for Stowage."""

from stowage.models.files import File, FileBase
from stowage.models.folders import Folder, FolderBase, add_live_name_index

__all__ = [
    "File",
    "FileBase",
    "Folder",
    "FolderBase",
    "add_live_name_index",
]
