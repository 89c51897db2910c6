"""Tree layer — folder/file hierarchy, moves, trash, content stores."""

from stowage.tree.content import ContentStore, LocalContentStore
from stowage.tree.database import DatabaseTreeStore
from stowage.tree.protocol import TreeStore
from stowage.tree.types import FileInfo, FolderInfo, TrashListing
from stowage.tree.utils import split_relative_path, validate_name

__all__ = [
    "ContentStore",
    "DatabaseTreeStore",
    "FileInfo",
    "FolderInfo",
    "LocalContentStore",
    "TrashListing",
    "TreeStore",
    "split_relative_path",
    "validate_name",
]
