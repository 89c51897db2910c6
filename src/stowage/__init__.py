"""Stowage: a personal file drive.

Nested folders, files, a recoverable trash, and path-preserving bulk
upload over an async SQL tree store.
"""

__version__ = "0.1.0"

from stowage._workspace import Workspace
from stowage.client import ClientConfig, HttpTreeStore
from stowage.events import EventBus, EventType, IngestEvent, TreeEvent
from stowage.exceptions import (
    ConsistencyError,
    CyclicMoveError,
    DestinationTrashedError,
    FolderCreationRaceError,
    InvalidNameError,
    InvalidPathError,
    NameCollisionError,
    NotFoundError,
    NotTrashedError,
    ParentNotFoundError,
    RequestRejectedError,
    StowageError,
    TransportError,
)
from stowage.ingest import (
    IngestionCoordinator,
    IngestItem,
    IngestOutcome,
    IngestReport,
    PathResolver,
)
from stowage.tree import (
    ContentStore,
    DatabaseTreeStore,
    FileInfo,
    FolderInfo,
    LocalContentStore,
    TrashListing,
    TreeStore,
)

__all__ = [
    "ClientConfig",
    "ConsistencyError",
    "ContentStore",
    "CyclicMoveError",
    "DatabaseTreeStore",
    "DestinationTrashedError",
    "EventBus",
    "EventType",
    "FileInfo",
    "FolderCreationRaceError",
    "FolderInfo",
    "HttpTreeStore",
    "IngestEvent",
    "IngestItem",
    "IngestOutcome",
    "IngestReport",
    "IngestionCoordinator",
    "InvalidNameError",
    "InvalidPathError",
    "LocalContentStore",
    "NameCollisionError",
    "NotFoundError",
    "NotTrashedError",
    "ParentNotFoundError",
    "PathResolver",
    "RequestRejectedError",
    "StowageError",
    "TransportError",
    "TrashListing",
    "TreeEvent",
    "TreeStore",
    "Workspace",
    "__version__",
]
