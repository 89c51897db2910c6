"""Exception hierarchy for the Stowage workspace layer."""

from __future__ import annotations


class StowageError(Exception):
    """Base exception for all Stowage errors."""


class NotFoundError(StowageError):
    """Raised when a folder or file id does not exist (or is not addressable)."""

    def __init__(self, entity: str, entity_id: str | None, operation: str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        self.operation = operation
        super().__init__(f"{entity.capitalize()} not found: {entity_id} ({operation})")


class ParentNotFoundError(NotFoundError):
    """Raised when the parent of a new folder or file is absent or not live."""


class NameCollisionError(StowageError):
    """Raised when a live sibling of the same type already uses a name."""

    def __init__(
        self, entity: str, parent_id: str | None, name: str, operation: str
    ) -> None:
        self.entity = entity
        self.parent_id = parent_id
        self.name = name
        self.operation = operation
        scope = parent_id or "root"
        super().__init__(f"A {entity} named {name!r} already exists in {scope} ({operation})")


class CyclicMoveError(StowageError):
    """Raised when a folder would be moved into itself or one of its descendants."""

    def __init__(self, folder_id: str, new_parent_id: str) -> None:
        self.folder_id = folder_id
        self.new_parent_id = new_parent_id
        super().__init__(
            f"Cannot move folder {folder_id} into its own subtree (destination {new_parent_id})"
        )


class DestinationTrashedError(StowageError):
    """Raised when a move targets a trashed folder."""

    def __init__(self, entity: str, entity_id: str, destination_id: str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        self.destination_id = destination_id
        super().__init__(
            f"Cannot move {entity} {entity_id}: destination {destination_id} is in the trash"
        )


class NotTrashedError(StowageError):
    """Raised when restore or hard-delete is called on a live entity."""

    def __init__(self, entity: str, entity_id: str, operation: str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        self.operation = operation
        super().__init__(f"{entity.capitalize()} {entity_id} is not in the trash ({operation})")


class FolderCreationRaceError(StowageError):
    """Raised when a folder vanished between a collision and the follow-up lookup."""

    def __init__(self, parent_id: str | None, name: str) -> None:
        self.parent_id = parent_id
        self.name = name
        super().__init__(
            f"Folder {name!r} under {parent_id or 'root'} collided on create "
            "but could not be found afterwards"
        )


class TransportError(StowageError):
    """Raised on network or storage I/O failures."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        self.status = status
        super().__init__(message if status is None else f"HTTP {status}: {message}")


class RequestRejectedError(TransportError):
    """Raised when a remote store rejects a request with a 4xx status.

    404 and 409 map to ``NotFoundError`` and ``NameCollisionError``
    instead.
    """


class InvalidNameError(StowageError, ValueError):
    """Raised for folder or file names that cannot be stored."""


class InvalidPathError(StowageError, ValueError):
    """Raised for relative paths that cannot be ingested."""


class ConsistencyError(StowageError):
    """Raised when stored data breaks a tree invariant (e.g. a parent cycle)."""
