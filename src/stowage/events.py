"""EventBus and event types for tree mutations and ingestion progress."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable


logger = logging.getLogger(__name__)


class EventType(Enum):
    """Kinds of events published by stores and the ingestion coordinator."""

    FOLDER_CREATED = "folder_created"
    FILE_UPLOADED = "file_uploaded"
    RENAMED = "renamed"
    MOVED = "moved"
    TRASHED = "trashed"
    RESTORED = "restored"
    PURGED = "purged"
    INGEST_STARTED = "ingest_started"
    INGEST_PROGRESS = "ingest_progress"
    INGEST_FINISHED = "ingest_finished"


@dataclass(frozen=True, slots=True)
class TreeEvent:
    """Immutable record of a committed tree mutation.

    Attributes:
        event_type: The kind of mutation that occurred.
        entity: ``"folder"`` or ``"file"``.
        entity_id: Id of the affected entity.
        parent_id: Containing folder after the mutation (``None`` = root).
        name: Entity name after the mutation, when known.
        owner: Owner the store is scoped to.
    """

    event_type: EventType
    entity: str
    entity_id: str
    parent_id: str | None = None
    name: str | None = None
    owner: str | None = None


@dataclass(frozen=True, slots=True)
class IngestEvent:
    """Progress of one ingestion batch.

    ``index`` is 1-based, so ``f"{index} of {total}"`` is the caller-visible
    progress text.  For ``INGEST_FINISHED`` it equals ``total``.
    """

    event_type: EventType
    index: int
    total: int
    relative_path: str | None = None
    success: bool | None = None
    message: str = ""

    @property
    def progress(self) -> str:
        return f"{self.index} of {self.total}"


Event = TreeEvent | IngestEvent


class EventBus:
    """Dispatches events to registered async handlers.

    Handlers are called sequentially in registration order.
    Exceptions are logged but never propagated; a failing handler
    never undoes a committed mutation.
    """

    def __init__(self) -> None:
        self._handlers: dict[EventType, list[Callable[..., Any]]] = {et: [] for et in EventType}

    def register(self, event_type: EventType, handler: Callable[..., Any]) -> None:
        """Append *handler* to the list for *event_type*."""
        self._handlers[event_type].append(handler)

    def unregister(self, event_type: EventType, handler: Callable[..., Any]) -> bool:
        """Remove first occurrence of *handler*. Return True if found."""
        handlers = self._handlers[event_type]
        try:
            handlers.remove(handler)
            return True
        except ValueError:
            return False

    async def emit(self, event: Event) -> None:
        """Dispatch *event* to all registered handlers for its type."""
        for handler in self._handlers[event.event_type]:
            try:
                await handler(event)
            except Exception:
                logger.warning(
                    "Handler %r failed for %s",
                    handler,
                    event.event_type.value,
                    exc_info=True,
                )

    @property
    def handler_count(self) -> int:
        """Total number of registered handlers across all event types."""
        return sum(len(h) for h in self._handlers.values())

    def clear(self) -> None:
        """Remove all registered handlers."""
        for handlers in self._handlers.values():
            handlers.clear()
