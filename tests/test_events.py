"""Tests for EventBus, event types, and store event emission."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from stowage.events import EventBus, EventType, IngestEvent, TreeEvent
from stowage.exceptions import NameCollisionError

if TYPE_CHECKING:
    from stowage.tree.database import DatabaseTreeStore


# =========================================================================
# Helpers
# =========================================================================


async def _collecting_handler(events: list[TreeEvent], event: TreeEvent) -> None:
    """Append event to a list for assertion."""
    events.append(event)


async def _failing_handler(event: TreeEvent) -> None:
    """Handler that always raises."""
    raise RuntimeError(f"boom on {event.entity_id}")


def _collect(bus: EventBus, *event_types: EventType) -> list[TreeEvent]:
    events: list[TreeEvent] = []

    async def handler(event: TreeEvent) -> None:
        await _collecting_handler(events, event)

    for et in event_types or tuple(EventType):
        bus.register(et, handler)
    return events


# =========================================================================
# Event types
# =========================================================================


class TestEventTypes:
    def test_unique_values(self) -> None:
        values = [et.value for et in EventType]
        assert len(values) == len(set(values))

    def test_tree_event_is_frozen(self) -> None:
        ev = TreeEvent(EventType.RENAMED, "folder", "f1", name="Docs")
        with pytest.raises(AttributeError):
            ev.name = "Other"  # type: ignore[misc]

    def test_ingest_progress_text(self) -> None:
        ev = IngestEvent(EventType.INGEST_PROGRESS, index=2, total=7)
        assert ev.progress == "2 of 7"


# =========================================================================
# EventBus
# =========================================================================


class TestEventBus:
    async def test_dispatch_by_type(self) -> None:
        bus = EventBus()
        renamed = _collect(bus, EventType.RENAMED)
        await bus.emit(TreeEvent(EventType.RENAMED, "file", "x1"))
        await bus.emit(TreeEvent(EventType.MOVED, "file", "x1"))
        assert [e.event_type for e in renamed] == [EventType.RENAMED]

    async def test_unregister(self) -> None:
        bus = EventBus()

        async def handler(event: TreeEvent) -> None: ...

        bus.register(EventType.TRASHED, handler)
        assert bus.handler_count == 1
        assert bus.unregister(EventType.TRASHED, handler)
        assert not bus.unregister(EventType.TRASHED, handler)
        assert bus.handler_count == 0

    async def test_clear(self) -> None:
        bus = EventBus()
        _collect(bus)
        assert bus.handler_count == len(EventType)
        bus.clear()
        assert bus.handler_count == 0

    async def test_failing_handler_is_logged_not_raised(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        bus = EventBus()
        bus.register(EventType.PURGED, _failing_handler)
        after = _collect(bus, EventType.PURGED)
        with caplog.at_level(logging.WARNING, logger="stowage.events"):
            await bus.emit(TreeEvent(EventType.PURGED, "folder", "f1"))
        assert len(after) == 1
        assert "purged" in caplog.text


# =========================================================================
# Store emission
# =========================================================================


class TestStoreEvents:
    async def test_mutations_emit_after_commit(
        self, store: DatabaseTreeStore, event_bus: EventBus
    ) -> None:
        events = _collect(event_bus)
        folder = await store.create_folder(None, "Docs")
        file = await store.upload_file(folder.id, "a.txt", b"x")
        await store.rename_file(file.id, "b.txt")
        await store.move_file(file.id, None)
        await store.soft_delete_file(file.id)
        await store.restore_file(file.id)
        await store.soft_delete_folder(folder.id)
        await store.hard_delete_folder(folder.id)

        assert [e.event_type for e in events] == [
            EventType.FOLDER_CREATED,
            EventType.FILE_UPLOADED,
            EventType.RENAMED,
            EventType.MOVED,
            EventType.TRASHED,
            EventType.RESTORED,
            EventType.TRASHED,
            EventType.PURGED,
        ]
        assert events[1].parent_id == folder.id
        assert events[2].name == "b.txt"
        assert events[3].parent_id is None
        assert all(e.owner == "alice" for e in events)

    async def test_failed_mutation_emits_nothing(
        self, store: DatabaseTreeStore, event_bus: EventBus
    ) -> None:
        await store.create_folder(None, "Docs")
        events = _collect(event_bus)
        with pytest.raises(NameCollisionError):
            await store.create_folder(None, "Docs")
        assert events == []

    async def test_handler_failure_does_not_undo_mutation(
        self, store: DatabaseTreeStore, event_bus: EventBus
    ) -> None:
        event_bus.register(EventType.FOLDER_CREATED, _failing_handler)
        folder = await store.create_folder(None, "Docs")
        assert (await store.get_folder(folder.id)).name == "Docs"
