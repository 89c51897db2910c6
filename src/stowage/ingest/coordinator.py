"""IngestionCoordinator — path-preserving bulk upload.

Takes a flat batch of ``(relative_path, bytes)`` items from a
directory-style selection and rebuilds its shape under a destination
folder: the top directory is created (or reused) directly under the
destination, every intermediate directory is resolved through one
batch-scoped ``PathResolver``, and files are uploaded one at a time in
input order.  A failing file never rolls back what came before it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from stowage.events import EventType, IngestEvent
from stowage.exceptions import InvalidPathError, StowageError
from stowage.tree.utils import split_relative_path

from .resolver import PathResolver
from .types import IngestOutcome, IngestReport

if TYPE_CHECKING:
    from collections.abc import Sequence

    from stowage.events import EventBus
    from stowage.tree.protocol import TreeStore

    from .types import IngestItem

logger = logging.getLogger(__name__)


class IngestionCoordinator:
    """Drive ingestion batches against a ``TreeStore``.

    The coordinator itself is stateless between batches; every call to
    :meth:`ingest` builds a fresh resolver.
    """

    def __init__(self, store: TreeStore, event_bus: EventBus | None = None) -> None:
        self._store = store
        self._event_bus = event_bus

    async def _emit(self, event: IngestEvent) -> None:
        if self._event_bus is not None:
            await self._event_bus.emit(event)

    async def ingest(
        self,
        items: Sequence[IngestItem],
        destination_id: str | None = None,
        *,
        skip_existing: bool = False,
    ) -> IngestReport:
        """Upload *items* under *destination_id* (``None`` = root).

        With *skip_existing*, a file whose name already exists live in its
        target folder is reported as a successful skip instead of being
        uploaded a second time.
        """
        report = IngestReport(destination_id=destination_id)
        total = len(items)
        if total == 0:
            return report

        resolver = PathResolver(self._store)
        existing_names: dict[str | None, set[str]] = {}

        logger.info("Ingesting %d file(s) into %s", total, destination_id or "root")
        await self._emit(IngestEvent(EventType.INGEST_STARTED, index=0, total=total))

        for index, item in enumerate(items, start=1):
            await self._emit(
                IngestEvent(
                    EventType.INGEST_PROGRESS,
                    index=index,
                    total=total,
                    relative_path=item.relative_path,
                )
            )
            try:
                outcome = await self._ingest_one(
                    item, destination_id, resolver, existing_names, skip_existing
                )
            except StowageError as e:
                logger.warning("Ingest failed for %s: %s", item.relative_path, e)
                outcome = IngestOutcome(
                    relative_path=item.relative_path,
                    success=False,
                    message=str(e),
                    error=e,
                )
            report.outcomes.append(outcome)

        report.folders_created = list(resolver.created)
        logger.info(
            "Ingest into %s finished: %d succeeded, %d failed, %d folder(s) created",
            destination_id or "root",
            report.succeeded,
            report.failed,
            len(report.folders_created),
        )
        await self._emit(
            IngestEvent(
                EventType.INGEST_FINISHED,
                index=total,
                total=total,
                success=report.success,
                message=report.message,
            )
        )
        return report

    async def _ingest_one(
        self,
        item: IngestItem,
        destination_id: str | None,
        resolver: PathResolver,
        existing_names: dict[str | None, set[str]],
        skip_existing: bool,
    ) -> IngestOutcome:
        segments = split_relative_path(item.relative_path)
        if len(segments) < 2:
            raise InvalidPathError(
                f"Expected '<directory>/.../<file>', got {item.relative_path!r}"
            )

        top, *dirs, filename = segments
        top_id = await resolver.resolve_child(destination_id, top)
        folder_id = await resolver.resolve(top_id, dirs)

        if skip_existing:
            names = existing_names.get(folder_id)
            if names is None:
                names = {f.name for f in await self._store.list_files(folder_id)}
                existing_names[folder_id] = names
            if filename in names:
                return IngestOutcome(
                    relative_path=item.relative_path,
                    success=True,
                    message=f"Skipped existing file: {item.relative_path}",
                    skipped=True,
                )

        file = await self._store.upload_file(folder_id, filename, item.data, item.mime)
        if skip_existing:
            existing_names[folder_id].add(filename)
        return IngestOutcome(
            relative_path=item.relative_path,
            success=True,
            message=f"Uploaded: {item.relative_path}",
            file=file,
        )
