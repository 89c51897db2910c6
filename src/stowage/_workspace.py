"""Workspace — async facade wiring the tree store, events, and ingestion."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from stowage.events import EventBus
from stowage.ingest.coordinator import IngestionCoordinator
from stowage.models.files import File
from stowage.models.folders import Folder
from stowage.tree.database import DatabaseTreeStore
from stowage.tree.dialect import get_dialect

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncEngine

    from stowage.ingest.types import IngestItem, IngestReport
    from stowage.models.files import FileBase
    from stowage.models.folders import FolderBase
    from stowage.tree.content import ContentStore

logger = logging.getLogger(__name__)


class Workspace:
    """One owner's drive: a ``DatabaseTreeStore`` plus bulk ingestion.

    Usage::

        engine = create_async_engine("sqlite+aiosqlite:///drive.db")
        ws = Workspace(engine=engine, content=LocalContentStore("/srv/blobs"), owner="alice")
        await ws.open()
        report = await ws.ingest([IngestItem("Photos/beach.jpg", data)])
        await ws.close()

    Tables are created on :meth:`open` if they do not exist.  The engine
    belongs to the caller and is not disposed by :meth:`close`.
    """

    def __init__(
        self,
        *,
        engine: AsyncEngine,
        content: ContentStore,
        owner: str,
        folder_model: type[FolderBase] | None = None,
        file_model: type[FileBase] | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self._engine = engine
        self._folder_model: type[FolderBase] = folder_model or Folder
        self._file_model: type[FileBase] = file_model or File
        self._event_bus = event_bus or EventBus()
        self._opened = False
        self._closed = False

        session_factory = async_sessionmaker(
            engine, class_=AsyncSession, expire_on_commit=False
        )
        self._store = DatabaseTreeStore(
            session_factory,
            content,
            owner,
            dialect=get_dialect(engine),
            folder_model=self._folder_model,
            file_model=self._file_model,
            event_bus=self._event_bus,
        )
        self._coordinator = IngestionCoordinator(self._store, self._event_bus)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def open(self) -> None:
        if self._opened:
            return
        fm = self._folder_model
        flm = self._file_model
        async with self._engine.begin() as conn:
            await conn.run_sync(
                lambda c: fm.__table__.create(c, checkfirst=True)  # type: ignore[attr-defined]
            )
            await conn.run_sync(
                lambda c: flm.__table__.create(c, checkfirst=True)  # type: ignore[attr-defined]
            )
        await self._store.open()
        self._opened = True
        logger.debug("Workspace opened for owner %s", self._store.owner)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._store.close()

    async def __aenter__(self) -> Workspace:
        await self.open()
        return self

    async def __aexit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    async def ingest(
        self,
        items: Sequence[IngestItem],
        destination_id: str | None = None,
        *,
        skip_existing: bool = False,
    ) -> IngestReport:
        """Upload a directory-style selection under *destination_id*."""
        return await self._coordinator.ingest(
            items, destination_id, skip_existing=skip_existing
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def store(self) -> DatabaseTreeStore:
        return self._store

    @property
    def events(self) -> EventBus:
        return self._event_bus

    @property
    def owner(self) -> str:
        return self._store.owner
