"""Shared fixtures for Stowage tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from stowage.events import EventBus
from stowage.models import File, Folder  # noqa: F401  (register tables)
from stowage.tree.content import LocalContentStore
from stowage.tree.database import DatabaseTreeStore

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncEngine


@pytest.fixture
async def async_engine() -> AsyncIterator[AsyncEngine]:
    """Async in-memory SQLite engine with all tables created."""
    eng = create_async_engine("sqlite+aiosqlite://", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def async_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """Async SQLModel session for direct model tests."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def content(tmp_path: Path) -> LocalContentStore:
    return LocalContentStore(tmp_path / "blobs")


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def store(
    session_factory: async_sessionmaker[AsyncSession],
    content: LocalContentStore,
    event_bus: EventBus,
) -> DatabaseTreeStore:
    """Tree store for owner ``alice`` with an attached event bus."""
    return DatabaseTreeStore(session_factory, content, "alice", event_bus=event_bus)
