"""Folder model and the live-sibling uniqueness index.

Provides ``FolderBase`` (non-table) and ``Folder`` (concrete table).
Subclass ``FolderBase`` with ``table=True`` and a custom ``__tablename__``
to use a different table name, then call :func:`add_live_name_index` on
the subclass so the store boundary enforces sibling uniqueness.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import DateTime, Index, func, literal_column
from sqlmodel import Field, SQLModel


class FolderBase(SQLModel):
    """Base fields for a folder. Subclass with ``table=True`` for a concrete table."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    name: str = Field(default="")
    parent_id: str | None = Field(default=None, index=True)
    owner: str = Field(default="", index=True)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),  # type: ignore[invalid-argument-type]
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),  # type: ignore[invalid-argument-type]
    )
    deleted_at: datetime | None = Field(
        default=None,
        sa_type=DateTime(timezone=True),  # type: ignore[invalid-argument-type]
    )


class Folder(FolderBase, table=True):
    """Default folder table — ``stowage_folders``."""

    __tablename__ = "stowage_folders"


def add_live_name_index(model: type[FolderBase]) -> Index:
    """Attach a partial unique index over live ``(owner, parent, name)`` triples.

    ``parent_id`` is coalesced to ``''`` so root-level siblings collide
    too (plain NULLs never compare equal in a unique index).  Trashed
    rows are excluded, so a trashed folder never blocks a new one.
    Comparison follows the column collation, which is case-sensitive on
    SQLite and PostgreSQL defaults.
    """
    table = model.__table__  # type: ignore[attr-defined]
    live = table.c.deleted_at.is_(None)
    return Index(
        f"uq_{table.name}_live_name",
        table.c.owner,
        func.coalesce(table.c.parent_id, literal_column("''")),
        table.c.name,
        unique=True,
        sqlite_where=live,
        postgresql_where=live,
    )


add_live_name_index(Folder)
